"""Timestamped backups of files before they are rewritten."""

import logging
import shutil
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

SUFFIX = ".bak"


class BackupManager:
    """Copies files into a backup directory, keeping the newest ``keep`` per file."""

    def __init__(self, backup_dir: Path, keep: int = 10, enabled: bool = True):
        self.backup_dir = backup_dir
        self.keep = keep
        self.enabled = enabled

    def backup(self, *paths: Path) -> list[Path]:
        """Back up each existing path. Returns the backup files created."""
        if not self.enabled:
            return []

        created = []
        for path in paths:
            path = Path(path)
            if not path.is_file():
                logger.debug(f"Nothing to back up at {path}")
                continue

            self.backup_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
            target = self.backup_dir / f"{path.name}.{stamp}{SUFFIX}"
            shutil.copy2(path, target)
            logger.debug(f"Backed up {path} to {target}")
            created.append(target)
            self.prune(path.name)
        return created

    def list_backups(self, name: str) -> list[Path]:
        """Backups of the file called ``name``, oldest first."""
        if not self.backup_dir.exists():
            return []
        return sorted(self.backup_dir.glob(f"{name}.*{SUFFIX}"))

    def prune(self, name: str) -> None:
        if self.keep == 0:
            return
        backups = self.list_backups(name)
        for old in backups[: -self.keep]:
            old.unlink()

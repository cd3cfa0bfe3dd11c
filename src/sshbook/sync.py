"""Sync the config directory through a private git remote."""

import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from sshbook.errors import SyncError

logger = logging.getLogger(__name__)


@dataclass
class GitConfig:
    """Resolved git sync settings."""

    repo_path: Path
    url: str | None = None
    remote: str = "sync"
    branch: str = "master"
    synced_files: tuple[str, ...] = ()


def default_gitignore(synced_files: tuple[str, ...]) -> str:
    """Ignore everything except the files meant to be shared."""
    lines = ["*", "!.gitignore", "!ssh_cli.sh"]
    lines += [f"!{name}" for name in synced_files]
    return "\n".join(lines) + "\n"


class GitSync:
    """Pull, commit and push the config directory."""

    def __init__(self, config: GitConfig):
        self.config = config

    @property
    def enabled(self) -> bool:
        return bool(self.config.url)

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        """Run git command."""
        cmd = ["git", "-C", str(self.config.repo_path)] + list(args)
        logger.debug(f"exec: {' '.join(cmd)}")
        try:
            return subprocess.run(cmd, capture_output=True, text=True, check=check)
        except subprocess.CalledProcessError as e:
            raise SyncError(f"git {args[0]} failed: {e.stderr.strip() or e.returncode}") from e
        except FileNotFoundError as e:
            raise SyncError("git is not installed") from e

    def has_changes(self) -> bool:
        """Check if there are uncommitted changes."""
        result = self._run("status", "--porcelain")
        return bool(result.stdout.strip())

    def init_repo(self) -> None:
        """Create the repository and remote if the directory has none."""
        if (self.config.repo_path / ".git").is_dir():
            return
        logger.info(f"Initializing git repository in {self.config.repo_path}")
        self._run("init")
        self._run("remote", "add", self.config.remote, self.config.url)

    def pull(self) -> None:
        # A brand new remote has no branch to pull yet.
        result = self._run("pull", self.config.remote, self.config.branch, check=False)
        if result.returncode != 0:
            logger.warning(f"git pull failed: {result.stderr.strip()}")

    def write_gitignore(self) -> None:
        gitignore = self.config.repo_path / ".gitignore"
        if not gitignore.exists():
            gitignore.write_text(default_gitignore(self.config.synced_files))

    def commit(self) -> bool:
        """Commit everything. Returns False when there was nothing to commit."""
        self._run("add", ".", "--all")
        if not self.has_changes():
            return False
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        self._run("commit", "-m", f"Automatic sync commit - {stamp}")
        return True

    def push(self) -> None:
        self._run("push", self.config.remote, self.config.branch)

    def sync(self) -> bool:
        """Pull, commit and push. Returns whether a sync happened."""
        if not self.enabled:
            return False
        if not self.config.url.startswith("git@"):
            logger.warning(f"Only git@ sync URLs are supported, skipping sync ({self.config.url})")
            return False

        self.config.repo_path.mkdir(parents=True, exist_ok=True)
        self.init_repo()
        self.pull()
        self.write_gitignore()
        self.commit()
        self.push()
        return True

"""Configuration models for sshbook."""

from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import BaseModel, field_validator

CONFIG_FILE = "config.yaml"
DEFAULT_CONFIG_DIR = ".sshbook"
CLI_SCRIPT = "ssh_cli.sh"


@dataclass
class Environment:
    """Filesystem locations sshbook works with.

    Built once by the CLI; nothing below the CLI reads ``$HOME`` itself.
    """

    home: Path
    config_dir: Path

    @classmethod
    def from_home(cls, home: Path, config_dir: Path | None = None) -> "Environment":
        return cls(home=home, config_dir=config_dir or home / DEFAULT_CONFIG_DIR)

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILE

    def resolve(self, path: str | Path) -> Path:
        """Expand ``~`` against home; relative paths are relative to config_dir."""
        path = str(path)
        if path == "~" or path.startswith("~/"):
            return self.home / path[2:]
        resolved = Path(path)
        if resolved.is_absolute():
            return resolved
        return self.config_dir / resolved


class SyncConfig(BaseModel):
    """Git sync configuration."""

    url: str | None = None  # e.g. git@github.com:me/ssh-config.git
    remote: str = "sync"
    branch: str = "master"


class BackupConfig(BaseModel):
    """Backup configuration."""

    enabled: bool = True
    dir: str = "backups"
    keep: int = 10  # 0 keeps every backup

    @field_validator("keep")
    @classmethod
    def validate_keep(cls, v: int) -> int:
        if v < 0:
            raise ValueError("backup.keep must be >= 0")
        return v


class AppConfig(BaseModel):
    """Main sshbook configuration."""

    json_config_paths: list[str] = ["ssh_config_work.json", "ssh_config_personal.json"]
    json_import_path: str = "ssh_config_imported.json"
    ssh_config_path: str = "~/.ssh/config"
    cli_script: str | None = None
    sync: SyncConfig = SyncConfig()
    backup: BackupConfig = BackupConfig()

    @field_validator("json_config_paths", mode="before")
    @classmethod
    def validate_paths(cls, v):
        if isinstance(v, str):
            return [v]
        return v

    def config_paths(self, env: Environment) -> list[Path]:
        return [env.resolve(p) for p in self.json_config_paths]

    def import_path(self, env: Environment) -> Path:
        return env.resolve(self.json_import_path)

    def ssh_path(self, env: Environment) -> Path:
        return env.resolve(self.ssh_config_path)

    def backup_dir(self, env: Environment) -> Path:
        return env.resolve(self.backup.dir)

    def cli_script_path(self, env: Environment) -> Path | None:
        """Configured CLI script, else ``ssh_cli.sh`` in the config dir if present."""
        if self.cli_script:
            return env.resolve(self.cli_script)
        default = env.config_dir / CLI_SCRIPT
        return default if default.is_file() else None


def load_config(env: Environment) -> AppConfig:
    """Load configuration from the YAML file, or defaults if there is none."""
    path = env.config_file
    if not path.exists():
        return AppConfig()
    with open(path) as f:
        data = yaml.safe_load(f)
    return AppConfig(**(data or {}))


def get_config_template() -> str:
    """Get the default configuration template."""
    return """# sshbook configuration
#
# Relative paths are relative to this directory; ~ is your home directory.

# JSON files holding your hosts. All of them are merged (in order) when
# exporting and searching; new hosts are added to the one you pick.
json_config_paths:
  - ssh_config_work.json
  - ssh_config_personal.json

# Where 'sshbook import' writes hosts read from your SSH config
json_import_path: ssh_config_imported.json

# The SSH config file that 'sshbook export' generates
ssh_config_path: ~/.ssh/config

# Script run as 'bash <script> <alias>' by 'sshbook init-host --cli'.
# Defaults to ssh_cli.sh in this directory when that file exists.
# cli_script: ssh_cli.sh

sync:
  # Private git repository to sync the JSON files through (git@ URLs only)
  # url: git@github.com:you/ssh-config.git
  remote: sync
  branch: master

backup:
  enabled: true
  dir: backups
  keep: 10  # copies per file, 0 keeps everything
"""

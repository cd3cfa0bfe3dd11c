"""Host initialization: copy SSH keys and run the CLI setup script."""

import logging
import shlex
import subprocess
from pathlib import Path

from sshbook.errors import ProvisionError

logger = logging.getLogger(__name__)

RULE = "# ----------------------------------"


def build_team_keys_block(team_keys: dict, identifier: str) -> str:
    """Render team keys as an authorized_keys block.

    ``team_keys`` is ``{team: {user: {"keys": [{"key": "ssh-ed25519 ..."}]}}}``.
    """
    lines = [RULE, f"# BEGIN - {identifier}", ""]
    for users in team_keys.values():
        if not isinstance(users, dict):
            continue
        for user in users.values():
            if not isinstance(user, dict):
                continue
            for key in user.get("keys", []):
                value = key.get("key") if isinstance(key, dict) else key
                if value:
                    lines.append(str(value).strip())
    lines += [f"# END - {identifier}", RULE]
    return "\n".join(lines)


class HostProvisioner:
    """Runs ssh-copy-id, ssh and bash against a host alias.

    Commands are interactive (they may prompt for a password) so their
    output is not captured.
    """

    def _run(self, args: list[str]) -> None:
        logger.debug(f"exec: {shlex.join(args)}")
        try:
            result = subprocess.run(args)
        except FileNotFoundError as e:
            raise ProvisionError(f"{args[0]} is not installed") from e
        if result.returncode != 0:
            raise ProvisionError(f"{args[0]} exited with status {result.returncode}")

    def copy_key(self, alias: str) -> None:
        """Install your own public key on the host."""
        self._run(["ssh-copy-id", alias])

    def copy_team_keys(self, alias: str, team_keys: dict, identifier: str) -> None:
        """Append the team key block to the host's authorized_keys."""
        block = build_team_keys_block(team_keys, identifier)
        remote = (
            f"mkdir -p ~/.ssh && echo {shlex.quote(block)} >> ~/.ssh/authorized_keys "
            "&& chmod 700 ~/.ssh && chmod 600 ~/.ssh/authorized_keys"
        )
        self._run(["ssh", alias, remote])

    def run_cli_script(self, script: Path, alias: str) -> None:
        self._run(["bash", str(script), alias])

"""Alias resolution: which host key owns each alias."""

from dataclasses import dataclass, field
from typing import Mapping

from sshbook.types import HostRecord


@dataclass
class AliasCollision:
    """Two hosts claiming the same alias."""

    alias: str
    existing_key: str
    key: str

    @property
    def message(self) -> str:
        return (
            f"Duplicate alias - both host '{self.existing_key}' and '{self.key}' "
            f"have the same alias specified ({self.alias}).\n"
            f"Host '{self.existing_key}' will take precedence for now.\n"
            "Edit or delete hosts as needed to resolve this conflict.\n"
            "NOTE: Keys are used as aliases and can conflict with other aliases"
        )


@dataclass
class AliasMapResult:
    aliases: dict[str, str] = field(default_factory=dict)
    collisions: list[AliasCollision] = field(default_factory=list)


def host_aliases(key: str, host: HostRecord) -> list[str]:
    """All aliases a host answers to: primary, additional, then its key."""
    primary = host.pssh.alias or key
    aliases: list[str] = []
    for alias in [primary, *host.pssh.alias_additional, key]:
        if alias and alias not in aliases:
            aliases.append(alias)
    return aliases


def build_alias_map(hosts: Mapping[str, HostRecord]) -> AliasMapResult:
    """Map every alias to its host key.

    Hosts are visited in key order and the first claimant of an alias keeps
    it; later claimants are recorded as collisions and left out of the map.
    """
    result = AliasMapResult()
    for key in sorted(hosts):
        for alias in host_aliases(key, hosts[key]):
            owner = result.aliases.get(alias)
            if owner is None:
                result.aliases[alias] = key
            elif owner != key:
                result.collisions.append(AliasCollision(alias=alias, existing_key=owner, key=key))
    return result

"""Conflict-aware reconciliation of host definitions.

Two hosts describe "the same logical connection" when they share hostname
and user (and port, when one is given). Adding a host that matches an
existing connection either changes nothing, when the candidate is a subset
of what is already known, or produces an override: just the fields that
differ, for manual review.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Container

from sshbook.types import HostRecord


class AddOutcome(str, Enum):
    """What ``ConfigStore.add`` did with a candidate host."""

    INSERTED = "inserted"
    UNCHANGED = "unchanged"
    CONFLICT = "conflict"


@dataclass
class AddResult:
    """Outcome of adding a host.

    On ``INSERTED`` the alias is the key the host was stored under. On
    ``CONFLICT`` the alias is the key of the existing record and the host is
    the override payload.
    """

    outcome: AddOutcome
    alias: str
    host: HostRecord

    @property
    def success(self) -> bool:
        return self.outcome != AddOutcome.CONFLICT


@dataclass
class HostSearch:
    """Criteria for ``ConfigStore.find``."""

    alias: str | None = None
    hostname: str | None = None
    port: str | None = None
    user: str | None = None


@dataclass
class FindResult:
    """Hosts found by ``ConfigStore.find``, indexed by what matched.

    ``alias`` maps the searched alias to the hosts owning it. ``hostname``
    maps user -> host key -> host for hosts with the searched hostname.
    """

    alias: dict[str, list[HostRecord]] = field(default_factory=dict)
    hostname: dict[str, dict[str, HostRecord]] = field(default_factory=dict)

    def connection(self, user: str) -> tuple[str, HostRecord] | None:
        """First host for ``user`` on the searched hostname, if any."""
        for key, host in self.hostname.get(user, {}).items():
            return key, host
        return None


def host_diff(host1: dict, host2: dict) -> dict:
    """Subtract ``host2`` from ``host1``.

    Keys present in both with equal values are removed from a copy of
    ``host1``. Nested dicts are diffed recursively and dropped once empty;
    lists compare element-wise.
    """
    diff = {}
    for key, value1 in host1.items():
        if key not in host2:
            diff[key] = copy.deepcopy(value1)
            continue

        value2 = host2[key]
        if isinstance(value1, dict) and isinstance(value2, dict):
            nested = host_diff(value1, value2)
            if nested:
                diff[key] = nested
        elif value1 != value2:
            diff[key] = copy.deepcopy(value1)
    return diff


def auto_alias(alias: str, taken: Container[str]) -> str:
    """Append 1, 2, 3... to ``alias`` until it is not in ``taken``."""
    candidate = alias
    i = 0
    while candidate in taken:
        i += 1
        candidate = f"{alias}{i}"
    return candidate


def ports_match(wanted: str | None, actual: str | None) -> bool:
    """Compare ports; an absent ``wanted`` matches anything, absent ``actual`` is 22."""
    if not wanted:
        return True
    actual = actual or "22"
    try:
        return int(wanted) == int(actual)
    except ValueError:
        return wanted.strip() == actual.strip()

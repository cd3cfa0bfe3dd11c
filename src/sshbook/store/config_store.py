"""Host store backed by JSON files, exportable to SSH config."""

import copy
import json
from datetime import datetime
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from sshbook.aliases import build_alias_map
from sshbook.cleaning import (
    clean_alias,
    clean_alias_additional,
    clean_port,
    clean_user,
)
from sshbook.codec import (
    encode_document,
    load_documents,
    merge_documents,
    parse_ssh_config,
    read_text,
    render_ssh_config,
)
from sshbook.errors import NotExportableError, StoreInvariantError
from sshbook.hostname import HostnameCanonicalizer
from sshbook.merge import (
    AddOutcome,
    AddResult,
    FindResult,
    HostSearch,
    auto_alias,
    host_diff,
    ports_match,
)
from sshbook.search import rank_hosts
from sshbook.store.base import LoggingReporter, Reporter
from sshbook.types import HostMeta, HostRecord, normalize_options

DEFAULT_TEAM_KEYS_IDENTIFIER = "team keys"


def stamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


class ConfigStore:
    """Hosts loaded from one or more JSON files, plus global SSH options.

    Loading never fails on bad host data short of broken syntax: problems
    found by ``clean()`` are reported as warnings and clear ``exportable``.
    Only ``write_ssh`` refuses to run on a store that is not exportable.
    """

    def __init__(
        self,
        reporter: Reporter | None = None,
        canonicalizer: HostnameCanonicalizer | None = None,
    ):
        self.reporter = reporter or LoggingReporter()
        self.canonicalizer = canonicalizer or HostnameCanonicalizer()
        self.global_options: dict[str, str] = {}
        self.meta: dict = {}
        self.hosts: dict[str, HostRecord] = {}
        self.exportable: bool | None = None
        self._alias_map: dict[str, str] | None = None
        self._hosts_by_hostname: dict[str, dict[str, HostRecord]] | None = None
        self._team_keys: dict | None = None

    # Loading and saving

    def read_json(self, paths: str | Path | Iterable[str | Path]) -> None:
        """Load and deep-merge JSON store files, in order.

        Missing files are skipped so that a new store can be written to them.
        """
        if isinstance(paths, (str, Path)):
            paths = [paths]
        self.load_dict(merge_documents(load_documents(paths)))

    def load_dict(self, data: dict) -> None:
        """Replace the store contents with a decoded store document."""
        self._reset_derived()
        self.exportable = None
        self.global_options = normalize_options(_mapping(data.get("ssh"), "ssh"))
        self.meta = copy.deepcopy(_mapping(data.get("pssh"), "pssh"))

        self.hosts = {}
        for key, host in _mapping(data.get("hosts"), "hosts").items():
            self.hosts[str(key)] = _validate_host(str(key), host)

    def read_ssh(self, path: str | Path) -> None:
        """Load hosts and global options from an SSH config file.

        Parsed entries are added to the store, replacing same-named ones.
        """
        path = Path(path)
        parsed = parse_ssh_config(read_text(path), str(path))

        self._reset_derived()
        self.exportable = None
        self.global_options.update(parsed.global_options)
        for key, options in parsed.hosts.items():
            self.hosts[key] = HostRecord(ssh=options)

        if parsed.unknown_keys:
            self.reporter.warn(
                "Unknown config key(s) present - if these are valid, add them to "
                "the key table: " + ", ".join(parsed.unknown_keys)
            )

    def to_dict(self) -> dict:
        return {
            "ssh": dict(self.global_options),
            "pssh": copy.deepcopy(self.meta),
            "hosts": {key: host.to_dict() for key, host in self.hosts.items()},
        }

    def write_json(self, path: str | Path) -> None:
        """Write the store as pretty JSON, or HJSON for ``.hjson`` paths."""
        path = Path(path)
        content = encode_document(self.to_dict(), path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)

    def write_ssh(self, path: str | Path) -> None:
        """Clean the store and export it as an SSH config file.

        Raises:
            NotExportableError: cleaning found problems; nothing is written.
        """
        if not self.clean():
            raise NotExportableError(
                "Config has problems (see warnings above) - fix them before exporting"
            )

        entries = [(alias, self.hosts[key].ssh) for alias, key in self.get_alias_map().items()]
        content = render_ssh_config(self.global_options, entries, stamp())

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)

    # Cleaning

    def clean(self) -> bool:
        """Normalize every host and validate the store.

        Hostnames are resolved to IPs, ports, users and aliases normalized,
        host keys realigned with primary aliases and the alias map rebuilt.

        Returns:
            Whether the store is exportable.
        """
        self.exportable = True
        self.global_options = dict(sorted(self.global_options.items()))
        self.meta = dict(sorted(self.meta.items()))

        cleaned = {key: self._clean_host(key, self.hosts[key]) for key in sorted(self.hosts)}
        realigned = self._realign_keys(cleaned)

        if len(realigned) != len(self.hosts):
            raise StoreInvariantError(
                f"Cleaning produced {len(realigned)} hosts from {len(self.hosts)}"
            )

        self.hosts = dict(sorted(realigned.items()))
        self._reset_derived()
        self.get_alias_map()
        return self.exportable

    def is_exportable(self) -> bool:
        if self.exportable is None:
            raise RuntimeError("is_exportable() called before clean()")
        return self.exportable

    def clean_hostname(self, hostname: str, meta: HostMeta | None = None, certain: bool = True) -> str:
        """Resolve a hostname to an IP, warning when a certain lookup fails."""
        lookup = meta.lookup_enabled() if meta is not None else True
        canonical = self.canonicalizer.canonicalize(hostname, lookup_enabled=lookup, certain=certain)
        if canonical.warning:
            self.reporter.warn(canonical.warning)
        return canonical.hostname

    def _problem(self, key: str, field: str, message: str, remedy: str) -> None:
        self.exportable = False
        self.reporter.warn(f"Host '{key}' {field}: {message} - {remedy}")

    def _clean_host(self, key: str, host: HostRecord) -> HostRecord:
        host = host.model_copy(deep=True)
        meta = host.pssh
        if not meta.alias:
            meta.alias = key

        if "hostname" in host.ssh and meta.cleaning_enabled("hostname"):
            canonical = self.canonicalizer.canonicalize(
                host.ssh["hostname"], lookup_enabled=meta.lookup_enabled(), certain=True
            )
            host.ssh["hostname"] = canonical.hostname
            if canonical.warning:
                self._problem(key, "hostname", canonical.warning, "or fix the hostname")
            elif not canonical.hostname:
                self._problem(key, "hostname", "hostname is empty", "set ssh.hostname")

        if meta.cleaning_enabled("port"):
            result = clean_port(host.ssh.get("port"))
            host.ssh["port"] = result.value
            if result.problem:
                self._problem(key, "port", result.problem, "set ssh.port to a valid port")

        if "user" in host.ssh and meta.cleaning_enabled("user"):
            result = clean_user(host.ssh["user"])
            host.ssh["user"] = result.value
            if result.problem:
                self._problem(key, "user", result.problem, "set ssh.user or remove it")

        if meta.cleaning_enabled("alias"):
            result = clean_alias(meta.alias)
            meta.alias = result.value
            if result.problem:
                self._problem(key, "alias", result.problem, "set pssh.alias")

        if meta.alias_additional and meta.cleaning_enabled("alias_additional"):
            result = clean_alias_additional(meta.alias_additional)
            meta.alias_additional = result.value
            if result.problem:
                self._problem(key, "alias_additional", result.problem, "remove the empty entry")

        host.ssh = dict(sorted(host.ssh.items()))
        return host

    def _realign_keys(self, cleaned: dict[str, HostRecord]) -> dict[str, HostRecord]:
        """Re-key hosts under their primary alias where that key is free."""
        realigned: dict[str, HostRecord] = {}
        for key, host in cleaned.items():
            alias = host.pssh.alias
            if not alias or alias == key:
                realigned[key] = host
            elif alias in cleaned or alias in realigned:
                self._problem(
                    key,
                    "alias",
                    f"cannot rename host key to match alias '{alias}', that key is used by another host",
                    "change the alias or merge the two hosts",
                )
                realigned[key] = host
            else:
                self.reporter.log(f"Renaming host key '{key}' to '{alias}'")
                realigned[alias] = host
        return realigned

    # Lookups

    def get_alias_map(self, fresh: bool = False) -> dict[str, str]:
        """Map of every alias to the key of the host owning it.

        Collisions clear ``exportable`` only once ``clean()`` has set it.
        """
        if self._alias_map is None or fresh:
            result = build_alias_map(self.hosts)
            for collision in result.collisions:
                self.reporter.warn(collision.message)
                if self.exportable is not None:
                    self.exportable = False
            self._alias_map = result.aliases
        return dict(self._alias_map)

    def get_host_key(self, alias: str) -> str | None:
        return self.get_alias_map().get(alias)

    def get_hosts(self, alias: str | None = None):
        """All hosts keyed by storage key, or a list with the host for ``alias``.

        The list is empty when no host has the alias.
        """
        if alias is None:
            return dict(self.hosts)

        key = self.get_host_key(alias)
        if key is not None and key in self.hosts:
            return [self.hosts[key]]
        return []

    def get_hosts_by_hostname(self, hostname: str | None = None) -> dict:
        """Hosts grouped by hostname, or the hosts using ``hostname``."""
        if self._hosts_by_hostname is None:
            self._hosts_by_hostname = {}
            for key, host in self.hosts.items():
                if not host.hostname:
                    continue
                self._hosts_by_hostname.setdefault(host.hostname, {})[key] = host

        if hostname is None:
            return {name: dict(hosts) for name, hosts in self._hosts_by_hostname.items()}
        return dict(self._hosts_by_hostname.get(hostname, {}))

    def find(self, search: HostSearch | str) -> FindResult:
        """Find hosts by exact alias and by hostname (filtered by port and user).

        A plain string is treated as an alias. A missing search port matches
        any port; a host without a port counts as port 22.
        """
        if isinstance(search, str):
            search = HostSearch(alias=search)

        alias = _stripped(search.alias)
        hostname = _stripped(search.hostname)
        port = _stripped(search.port)
        user = _stripped(search.user)

        result = FindResult()
        if alias:
            result.alias[alias] = self.get_hosts(alias)

        if hostname:
            if user:
                result.hostname[user] = {}
            for key, host in self.get_hosts_by_hostname(hostname).items():
                host_user = host.ssh.get("user", "")
                if ports_match(port, host.ssh.get("port")) and (not user or user == host_user):
                    result.hostname.setdefault(host_user, {})[key] = host

        return result

    def search(self, terms: str) -> dict[str, HostRecord]:
        """Hosts matching the space-separated ``terms``, best first."""
        self.reporter.log(f"Searching {len(self.hosts)} hosts for '{terms}'")
        return rank_hosts(self.hosts, terms, self.canonicalizer)

    # Mutation

    def auto_alias(self, alias: str) -> str:
        return auto_alias(alias, self.hosts)

    def add(self, alias: str, host: HostRecord | dict, force: bool = False) -> AddResult:
        """Add a host unless it conflicts with a known connection.

        A host sharing hostname and user with an existing record is diffed
        against it; an alias the store does not know counts as a difference.
        No difference means nothing to do; otherwise the result
        is a ``CONFLICT`` carrying the existing key and the differing fields.
        With ``force`` the host is always inserted, under a unique key.
        """
        if isinstance(host, dict):
            host = HostRecord.model_validate(host)

        user = _stripped(host.user)
        existing = self.find(HostSearch(alias=alias, hostname=host.hostname, port=host.port, user=user))
        match = existing.connection(user) if host.hostname and user else None

        if match is None or force:
            key = self.auto_alias(alias)
            host = host.model_copy(deep=True)
            if key != alias and host.pssh.alias == alias:
                host.pssh.alias = key
            self.hosts[key] = host
            self._reset_derived()
            return AddResult(AddOutcome.INSERTED, key, host)

        existing_key, existing_host = match
        override = host_diff(host.to_dict(), existing_host.to_dict())
        # A new alias for a known connection is itself a difference.
        if alias and not override.get("pssh", {}).get("alias") and not existing.alias.get(alias):
            override.setdefault("pssh", {})["alias"] = alias

        if not override:
            return AddResult(AddOutcome.UNCHANGED, alias, host)

        return AddResult(AddOutcome.CONFLICT, existing_key, HostRecord.model_validate(override))

    def merge(self, target: "ConfigStore", override: "ConfigStore") -> None:
        """Add every host of this store to ``target``.

        Conflicting deltas are forced into ``override`` for manual review.
        """
        for key, host in self.get_hosts().items():
            result = target.add(key, host)
            if not result.success:
                self.reporter.log(f"Conflict for '{key}' - placing override under '{result.alias}'")
                override.add(result.alias, result.host, force=True)

    def delete_host(self, alias: str) -> bool:
        """Remove a host by key or alias. Returns whether it existed."""
        key = alias if alias in self.hosts else self.get_host_key(alias)
        if not alias or key is None:
            return False
        del self.hosts[key]
        self._reset_derived()
        return True

    def set_host(self, alias: str, data: HostRecord | dict) -> None:
        """Replace the host owning ``alias`` (or add it under ``alias``)."""
        if isinstance(data, dict):
            data = _validate_host(alias, data)
        key = self.get_host_key(alias) or alias
        self.hosts[key] = data
        self._reset_derived()

    # Team keys

    def get_team_keys(self) -> dict:
        """Team key bundle named by the store's ``pssh.team_keys`` path."""
        if self._team_keys is None:
            self._team_keys = {}
            path = self.meta.get("team_keys")
            if path:
                self.reporter.log("Reading in team keys...")
                try:
                    data = json.loads(Path(path).read_text())
                except (OSError, ValueError) as e:
                    self.reporter.warn(f"Could not read team keys from {path}: {e}")
                    data = None
                if isinstance(data, dict):
                    self._team_keys = data
        return self._team_keys

    def get_team_keys_identifier(self) -> str:
        return self.meta.get("team_keys_identifier") or DEFAULT_TEAM_KEYS_IDENTIFIER

    def _reset_derived(self) -> None:
        self._alias_map = None
        self._hosts_by_hostname = None
        self._team_keys = None


def _stripped(value: str | None) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


def _mapping(value, name: str) -> dict:
    if value is None or value == []:
        return {}
    if not isinstance(value, dict):
        raise StoreInvariantError(f"'{name}' must be an object")
    return value


def _validate_host(key: str, host) -> HostRecord:
    if not isinstance(host, dict):
        raise StoreInvariantError(
            f"Host data with key '{key}' is not an object - "
            "edit the config file manually to resolve this."
        )
    try:
        return HostRecord.model_validate(host)
    except ValidationError as e:
        raise StoreInvariantError(f"Host data with key '{key}' is invalid: {e}") from e

"""Hostname canonicalization: resolve names to IPv4 addresses."""

import ipaddress
import logging
import re
import socket
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

_LABEL = r"[A-Za-z0-9_](?:[A-Za-z0-9_-]{0,61}[A-Za-z0-9])?"
URL_HOST_RE = re.compile(rf"^{_LABEL}(?:\.{_LABEL})*\.?$")

Resolver = Callable[[str], str | None]


def resolve_a_record(hostname: str) -> str | None:
    """Return the first IPv4 address for ``hostname``, or None."""
    try:
        results = socket.getaddrinfo(hostname, None, socket.AF_INET)
    except (OSError, UnicodeError):
        return None
    for result in results:
        return str(result[4][0])
    return None


def is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def is_url_host(value: str) -> bool:
    """Whether ``value`` could be the host part of an http URL."""
    return bool(URL_HOST_RE.match(value))


@dataclass
class Canonical:
    """Result of canonicalizing a hostname."""

    hostname: str
    warning: str | None = None


class HostnameCanonicalizer:
    """Turns hostnames into IP addresses for stable host identity.

    Lookups are memoized for the lifetime of the instance; one CLI
    invocation resolves each name at most once.
    """

    def __init__(self, resolver: Resolver | None = None):
        self.resolver = resolver or resolve_a_record
        self._cache: dict[str, str | None] = {}

    def lookup(self, hostname: str) -> str | None:
        if hostname not in self._cache:
            logger.debug(f"Looking up A record for {hostname}")
            self._cache[hostname] = self.resolver(hostname)
        return self._cache[hostname]

    def canonicalize(
        self,
        hostname: str,
        lookup_enabled: bool = True,
        certain: bool = True,
    ) -> Canonical:
        """Resolve ``hostname`` to an IP address where possible.

        Args:
            hostname: Domain name or IP address.
            lookup_enabled: False when the host opted out with ``lookup: no``.
            certain: True when the value is known to be a hostname. Uncertain
                values (search terms) are only looked up when they look like
                a URL host, and failures are silent.

        Returns:
            The resolved address, or the original value plus an optional
            warning when the lookup failed. Never raises.
        """
        hostname = hostname.strip()
        if not hostname or not lookup_enabled or is_ip(hostname):
            return Canonical(hostname)

        if not certain and not is_url_host(hostname):
            return Canonical(hostname)

        ip = self.lookup(hostname)
        if ip is None or not is_ip(ip):
            if certain:
                return Canonical(
                    hostname,
                    warning=(
                        f"Failed lookup - {hostname}. "
                        "Set pssh.lookup to 'no' if this is normal for this host."
                    ),
                )
            return Canonical(hostname)

        return Canonical(ip)

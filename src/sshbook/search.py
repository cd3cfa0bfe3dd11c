"""Free-text host search."""

import logging
import re
from typing import Mapping

from sshbook.hostname import HostnameCanonicalizer
from sshbook.types import HostRecord

logger = logging.getLogger(__name__)

# Keeps the original order as a tie-breaker; assumes fewer than a billion hosts.
INDEX_SPACING = 1_000_000_000


def build_patterns(termstring: str, terms: list[str]) -> dict[int, re.Pattern]:
    """Search patterns keyed by weight, most specific first."""
    whole = re.escape(termstring)
    any_term = "(" + "|".join(re.escape(term) for term in terms) + ")"
    return {
        4: re.compile(rf"\b{whole}\b", re.IGNORECASE),
        3: re.compile(whole, re.IGNORECASE),
        2: re.compile(rf"\b{any_term}\b", re.IGNORECASE),
        1: re.compile(any_term, re.IGNORECASE),
    }


def score_host(key: str, host: HostRecord, patterns: dict[int, re.Pattern]) -> int:
    """Sum ``(pattern + 1) * 10 + (target + 1)`` over every match."""
    targets = {
        4: host.pssh.alias,
        3: host.ssh.get("hostname"),
        2: host.ssh.get("user"),
        1: key,
    }
    score = 0
    for t, target in targets.items():
        if not target:
            continue
        for p, pattern in patterns.items():
            if pattern.search(target):
                score += (p + 1) * 10 + (t + 1)
    return score


def rank_hosts(
    hosts: Mapping[str, HostRecord],
    termstring: str,
    canonicalizer: HostnameCanonicalizer,
) -> dict[str, HostRecord]:
    """Hosts matching ``termstring``, best match first.

    Each space-separated term is also resolved speculatively; a resolved IP
    becomes an extra term so searching by domain finds hosts stored by IP.
    An empty search returns every host.
    """
    termstring = termstring.strip().lower()
    if not termstring:
        return dict(hosts)

    terms = termstring.split()
    resolved = []
    for term in terms:
        canonical = canonicalizer.canonicalize(term, certain=False).hostname
        if canonical != term:
            resolved.append(canonical)
    patterns = build_patterns(termstring, terms + resolved)

    scored = []
    for index, (key, host) in enumerate(hosts.items()):
        score = score_host(key, host, patterns)
        if score > 0:
            logger.debug(f"{key}: {score}")
            scored.append((score * INDEX_SPACING + index, key, host))

    scored.sort(key=lambda item: item[0], reverse=True)

    results = {}
    for _, key, host in scored:
        if not host.pssh.alias:
            host = host.model_copy(deep=True)
            host.pssh.alias = key
        results[key] = host
    return results

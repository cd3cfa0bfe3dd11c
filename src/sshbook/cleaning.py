"""Cleaning rules for individual host fields."""

import re
from dataclasses import dataclass

ALIAS_INVALID_RE = re.compile(r"[^A-Za-z0-9._-]+")
DEFAULT_PORT = "22"
MAX_PORT = 65535


@dataclass
class CleanResult:
    """Cleaned field value, plus a problem message if it is not exportable."""

    value: str | list[str]
    problem: str | None = None


def clean_port(value: str | int | None) -> CleanResult:
    """Normalize a port to a decimal string.

    Missing, empty and zero ports become ``"22"``. Out of range and
    non-numeric values are kept as-is and reported.
    """
    raw = "" if value is None else str(value).strip()
    if not raw:
        return CleanResult(DEFAULT_PORT)

    try:
        port = int(raw)
    except ValueError:
        return CleanResult(raw, f"port '{raw}' is not a number")

    if port == 0:
        return CleanResult(DEFAULT_PORT)
    if not 1 <= port <= MAX_PORT:
        return CleanResult(str(port), f"port {port} is outside 1-{MAX_PORT}")
    return CleanResult(str(port))


def clean_user(value: str) -> CleanResult:
    user = value.strip()
    if not user:
        return CleanResult(user, "user is empty")
    return CleanResult(user)


def clean_alias(value: str) -> CleanResult:
    """Trim and replace runs of characters outside ``[A-Za-z0-9._-]`` with ``_``."""
    alias = ALIAS_INVALID_RE.sub("_", value.strip())
    if not alias:
        return CleanResult(alias, "alias is empty")
    return CleanResult(alias)


def clean_alias_additional(values: list[str]) -> CleanResult:
    """Clean each additional alias; drop empties and duplicates."""
    cleaned: list[str] = []
    problem = None
    for value in values:
        result = clean_alias(str(value))
        if result.problem:
            problem = "alias_additional contains an empty alias"
            continue
        if result.value not in cleaned:
            cleaned.append(result.value)
    return CleanResult(cleaned, problem)

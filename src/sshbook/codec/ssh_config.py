"""Reading and writing OpenSSH client config text."""

import re
from dataclasses import dataclass, field
from typing import Iterable

from sshbook.codec.keys import display_key, is_known_key
from sshbook.errors import SSHConfigSyntaxError

LINE_RE = re.compile(r"^(\S+)\s+(.*)$")
RULE = "# ---------------------------------------"
INDENT = "    "
VIM_MODELINE = "# vim: syntax=sshconfig"


@dataclass
class ParsedSSHConfig:
    """Options parsed out of an SSH config file."""

    global_options: dict[str, str] = field(default_factory=dict)
    hosts: dict[str, dict[str, str]] = field(default_factory=dict)
    unknown_keys: list[str] = field(default_factory=list)


def parse_ssh_config(text: str, source: str = "<string>") -> ParsedSSHConfig:
    """Parse SSH config text.

    Options before the first ``Host`` line are global. Keys are lowercased;
    keys missing from the case table are reported once each, case-insensitively,
    in the spelling last seen, sorted.

    Raises:
        SSHConfigSyntaxError: a non-comment line is not ``Key value``.
    """
    parsed = ParsedSSHConfig()
    unknown: dict[str, str] = {}
    current: str | None = None

    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        match = LINE_RE.match(line)
        if match is None:
            raise SSHConfigSyntaxError(source, line_no, raw)

        original_key = match.group(1)
        key = original_key.lower()
        value = match.group(2).strip()

        if not is_known_key(key):
            unknown[key] = original_key

        if key == "host":
            current = value
            parsed.hosts[current] = {}
        elif current is None:
            parsed.global_options[key] = value
        else:
            parsed.hosts[current][key] = value

    parsed.unknown_keys = sorted(unknown.values())
    return parsed


def render_host(alias: str, options: dict[str, str]) -> str:
    """Render one ``Host`` block."""
    lines = [f"Host {alias}"]
    for key, value in options.items():
        lines.append(f"{INDENT}{display_key(key)} {value}")
    return "\n".join(lines) + "\n"


def render_ssh_config(
    global_options: dict[str, str],
    hosts: Iterable[tuple[str, dict[str, str]]],
    stamp: str,
) -> str:
    """Render a complete SSH config file.

    Args:
        global_options: Options written before any ``Host`` block.
        hosts: ``(alias, options)`` pairs, written in the given order.
        stamp: Timestamp for the generated header.
    """
    parts = [
        RULE,
        f"# Generated by sshbook - {stamp}",
        "#   - DO NOT EDIT THIS FILE, USE SSHBOOK",
        RULE,
        "",
        RULE,
        "# General Config",
        RULE,
    ]
    for key, value in global_options.items():
        parts.append(f"{display_key(key)} {value}")

    parts += ["", RULE, "# HOSTS", RULE]
    text = "\n".join(parts) + "\n"

    for alias, options in hosts:
        text += render_host(alias, options)

    return text + "\n" + VIM_MODELINE + "\n"

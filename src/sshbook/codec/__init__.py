"""Converters between SSH config text, JSON documents and host records."""

from sshbook.codec.json_store import (
    decode_document,
    deep_merge,
    encode_document,
    load_documents,
    merge_documents,
    read_text,
)
from sshbook.codec.keys import CONFIG_KEYS, display_key, is_known_key
from sshbook.codec.ssh_config import ParsedSSHConfig, parse_ssh_config, render_host, render_ssh_config

__all__ = [
    "CONFIG_KEYS",
    "ParsedSSHConfig",
    "decode_document",
    "deep_merge",
    "display_key",
    "encode_document",
    "is_known_key",
    "load_documents",
    "merge_documents",
    "parse_ssh_config",
    "read_text",
    "render_host",
    "render_ssh_config",
]

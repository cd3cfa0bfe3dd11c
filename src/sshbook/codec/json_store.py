"""JSON and HJSON store documents."""

import copy
import json
import logging
from pathlib import Path
from typing import Iterable

import hjson

from sshbook.errors import StoreLoadError

logger = logging.getLogger(__name__)


def is_hjson(path: str | Path) -> bool:
    return str(path).lower().endswith(".hjson")


def decode_document(text: str, path: str | Path) -> dict:
    """Decode one store document.

    ``.hjson`` paths are read with the relaxed HJSON parser, anything else as
    strict JSON.

    Raises:
        StoreLoadError: the text is malformed or decodes to nothing.
    """
    try:
        if is_hjson(path):
            data = hjson.loads(text, object_pairs_hook=dict)
        else:
            data = json.loads(text)
    except ValueError as e:
        raise StoreLoadError(str(path), str(e)) from e

    if not data:
        raise StoreLoadError(str(path), "document is empty")
    if not isinstance(data, dict):
        raise StoreLoadError(str(path), "top level must be an object")
    return data


def encode_document(data: dict, path: str | Path) -> str:
    if is_hjson(path):
        return hjson.dumps(data)
    return json.dumps(data, indent=4) + "\n"


def read_text(path: str | Path) -> str:
    """Read a UTF-8 text file, naming the file when it is not UTF-8."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise StoreLoadError(str(path), f"not UTF-8 text: {e.reason}") from e


def load_documents(paths: Iterable[str | Path]) -> list[dict]:
    """Decode every existing file in ``paths``, in order."""
    documents = []
    for path in paths:
        path = Path(path)
        if not path.exists():
            logger.debug(f"{path} does not exist yet, skipping")
            continue
        logger.debug(f"Decoding data from {path}...")
        documents.append(decode_document(read_text(path), path))
    return documents


def deep_merge(base: dict, incoming: dict) -> dict:
    """Merge ``incoming`` over ``base`` without mutating either.

    Lists on both sides are concatenated and de-duplicated, dicts on both
    sides are merged recursively, anything else is replaced by ``incoming``.
    """
    result = copy.deepcopy(base)
    for key, value in incoming.items():
        current = result.get(key)
        if isinstance(current, list) and isinstance(value, list):
            result[key] = _unique(current + copy.deepcopy(value))
        elif isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def merge_documents(documents: Iterable[dict]) -> dict:
    merged: dict = {}
    for document in documents:
        merged = deep_merge(merged, document)
    return merged


def _unique(items: list) -> list:
    # Items may be unhashable (nested objects), so no set here.
    unique = []
    for item in items:
        if item not in unique:
            unique.append(item)
    return unique

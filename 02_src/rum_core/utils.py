"""Small helpers shared by the config service, models and capture engine."""

import copy
import math
import re
import secrets
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit, urlunsplit

_INVALID_KEY_CHARS = re.compile(r'[.*"]')


def merge(*sources: Mapping | None) -> dict:
    """Deep-merge mappings left to right into a new dict.

    Nested mappings are merged recursively; every other value (lists
    included) is copied and replaces what an earlier source had.
    """
    result: dict = {}
    for source in sources:
        if not isinstance(source, Mapping):
            continue
        _merge_into(result, source)
    return result


def _merge_into(target: dict, source: Mapping) -> None:
    for key, value in source.items():
        if isinstance(value, Mapping):
            existing = target.get(key)
            if not isinstance(existing, dict):
                existing = {}
                target[key] = existing
            _merge_into(existing, value)
        else:
            target[key] = copy.copy(value)


def sanitize_string(value: Any, limit: int) -> str | None:
    """Stringify and truncate `value`; None and "" pass through."""
    if value is None or value == "":
        return value
    return str(value)[:limit]


def remove_invalid_chars(key: str) -> str:
    return _INVALID_KEY_CHARS.sub("_", key)


def set_label(key: str, value: Any, target: dict, limit: int | None = None) -> dict | None:
    """Store a label under a sanitized key.

    Booleans and numbers are kept as-is, everything else is stringified.
    """
    if target is None or not key:
        return None
    skey = remove_invalid_chars(str(key))
    if value is not None and not isinstance(value, (bool, int, float)):
        value = str(value)
        if limit is not None:
            value = value[:limit]
    target[skey] = value
    return target


def strip_query_string(url: str) -> str:
    """Drop query string and fragment from a URL."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def generate_random_id(length: int = 32) -> str:
    """Hex id, 32 chars for trace ids and 16 for span ids."""
    return secrets.token_hex(length // 2)


def is_valid_timing(value: Any) -> bool:
    """A host timing field is usable iff it is a finite, non-negative number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


def get_duration(start: float | None, end: float | None) -> float | None:
    if start is None or end is None:
        return None
    return end - start

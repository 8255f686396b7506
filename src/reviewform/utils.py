from __future__ import annotations

import os
import re
import string
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

SAFE_KEY_CHARS = set(string.ascii_letters + string.digits + "-_.")

# Boolean true/false string values
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def sanitize_key(key: str, replacement: str = "_") -> str:
    """Turn a storage key into a safe file name stem."""
    key = key.strip()
    cleaned = "".join(ch if ch in SAFE_KEY_CHARS else replacement for ch in key)
    cleaned = re.sub(r"%s+" % re.escape(replacement), replacement, cleaned)
    cleaned = cleaned.strip(replacement + ".")
    return cleaned or "default"


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env(val) for key, val in value.items()}
    return value


def load_yaml_file(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return expand_env(data)


def parse_bool(value: Any, *, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    if isinstance(value, int):
        return bool(value)
    raise ValueError(f"'{field_name}' must be a boolean")


def validate_url(url: str) -> bool:
    """Return True when ``url`` is an absolute http(s) URL."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)

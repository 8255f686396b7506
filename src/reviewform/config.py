from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any

from .persistence.autosave import DEFAULT_STORAGE_KEY
from .utils import load_yaml_file, parse_bool, validate_url


@dataclass
class ApiSettings:
    base_url: str = "http://localhost:3000"
    timeout: float = 30.0
    admin_token: str | None = None


@dataclass
class AutoSaveSettings:
    enabled: bool = True
    storage_key: str = DEFAULT_STORAGE_KEY
    storage_dir: Path = field(default_factory=lambda: Path("~/.cache/reviewform").expanduser())
    ttl_hours: float = 24.0
    debounce_seconds: float = 1.0
    interval_seconds: float = 30.0

    @property
    def ttl(self) -> timedelta:
        return timedelta(hours=self.ttl_hours)


@dataclass
class FormSettings:
    api: ApiSettings = field(default_factory=ApiSettings)
    autosave: AutoSaveSettings = field(default_factory=AutoSaveSettings)
    validation_debounce_seconds: float = 0.3
    max_retries: int = 3


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    raw = data.get(name, {}) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"'{name}' must be provided as a mapping when specified")
    return raw


def _parse_seconds(value: Any, *, field_name: str) -> float:
    try:
        seconds = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"'{field_name}' must be a number") from exc
    if seconds < 0:
        raise ValueError(f"'{field_name}' must be greater than or equal to 0")
    return seconds


def _clean_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    # An unset ${VAR} survives os.path.expandvars verbatim
    if not text or text.startswith("${"):
        return None
    return text


def _build_api_settings(data: dict[str, Any]) -> ApiSettings:
    if not data:
        return ApiSettings()

    base_url = _clean_str(data.get("base_url")) or ApiSettings.base_url
    if not validate_url(base_url):
        raise ValueError(f"'api.base_url' must be a valid http/https URL, got: {base_url}")

    timeout = _parse_seconds(data.get("timeout", 30.0), field_name="api.timeout")
    if timeout == 0:
        raise ValueError("'api.timeout' must be greater than 0")

    return ApiSettings(
        base_url=base_url.rstrip("/"),
        timeout=timeout,
        admin_token=_clean_str(data.get("admin_token")),
    )


def _build_autosave_settings(data: dict[str, Any]) -> AutoSaveSettings:
    if not data:
        return AutoSaveSettings()

    storage_key = _clean_str(data.get("storage_key")) or DEFAULT_STORAGE_KEY
    storage_dir_raw = _clean_str(data.get("storage_dir"))
    storage_dir = Path(storage_dir_raw).expanduser() if storage_dir_raw else AutoSaveSettings().storage_dir

    ttl_hours = _parse_seconds(data.get("ttl_hours", 24), field_name="autosave.ttl_hours")
    if ttl_hours == 0:
        raise ValueError("'autosave.ttl_hours' must be greater than 0")

    return AutoSaveSettings(
        enabled=parse_bool(data.get("enabled", True), field_name="autosave.enabled"),
        storage_key=storage_key,
        storage_dir=storage_dir,
        ttl_hours=ttl_hours,
        debounce_seconds=_parse_seconds(data.get("debounce_seconds", 1.0), field_name="autosave.debounce_seconds"),
        interval_seconds=_parse_seconds(data.get("interval_seconds", 30), field_name="autosave.interval_seconds"),
    )


def build_settings(data: dict[str, Any]) -> FormSettings:
    """Build settings from an already-parsed mapping.

    Raises:
        ValueError: If a key has the wrong type or an out-of-range value
    """
    validation = _section(data, "validation")
    submission = _section(data, "submission")

    try:
        max_retries = int(submission.get("max_retries", 3))
    except (TypeError, ValueError) as exc:
        raise ValueError("'submission.max_retries' must be an integer") from exc
    if max_retries < 0:
        raise ValueError("'submission.max_retries' must be greater than or equal to 0")

    return FormSettings(
        api=_build_api_settings(_section(data, "api")),
        autosave=_build_autosave_settings(_section(data, "autosave")),
        validation_debounce_seconds=_parse_seconds(
            validation.get("debounce_seconds", 0.3), field_name="validation.debounce_seconds"
        ),
        max_retries=max_retries,
    )


def load_settings(path: Path | None = None) -> FormSettings:
    """Load settings from a YAML file; defaults when ``path`` is None."""
    if path is None:
        return FormSettings()
    return build_settings(load_yaml_file(path))

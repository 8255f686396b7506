"""Tests for settings loading and validation."""

from __future__ import annotations

import re
import textwrap
from datetime import timedelta
from pathlib import Path

import pytest

from reviewform.config import FormSettings, build_settings, load_settings
from reviewform.persistence import DEFAULT_STORAGE_KEY


def write_config(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "reviewform.yaml"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def test_defaults_without_config() -> None:
    """Without a file every setting keeps its default."""
    settings = load_settings(None)
    assert settings == FormSettings()
    assert settings.api.base_url == "http://localhost:3000"
    assert settings.api.timeout == 30.0
    assert settings.autosave.storage_key == DEFAULT_STORAGE_KEY
    assert settings.autosave.ttl == timedelta(hours=24)
    assert settings.autosave.debounce_seconds == 1.0
    assert settings.autosave.interval_seconds == 30.0
    assert settings.validation_debounce_seconds == 0.3
    assert settings.max_retries == 3


def test_load_full_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """All sections are read, with environment variables expanded."""
    monkeypatch.setenv("REVIEWFORM_ADMIN_TOKEN", "token-123")
    path = write_config(
        tmp_path,
        f"""
        api:
          base_url: https://example.com/
          timeout: 10
          admin_token: ${{REVIEWFORM_ADMIN_TOKEN}}
        autosave:
          enabled: "off"
          storage_key: my-draft
          storage_dir: {tmp_path / "drafts"}
          ttl_hours: 2
          debounce_seconds: 0.5
          interval_seconds: 0
        validation:
          debounce_seconds: 0.1
        submission:
          max_retries: 5
        """,
    )

    settings = load_settings(path)

    assert settings.api.base_url == "https://example.com"
    assert settings.api.timeout == 10.0
    assert settings.api.admin_token == "token-123"
    assert settings.autosave.enabled is False
    assert settings.autosave.storage_key == "my-draft"
    assert settings.autosave.storage_dir == tmp_path / "drafts"
    assert settings.autosave.ttl == timedelta(hours=2)
    assert settings.autosave.interval_seconds == 0
    assert settings.validation_debounce_seconds == 0.1
    assert settings.max_retries == 5


def test_unset_env_token_is_none(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """An unset ``${VAR}`` token leaves the setting empty."""
    monkeypatch.delenv("REVIEWFORM_ADMIN_TOKEN", raising=False)
    path = write_config(tmp_path, "api:\n  admin_token: ${REVIEWFORM_ADMIN_TOKEN}\n")
    assert load_settings(path).api.admin_token is None


@pytest.mark.parametrize(
    ("data", "message"),
    [
        ({"api": "nope"}, "'api' must be provided as a mapping"),
        ({"api": {"base_url": "ftp://example.com"}}, "'api.base_url' must be a valid http/https URL"),
        ({"api": {"timeout": "slow"}}, "'api.timeout' must be a number"),
        ({"api": {"timeout": 0}}, "'api.timeout' must be greater than 0"),
        ({"autosave": {"enabled": "maybe"}}, "'autosave.enabled' must be a boolean"),
        ({"autosave": {"ttl_hours": 0}}, "'autosave.ttl_hours' must be greater than 0"),
        ({"autosave": {"debounce_seconds": -1}}, "'autosave.debounce_seconds' must be greater than or equal to 0"),
        ({"validation": {"debounce_seconds": "x"}}, "'validation.debounce_seconds' must be a number"),
        ({"submission": {"max_retries": "many"}}, "'submission.max_retries' must be an integer"),
        ({"submission": {"max_retries": -1}}, "'submission.max_retries' must be greater than or equal to 0"),
    ],
)
def test_invalid_values_raise(data: dict, message: str) -> None:
    """Bad values raise ValueError naming the key."""
    with pytest.raises(ValueError, match=re.escape(message)):
        build_settings(data)


def test_non_mapping_file_is_rejected(tmp_path: Path) -> None:
    """A YAML file whose root is not a mapping is rejected."""
    path = write_config(tmp_path, "- just\n- a list\n")
    with pytest.raises(ValueError, match="mapping at the top level"):
        load_settings(path)

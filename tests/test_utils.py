"""Tests for the config helpers."""

from __future__ import annotations

import pytest

from reviewform.utils import expand_env, parse_bool, sanitize_key, validate_url


def test_sanitize_key_replaces_unsafe_characters() -> None:
    """Characters unsafe in filenames are replaced."""
    assert sanitize_key("review-form-progress") == "review-form-progress"
    assert sanitize_key("drafts/user 1") == "drafts_user_1"
    assert sanitize_key("../..") == "default"


def test_expand_env_recurses(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment variables expand inside nested values."""
    monkeypatch.setenv("REVIEWFORM_HOST", "example.com")
    expanded = expand_env({"url": "https://$REVIEWFORM_HOST", "list": ["${REVIEWFORM_HOST}"], "n": 3})
    assert expanded == {"url": "https://example.com", "list": ["example.com"], "n": 3}


@pytest.mark.parametrize(("value", "expected"), [(True, True), ("yes", True), ("OFF", False), (0, False)])
def test_parse_bool(value: object, expected: bool) -> None:
    """Common boolean spellings are accepted."""
    assert parse_bool(value, field_name="flag") is expected


def test_parse_bool_rejects_garbage() -> None:
    """Unrecognized booleans raise ValueError."""
    with pytest.raises(ValueError, match="'flag' must be a boolean"):
        parse_bool("sometimes", field_name="flag")


def test_validate_url() -> None:
    """Only http and https URLs with a host are valid."""
    assert validate_url("https://example.com")
    assert validate_url("http://localhost:3000")
    assert not validate_url("example.com")
    assert not validate_url("ftp://example.com")

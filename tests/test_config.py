"""Tests for fproxy.config — environment parsing and validation."""

from __future__ import annotations

import pytest

from fproxy.config import DEFAULT_USER_AGENT, ConfigError, Settings, load_settings

_ENV_VARS = (
    "FOFA_KEY",
    "FOFA_SIZE",
    "FOFA_BASE_URL",
    "SEARCH_TIMEOUT",
    "CONCURRENCY_LIMIT",
    "REQUEST_TIMEOUT",
    "FPROXY_USER_AGENT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test from an environment with no scanner variables set."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch) -> None:
    monkeypatch.setenv("FOFA_KEY", "abc")
    settings = load_settings()
    assert settings.fofa_key == "abc"
    assert settings.fofa_size == 20
    assert settings.fofa_base_url == "https://fofa.info"
    assert settings.concurrency_limit == 5
    assert settings.request_timeout == 5.0
    assert settings.user_agent == DEFAULT_USER_AGENT


def test_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("FOFA_KEY", " abc ")
    monkeypatch.setenv("FOFA_SIZE", "100")
    monkeypatch.setenv("CONCURRENCY_LIMIT", "12")
    monkeypatch.setenv("REQUEST_TIMEOUT", "2.5")
    settings = load_settings()
    assert settings.fofa_key == "abc"
    assert settings.fofa_size == 100
    assert settings.concurrency_limit == 12
    assert settings.request_timeout == 2.5


def test_overrides_win_and_none_is_ignored(monkeypatch) -> None:
    monkeypatch.setenv("FOFA_KEY", "abc")
    monkeypatch.setenv("CONCURRENCY_LIMIT", "12")
    settings = load_settings(concurrency_limit=None, fofa_size=3)
    assert settings.concurrency_limit == 12
    assert settings.fofa_size == 3


def test_missing_key_is_an_error() -> None:
    with pytest.raises(ConfigError, match="FOFA_KEY"):
        load_settings()


def test_key_not_required_for_verification_only() -> None:
    assert load_settings(require_key=False).fofa_key == ""


def test_unparsable_number_is_an_error(monkeypatch) -> None:
    monkeypatch.setenv("FOFA_KEY", "abc")
    monkeypatch.setenv("CONCURRENCY_LIMIT", "five")
    with pytest.raises(ConfigError, match="CONCURRENCY_LIMIT"):
        load_settings()


@pytest.mark.parametrize(
    "field, value",
    [
        ("fofa_size", 0),
        ("concurrency_limit", 0),
        ("concurrency_limit", -3),
        ("request_timeout", 0.0),
        ("search_timeout", -1.0),
        ("user_agent", "  "),
    ],
)
def test_non_positive_values_rejected(field: str, value) -> None:
    settings = Settings(fofa_key="abc", **{field: value})
    with pytest.raises(ConfigError):
        settings.validate()


def test_settings_are_frozen() -> None:
    settings = Settings(fofa_key="abc")
    with pytest.raises(AttributeError):
        settings.fofa_key = "other"  # type: ignore[misc]

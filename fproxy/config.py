"""Centralised settings for the FProxy scanner.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).

Unlike a module-level singleton, a :class:`Settings` instance is built once
by the CLI via :func:`load_settings` and handed to the pipeline explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

DEFAULT_USER_AGENT = "clash-verge/v1.7.7"


class ConfigError(ValueError):
    """Raised when the scanner configuration is missing or invalid."""


def _env_int(name: str, default: str) -> int:
    raw = os.environ.get(name, default).strip()
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default).strip()
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    # ------------------------------------------------------------------
    # FOFA search backend
    # ------------------------------------------------------------------
    fofa_key: str = field(
        default_factory=lambda: os.environ.get("FOFA_KEY", "").strip()
    )
    fofa_size: int = field(default_factory=lambda: _env_int("FOFA_SIZE", "20"))
    fofa_base_url: str = field(
        default_factory=lambda: os.environ.get("FOFA_BASE_URL", "https://fofa.info")
    )
    search_timeout: float = field(
        default_factory=lambda: _env_float("SEARCH_TIMEOUT", "30.0")
    )

    # ------------------------------------------------------------------
    # Fetch / verify stages
    # ------------------------------------------------------------------
    concurrency_limit: int = field(
        default_factory=lambda: _env_int("CONCURRENCY_LIMIT", "5")
    )
    request_timeout: float = field(
        default_factory=lambda: _env_float("REQUEST_TIMEOUT", "5.0")
    )
    user_agent: str = field(
        default_factory=lambda: os.environ.get("FPROXY_USER_AGENT", DEFAULT_USER_AGENT)
    )

    def validate(self, *, require_key: bool = True) -> "Settings":
        """Return ``self`` if every value is usable, else raise :class:`ConfigError`."""
        if require_key and not self.fofa_key:
            raise ConfigError(
                "FOFA_KEY is required (get one from https://fofa.info/userInfo)"
            )
        if self.fofa_size <= 0:
            raise ConfigError("FOFA_SIZE must be a positive integer")
        if self.concurrency_limit <= 0:
            raise ConfigError("CONCURRENCY_LIMIT must be a positive integer")
        if self.request_timeout <= 0:
            raise ConfigError("REQUEST_TIMEOUT must be positive")
        if self.search_timeout <= 0:
            raise ConfigError("SEARCH_TIMEOUT must be positive")
        if not self.user_agent.strip():
            raise ConfigError("FPROXY_USER_AGENT must not be empty")
        return self


def load_settings(*, require_key: bool = True, **overrides: Any) -> Settings:
    """Build :class:`Settings` from the environment, apply CLI overrides, validate.

    Overrides whose value is ``None`` are ignored so that unset CLI options
    fall through to the environment defaults.

    Raises:
        ConfigError: If an environment value cannot be parsed or a setting
            fails validation.
    """
    settings = Settings()
    changes = {k: v for k, v in overrides.items() if v is not None}
    if changes:
        settings = replace(settings, **changes)
    return settings.validate(require_key=require_key)

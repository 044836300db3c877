"""event_roster.config

YAML settings for the roster scraper.

Example (config/event_roster.yml):

    base_url: https://connpass.com
    roster_path: participation
    timeout_seconds: 30
    user_agent: event-roster/0.1

Every key is optional. Credentials (the DB DSN) never live here; they come
from --db-dsn or EVENT_ROSTER_DB_DSN.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from event_roster.normalize import DEFAULT_BASE_URL
from event_roster.scrape import DEFAULT_USER_AGENT

ALLOWED_KEYS = frozenset({"base_url", "roster_path", "timeout_seconds", "user_agent"})
VALID_ROSTER_PATHS = ("participation", "participants")


class SettingsValidationError(ValueError):
    """Raised when a settings file fails validation."""


@dataclass(frozen=True)
class Settings:
    base_url: str = DEFAULT_BASE_URL
    roster_path: str = "participation"
    timeout_seconds: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT

    def with_overrides(self, **overrides: Any) -> Settings:
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        data = {**self.__dict__, **changes}
        validate_settings(data)
        return replace(self, **changes)


def validate_settings(data: dict[str, Any]) -> None:
    """Raise SettingsValidationError if data does not match the settings schema."""
    unknown = set(data) - ALLOWED_KEYS
    if unknown:
        raise SettingsValidationError(f"unknown settings keys: {sorted(unknown)}")

    base_url = data.get("base_url", DEFAULT_BASE_URL)
    if not isinstance(base_url, str) or not base_url.startswith(("http://", "https://")):
        raise SettingsValidationError(f"base_url must be an http(s) URL, got {base_url!r}")

    roster_path = data.get("roster_path", "participation")
    if roster_path not in VALID_ROSTER_PATHS:
        raise SettingsValidationError(
            f"roster_path must be one of {VALID_ROSTER_PATHS}, got {roster_path!r}"
        )

    timeout = data.get("timeout_seconds", 30.0)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise SettingsValidationError(f"timeout_seconds must be a positive number, got {timeout!r}")

    user_agent = data.get("user_agent", DEFAULT_USER_AGENT)
    if not isinstance(user_agent, str) or not user_agent.strip():
        raise SettingsValidationError("user_agent must be a non-empty string")


def load_settings(path: Path | None) -> Settings:
    """Load settings from a YAML file; None → defaults.

    Raises:
        SettingsValidationError: on unknown keys or bad values.
        FileNotFoundError: if the file does not exist.
    """
    if path is None:
        return Settings()
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise SettingsValidationError(f"{path}: top level must be a mapping")
    validate_settings(data)
    return Settings(
        base_url=str(data.get("base_url", DEFAULT_BASE_URL)),
        roster_path=str(data.get("roster_path", "participation")),
        timeout_seconds=float(data.get("timeout_seconds", 30.0)),
        user_agent=str(data.get("user_agent", DEFAULT_USER_AGENT)),
    )

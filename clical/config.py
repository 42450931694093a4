"""Configuration helpers for the clical CLI."""
from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Optional


DEFAULT_STATE_DIR = Path.home() / ".clical"
DEFAULT_HTTP_TIMEOUT = 30.0


class ConfigError(RuntimeError):
    """Raised when configuration values are invalid."""


@dataclass(slots=True)
class Settings:
    """Runtime configuration for the CLI."""

    state_dir: Path
    calendar_id: Optional[str] = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @property
    def client_secrets_path(self) -> Path:
        return self.state_dir / "credentials.json"

    @property
    def token_path(self) -> Path:
        return self.state_dir / "token.json"

    @property
    def calendar_id_path(self) -> Path:
        return self.state_dir / "calendar_id.txt"


def load_settings(*, state_dir: Optional[str] = None) -> Settings:
    """Load settings from environment variables.

    Args:
        state_dir: Optional override for ``CLICAL_STATE_DIR`` (the CLI flag).

    Returns:
        Settings with resolved paths.

    Raises:
        ConfigError: if the HTTP timeout is not a positive number.
    """

    raw_dir = state_dir or os.getenv("CLICAL_STATE_DIR")
    root = Path(raw_dir).expanduser() if raw_dir else DEFAULT_STATE_DIR

    calendar_id = os.getenv("CLICAL_CALENDAR_ID", "").strip() or None

    raw_timeout = os.getenv("CLICAL_HTTP_TIMEOUT", "").strip()
    timeout = DEFAULT_HTTP_TIMEOUT
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError as exc:
            raise ConfigError(
                f"CLICAL_HTTP_TIMEOUT must be a number of seconds, got {raw_timeout!r}."
            ) from exc
        if timeout <= 0:
            raise ConfigError("CLICAL_HTTP_TIMEOUT must be greater than zero.")

    return Settings(state_dir=root, calendar_id=calendar_id, http_timeout=timeout)

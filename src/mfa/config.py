"""Runtime configuration for the MFA engine.

All settings come from environment variables and are validated eagerly;
an invalid value raises ConfigError naming the variable.

Environment Variables:
    MFA_DATABASE_URL: SQLAlchemy URL for the analysis store (optional).
    MFA_SAVE_DEBOUNCE_MS: Quiescence window before a save starts (default 1000).
    MFA_LIST_LIMIT_MAX: Upper bound for list page sizes (default 200).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

ENV_DATABASE_URL: Final[str] = "MFA_DATABASE_URL"
ENV_SAVE_DEBOUNCE_MS: Final[str] = "MFA_SAVE_DEBOUNCE_MS"
ENV_LIST_LIMIT_MAX: Final[str] = "MFA_LIST_LIMIT_MAX"

DEFAULT_SAVE_DEBOUNCE_MS: Final[int] = 1000
DEFAULT_LIST_LIMIT_MAX: Final[int] = 200

MILLISECONDS_PER_SECOND: Final[int] = 1000


class ConfigError(Exception):
    """Raised when configuration is invalid."""


@dataclass(frozen=True)
class EngineConfig:
    """Engine configuration (immutable).

    Attributes:
        database_url: SQLAlchemy URL, or None for the in-memory store.
        save_debounce_ms: Debounce window for record saves.
        list_limit_max: Maximum number of analyses returned by one list call.
    """

    database_url: str | None
    save_debounce_ms: int
    list_limit_max: int

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.save_debounce_ms <= 0:
            raise ConfigError(
                f"{ENV_SAVE_DEBOUNCE_MS} must be a positive integer, got {self.save_debounce_ms}"
            )
        if self.list_limit_max <= 0:
            raise ConfigError(
                f"{ENV_LIST_LIMIT_MAX} must be a positive integer, got {self.list_limit_max}"
            )

    @property
    def save_debounce_seconds(self) -> float:
        return self.save_debounce_ms / MILLISECONDS_PER_SECOND


def _parse_positive_int(env_var: str, default: int) -> int:
    """Parse a positive integer from an environment variable.

    Args:
        env_var: Environment variable name.
        default: Value used when the variable is unset or blank.

    Returns:
        Parsed positive integer.

    Raises:
        ConfigError: If the value is set but not a positive integer.
    """
    raw = os.environ.get(env_var)
    if raw is None:
        return default

    raw = raw.strip()
    if not raw:
        return default

    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{env_var} must be a positive integer, got '{raw}'") from e

    if value <= 0:
        raise ConfigError(f"{env_var} must be a positive integer, got {value}")

    return value


def load_config() -> EngineConfig:
    """Load configuration from the environment.

    Raises:
        ConfigError: If any variable is invalid.
    """
    database_url = os.environ.get(ENV_DATABASE_URL, "").strip() or None
    return EngineConfig(
        database_url=database_url,
        save_debounce_ms=_parse_positive_int(ENV_SAVE_DEBOUNCE_MS, DEFAULT_SAVE_DEBOUNCE_MS),
        list_limit_max=_parse_positive_int(ENV_LIST_LIMIT_MAX, DEFAULT_LIST_LIMIT_MAX),
    )

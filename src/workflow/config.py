"""Configuration for episode sessions and submissions.

Provides environment-based configuration for polling cadence, the
submission wait budget, trigger timeouts and notice retention.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _get_int_env(
    name: str,
    default: int,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """Parse an integer from an environment variable with validation.

    Args:
        name: Environment variable name.
        default: Default value if env var is not set.
        min_val: Minimum allowed value (inclusive), or None for no minimum.
        max_val: Maximum allowed value (inclusive), or None for no maximum.

    Returns:
        The parsed and validated integer value.

    Raises:
        ValueError: If the value cannot be parsed as an integer or is out of range.
    """
    raw = os.getenv(name)
    if raw is None:
        return default

    try:
        value = int(raw)
    except ValueError:
        raise ValueError(
            f"Invalid value for {name}: '{raw}' is not a valid integer"
        )

    if min_val is not None and value < min_val:
        raise ValueError(
            f"Invalid value for {name}: {value} must be >= {min_val}"
        )

    if max_val is not None and value > max_val:
        raise ValueError(
            f"Invalid value for {name}: {value} must be <= {max_val}"
        )

    return value


def _get_float_env(name: str, default: float, min_val: Optional[float] = None) -> float:
    """Parse a float from an environment variable with validation."""
    raw = os.getenv(name)
    if raw is None:
        return default

    try:
        value = float(raw)
    except ValueError:
        raise ValueError(
            f"Invalid value for {name}: '{raw}' is not a valid number"
        )

    if min_val is not None and value < min_val:
        raise ValueError(
            f"Invalid value for {name}: {value} must be >= {min_val}"
        )

    return value


@dataclass
class StudioConfig:
    """Timing and retention settings for the episode dashboard backend.

    All settings can be overridden via environment variables.
    """

    poll_interval_seconds: float = 1.0
    wait_budget_seconds: int = 120  # 2 minutes for script generation to show up
    audio_trigger_timeout_seconds: int = 30
    max_notices: int = 20
    recent_episodes_limit: int = 50

    @classmethod
    def from_env(cls) -> "StudioConfig":
        """Create configuration from environment variables.

        Returns:
            StudioConfig instance with values from environment or defaults.

        Raises:
            ValueError: If any environment variable has an invalid value.
        """
        poll_interval_seconds = _get_float_env(
            "STUDIO_POLL_INTERVAL_SECONDS", 1.0, min_val=0.05
        )
        wait_budget_seconds = _get_int_env(
            "STUDIO_WAIT_BUDGET_SECONDS", 120, min_val=1
        )
        audio_trigger_timeout_seconds = _get_int_env(
            "STUDIO_AUDIO_TIMEOUT_SECONDS", 30, min_val=1
        )
        max_notices = _get_int_env("STUDIO_MAX_NOTICES", 20, min_val=1)
        recent_episodes_limit = _get_int_env(
            "STUDIO_RECENT_EPISODES_LIMIT", 50, min_val=1, max_val=1000
        )

        if poll_interval_seconds >= wait_budget_seconds:
            raise ValueError(
                f"Invalid configuration: STUDIO_POLL_INTERVAL_SECONDS "
                f"({poll_interval_seconds}) must be less than "
                f"STUDIO_WAIT_BUDGET_SECONDS ({wait_budget_seconds})"
            )

        return cls(
            poll_interval_seconds=poll_interval_seconds,
            wait_budget_seconds=wait_budget_seconds,
            audio_trigger_timeout_seconds=audio_trigger_timeout_seconds,
            max_notices=max_notices,
            recent_episodes_limit=recent_episodes_limit,
        )

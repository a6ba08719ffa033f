"""Settings for floe-fixtures.

This module provides:
- FixtureSettings: environment-driven settings (FLOE_FIXTURES_ prefix)
- load_repository: resolves the configured Repository binding
"""

from __future__ import annotations

import importlib
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from floe_fixtures.errors import ConfigurationError
from floe_fixtures.keys import SEQUENTIAL_KEY_MAX, SEQUENTIAL_KEY_MIN


class FixtureSettings(BaseSettings):
    """Process-wide fixture settings.

    Can be loaded from environment variables with FLOE_FIXTURES_ prefix.

    Example:
        >>> # From environment
        >>> settings = FixtureSettings()
        >>>
        >>> # Explicit
        >>> settings = FixtureSettings(
        ...     seed=42,
        ...     repository="tests.support:repository",
        ... )
    """

    model_config = SettingsConfigDict(
        env_prefix="FLOE_FIXTURES_",
        env_file=".env",
        extra="ignore",
    )

    seed: int | None = Field(
        default=None,
        description="Random seed for reproducible primary keys",
    )
    sequential_key_min: int = Field(
        default=SEQUENTIAL_KEY_MIN,
        ge=1,
        description="Smallest synthesized sequential integer key",
    )
    sequential_key_max: int = Field(
        default=SEQUENTIAL_KEY_MAX,
        ge=1,
        description="Largest synthesized sequential integer key",
    )
    repository: str | None = Field(
        default=None,
        description="Repository binding as 'module:attribute'",
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum log level",
    )
    json_logs: bool = Field(
        default=False,
        description="Render logs as JSON instead of console output",
    )

    @model_validator(mode="after")
    def validate_key_range(self) -> FixtureSettings:
        """Validate that sequential_key_max >= sequential_key_min."""
        if self.sequential_key_max < self.sequential_key_min:
            msg = (
                f"sequential_key_max ({self.sequential_key_max}) must be >= "
                f"sequential_key_min ({self.sequential_key_min})"
            )
            raise ValueError(msg)
        return self


def load_repository(settings: FixtureSettings) -> Any | None:
    """Resolve the configured Repository.

    The attribute may be a Repository instance or a zero-argument callable
    returning one.

    Args:
        settings: Fixture settings.

    Returns:
        The Repository, or None when no binding is configured.

    Raises:
        ConfigurationError: If the import path cannot be resolved.
    """
    if not settings.repository:
        return None

    module_name, _, attribute = settings.repository.partition(":")
    if not module_name or not attribute:
        msg = f"Invalid repository binding '{settings.repository}'. Expected 'module:attribute'"
        raise ConfigurationError(msg)

    try:
        target = getattr(importlib.import_module(module_name), attribute)
    except (ImportError, AttributeError) as exc:
        raise ConfigurationError(
            f"Cannot load repository '{settings.repository}'",
            internal_details=str(exc),
        ) from exc

    if callable(target) and not hasattr(target, "get_by_key"):
        return target()
    return target

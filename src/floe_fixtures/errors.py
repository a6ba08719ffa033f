"""Custom exceptions for floe-fixtures.

This module defines the exception hierarchy:
- FixtureError (base)
- ValidationError
- NotFoundError
- PersistenceError
- MissingImplementationError
- ConfigurationError

All of them are fail-fast: the factory never retries, never commits partially
and never compensates. The caller receives the error of the stage that failed.
"""

from __future__ import annotations

from typing import Any

import structlog

logger = structlog.get_logger(__name__)


def _entity_name(entity_type: Any) -> str:
    return getattr(entity_type, "__name__", str(entity_type))


class FixtureError(Exception):
    """Base exception for all floe-fixtures operations.

    Attributes:
        message: Human-readable error description.
        details: Optional additional context about the error.

    Example:
        >>> try:
        ...     factory.insert(Order, customer_id=7)
        ... except FixtureError as e:
        ...     print(f"Fixture failed: {e}")
    """

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, str] | None = None,
        internal_details: str | None = None,
    ) -> None:
        """Initialize FixtureError.

        Args:
            message: Human-readable error description.
            details: Optional additional context about the error.
            internal_details: Technical details, logged but not rendered.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

        if internal_details:
            logger.error(
                "fixture_error",
                error_type=self.__class__.__name__,
                message=message,
                internal_details=internal_details,
            )

    def __str__(self) -> str:
        """Return string representation with details if present."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ValidationError(FixtureError):
    """The entity's Validator rejected an attribute map.

    Raised when:
    - A required field is missing
    - A field fails its type or value constraint
    - Both or neither of a reference and its owner key were supplied

    Attributes:
        entity: Name of the entity type being validated.
        errors: Individual error descriptions, one per failed check.
    """

    def __init__(
        self,
        entity_type: Any,
        errors: list[str],
        *,
        internal_details: str | None = None,
    ) -> None:
        """Initialize ValidationError.

        Args:
            entity_type: The entity type whose attributes were rejected.
            errors: Individual error descriptions.
            internal_details: Technical details for logging.
        """
        self.entity = _entity_name(entity_type)
        self.errors = list(errors)
        super().__init__(
            f"Validation failed for {self.entity}: {'; '.join(self.errors)}",
            details={"entity": self.entity},
            internal_details=internal_details,
        )


class NotFoundError(FixtureError):
    """The Repository has no instance for the requested key.

    Example:
        >>> try:
        ...     factory.insert(Order, customer_id=404)
        ... except NotFoundError as e:
        ...     print(e.entity, e.key)
    """

    def __init__(self, entity_type: Any, key: Any) -> None:
        """Initialize NotFoundError.

        Args:
            entity_type: The entity type that was looked up.
            key: The primary key that could not be resolved.
        """
        self.entity = _entity_name(entity_type)
        self.key = key
        super().__init__(
            f"{self.entity} not found",
            details={"entity": self.entity, "key": repr(key)},
        )


class PersistenceError(FixtureError):
    """The Repository failed to persist a validated fixture.

    Raised when:
    - A constraint is violated (duplicate key, dangling reference)
    - The persistence backend is unavailable
    """

    def __init__(
        self,
        entity_type: Any,
        message: str = "Persistence failed",
        *,
        cause: str | None = None,
    ) -> None:
        """Initialize PersistenceError.

        Args:
            entity_type: The entity type being persisted.
            message: Human-readable error description.
            cause: The underlying cause of the failure.
        """
        self.entity = _entity_name(entity_type)
        self.cause = cause
        details = {"entity": self.entity}
        if cause:
            details["cause"] = cause
        super().__init__(message, details=details)


class MissingImplementationError(FixtureError):
    """An entity type lacks a required registration.

    This is a programmer error: every entity type reached by a fixture needs a
    schema declaration, a default-value provider and a Validator.

    Attributes:
        entity: Name of the entity type.
        capability: What is missing ("schema", "factory", "validator").
    """

    def __init__(self, entity_type: Any, capability: str) -> None:
        """Initialize MissingImplementationError.

        Args:
            entity_type: The entity type lacking the registration.
            capability: Name of the missing capability.
        """
        self.entity = _entity_name(entity_type)
        self.capability = capability
        super().__init__(
            f"No {capability} registered for {self.entity}",
            details={"entity": self.entity, "capability": capability},
        )


class ConfigurationError(FixtureError):
    """Fixture wiring or settings are invalid.

    Use this exception when:
    - An entity type is registered twice
    - A repository import path cannot be resolved
    - insert() is called without a bound repository
    """

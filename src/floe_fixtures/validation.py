"""Validator contract and the bundled pydantic implementation.

This module provides:
- ValidatedResult: immutable outcome of a successful validation
- Validator: protocol every entity's Validator implements
- ModelValidator: Validator for pydantic models

A Validator receives the final attribute map of a fixture. Related entities
appear in it as attachments (see floe_fixtures.attachments) and the Validator
branches on their ``kind`` tag: cast maps are validated recursively by the
related entity's Validator, put results are attached unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

import pydantic
import structlog
from pydantic import BaseModel, ConfigDict

from floe_fixtures.attachments import is_attachment
from floe_fixtures.errors import ValidationError
from floe_fixtures.schema import field_values

logger = structlog.get_logger(__name__)


class ValidatedResult(BaseModel):
    """Outcome of validating an attribute map against an entity type.

    Attributes:
        entity_type: The validated entity type.
        base: Instance validation started from, or None for a fresh entity.
        changes: Resolved attributes; children are nested ValidatedResults.
        value: The validated, realizable instance.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    entity_type: type
    base: Any = None
    changes: dict[str, Any]
    value: Any

    @property
    def is_new(self) -> bool:
        """True when the result describes an entity that has never been realized."""
        return self.base is None


@runtime_checkable
class Validator(Protocol):
    """Turns an attribute map into a validated result or a ValidationError."""

    def validate(self, instance: Any | None, attrs: Mapping[str, Any]) -> ValidatedResult:
        """Validate ``attrs`` applied on top of ``instance`` (None for a fresh entity).

        Raises:
            ValidationError: If the attributes are rejected.
        """
        ...

    def realize(self, result: ValidatedResult) -> Any:
        """Return the concrete instance described by ``result``.

        Raises:
            ValidationError: If the result cannot be realized.
        """
        ...


def _realized(value: Any) -> Any:
    if isinstance(value, ValidatedResult):
        return value.value
    if isinstance(value, list):
        return [_realized(v) for v in value]
    return value


def _format_pydantic_error(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg', 'invalid')}" if location else str(error.get("msg"))


class ModelValidator:
    """Validator for pydantic model entity types.

    Attributes:
        entity_type: The pydantic model validated by this instance.
        permitted: Fields accepted from the attribute map (None accepts all).
        required: Fields that must be present and not None.
        references: Owning references mapped to their owner key; exactly one of
            the two must be supplied, unless the key equals the referenced
            instance's ``reference_key``.
        reference_key: Primary key field of referenced instances.

    Example:
        >>> validator = ModelValidator(
        ...     Order,
        ...     registry.validator_for,
        ...     required=["status"],
        ...     references={"customer": "customer_id"},
        ... )
        >>> result = validator.validate(None, {"status": "pending", "customer_id": 1})
        >>> validator.realize(result)
        Order(id=None, status='pending', customer_id=1, customer=None)
    """

    def __init__(
        self,
        entity_type: type[BaseModel],
        resolve_validator: Callable[[type], Validator],
        *,
        permitted: Iterable[str] | None = None,
        required: Iterable[str] = (),
        references: Mapping[str, str] | None = None,
        reference_key: str = "id",
    ) -> None:
        """Initialize the validator.

        Args:
            entity_type: The pydantic model to validate against.
            resolve_validator: Lookup for related entities' Validators.
            permitted: Optional whitelist of accepted fields.
            required: Fields that must be set.
            references: Relation name -> owner key pairs.
            reference_key: Key field compared against the owner key.
        """
        self.entity_type = entity_type
        self.permitted = frozenset(permitted) if permitted is not None else None
        self.required = tuple(required)
        self.references = dict(references or {})
        self.reference_key = reference_key
        self._resolve_validator = resolve_validator

    def validate(self, instance: Any | None, attrs: Mapping[str, Any]) -> ValidatedResult:
        changes = {
            name: self._resolve(value)
            for name, value in attrs.items()
            if self.permitted is None or name in self.permitted
        }

        data = field_values(instance) if instance is not None else {}
        data.update({name: _realized(value) for name, value in changes.items()})

        errors = [*self._check_required(data), *self._check_references(changes, data)]
        if errors:
            raise ValidationError(self.entity_type, errors)

        try:
            value = self.entity_type.model_validate(data)
        except pydantic.ValidationError as exc:
            raise ValidationError(
                self.entity_type,
                [_format_pydantic_error(e) for e in exc.errors()],
                internal_details=str(exc),
            ) from exc

        return ValidatedResult(
            entity_type=self.entity_type,
            base=instance,
            changes=changes,
            value=value,
        )

    def realize(self, result: ValidatedResult) -> Any:
        return result.value

    def _resolve(self, value: Any) -> Any:
        if isinstance(value, list):
            return [self._resolve(v) for v in value]
        if not is_attachment(value):
            return value

        if value.kind == "cast":
            child_validator = self._resolve_validator(value.entity_type)
            return child_validator.validate(None, value.attrs)
        # "put": already validated by the child's own Validator
        return value.result

    def _check_required(self, data: Mapping[str, Any]) -> list[str]:
        return [f"{name}: field required" for name in self.required if data.get(name) is None]

    def _check_references(self, changes: Mapping[str, Any], data: Mapping[str, Any]) -> list[str]:
        errors: list[str] = []
        for relation, owner_key in self.references.items():
            has_relation = changes.get(relation) is not None
            has_key = data.get(owner_key) is not None
            if has_relation and has_key and not self._same_reference(data, relation, owner_key):
                errors.append(f"{relation}: cannot be provided together with {owner_key}")
            elif not has_relation and not has_key:
                errors.append(f"{owner_key}: field required")
        return errors

    def _same_reference(self, data: Mapping[str, Any], relation: str, owner_key: str) -> bool:
        # Stored instances carry both the reference and its key
        key = getattr(data[relation], self.reference_key, None)
        return key is not None and key == data[owner_key]

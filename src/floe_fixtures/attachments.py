"""Relation attachments handed from the factory core to a Validator.

A related entity reaches its parent's Validator in one of two forms,
discriminated by the ``kind`` tag:
- CastAttachment: raw attribute map, still to be validated recursively
- PutAttachment: child already validated by its own Validator, attach as-is
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class CastAttachment(BaseModel):
    """Raw attribute map pending recursive validation.

    Attributes:
        kind: Discriminator, always "cast".
        entity_type: Entity type the map describes.
        attrs: Attribute map, possibly holding nested attachments.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["cast"] = "cast"
    entity_type: type
    attrs: dict[str, Any] = Field(default_factory=dict)


class PutAttachment(BaseModel):
    """Pre-validated child attached directly.

    Attributes:
        kind: Discriminator, always "put".
        entity_type: Entity type of the child.
        result: ValidatedResult produced by the child's own Validator.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["put"] = "put"
    entity_type: type
    result: Any


def is_attachment(value: Any) -> bool:
    """True for either attachment form."""
    return isinstance(value, (CastAttachment, PutAttachment))

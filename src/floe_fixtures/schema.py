"""Schema descriptors for fixture entity types.

This module provides:
- Mode: build / insert / nested, with the descent rule for related entities
- RelationStrategy: how realized related instances are attached (cast / put)
- Cardinality, RelationKind: shape of a declared relation
- PrimaryKeyType, PrimaryKeyShape: how an entity's key is synthesized
- Relation, EntitySchema: read-only descriptors
- SchemaIntrospector: protocol answering relation and key queries
- SchemaCatalog: explicit in-process SchemaIntrospector

All descriptors are immutable (frozen=True) and validate at construction time.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, model_validator

from floe_fixtures.errors import ConfigurationError, MissingImplementationError


class Mode(str, Enum):
    """Fixture construction mode.

    - BUILD: construct only, no persistence
    - INSERT: construct and persist
    - NESTED: dependent of an enclosing insert; never fetches or persists itself
    """

    BUILD = "build"
    INSERT = "insert"
    NESTED = "nested"

    def descend(self) -> Mode:
        """Return the mode used for related entities.

        An insert at the root becomes nested for every descendant; build and
        nested are preserved.
        """
        if self is Mode.INSERT:
            return Mode.NESTED
        return self


class RelationStrategy(str, Enum):
    """Attachment discipline for realized related instances.

    - CAST: attach a raw attribute map; the parent's Validator recurses into it
    - PUT: attach a child already validated by its own Validator
    """

    CAST = "cast"
    PUT = "put"


class Cardinality(str, Enum):
    """Whether a relation holds one related object or a collection."""

    ONE = "one"
    MANY = "many"


class RelationKind(str, Enum):
    """Which side holds the link.

    - OWNING_REFERENCE: this entity holds a foreign key to the related entity
    - OWNED_CHILD: one-to-one, one-to-many, many-to-many and embeds
    """

    OWNING_REFERENCE = "owning_reference"
    OWNED_CHILD = "owned_child"


class PrimaryKeyType(str, Enum):
    """Primary key shapes understood by the key generator."""

    NONE = "none"
    SEQUENTIAL_INTEGER = "sequential_integer"
    OPAQUE_ID = "opaque_id"


class PrimaryKeyShape(BaseModel):
    """Primary key declaration of an entity type.

    Attributes:
        type: Key shape.
        field: Name of the key field.

    Example:
        >>> PrimaryKeyShape(type=PrimaryKeyType.OPAQUE_ID, field="uuid")
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: PrimaryKeyType = Field(
        default=PrimaryKeyType.SEQUENTIAL_INTEGER,
        description="Primary key shape",
    )
    field: str = Field(default="id", min_length=1, description="Primary key field name")


NO_PRIMARY_KEY = PrimaryKeyShape(type=PrimaryKeyType.NONE)


class Relation(BaseModel):
    """A declared link from one entity type to another.

    Attributes:
        name: Attribute name holding the related object(s).
        related: The related entity type.
        cardinality: ONE or MANY.
        kind: OWNING_REFERENCE (belongs-to) or OWNED_CHILD.
        owner_key: Foreign key field, required for OWNING_REFERENCE.

    Example:
        >>> Relation(
        ...     name="customer",
        ...     related=Customer,
        ...     kind=RelationKind.OWNING_REFERENCE,
        ...     owner_key="customer_id",
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1, description="Relation attribute name")
    related: type = Field(..., description="Related entity type")
    cardinality: Cardinality = Field(default=Cardinality.ONE, description="One or many")
    kind: RelationKind = Field(default=RelationKind.OWNED_CHILD, description="Relation kind")
    owner_key: str | None = Field(default=None, description="Foreign key field name")

    @model_validator(mode="after")
    def validate_owning_reference(self) -> Relation:
        """Owning references are cardinality one and always name their key."""
        if self.kind is RelationKind.OWNING_REFERENCE:
            if self.cardinality is not Cardinality.ONE:
                msg = f"Owning reference '{self.name}' must have cardinality one"
                raise ValueError(msg)
            if not self.owner_key:
                msg = f"Owning reference '{self.name}' requires owner_key"
                raise ValueError(msg)
        elif self.owner_key is not None:
            msg = f"owner_key is only valid on owning references, got it on '{self.name}'"
            raise ValueError(msg)
        return self

    @property
    def is_owning_reference(self) -> bool:
        """True when this entity holds the foreign key."""
        return self.kind is RelationKind.OWNING_REFERENCE


def belongs_to(name: str, related: type, *, owner_key: str | None = None) -> Relation:
    """Declare an owning reference; the key defaults to ``<name>_id``."""
    return Relation(
        name=name,
        related=related,
        kind=RelationKind.OWNING_REFERENCE,
        owner_key=owner_key or f"{name}_id",
    )


def has_one(name: str, related: type) -> Relation:
    """Declare a one-cardinality owned child (has-one or embeds-one)."""
    return Relation(name=name, related=related)


def has_many(name: str, related: type) -> Relation:
    """Declare a many-cardinality owned child (has-many, many-to-many or embeds-many)."""
    return Relation(name=name, related=related, cardinality=Cardinality.MANY)


class EntitySchema(BaseModel):
    """Everything the fixture core needs to know about one entity type.

    Attributes:
        entity_type: The entity class.
        primary_key: Primary key shape.
        relations: Association relations, in expansion order.
        embeds: Embedded value objects, in expansion order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    entity_type: type
    primary_key: PrimaryKeyShape = Field(default_factory=PrimaryKeyShape)
    relations: tuple[Relation, ...] = ()
    embeds: tuple[Relation, ...] = ()

    @model_validator(mode="after")
    def validate_names(self) -> EntitySchema:
        """Relation names are unique and embeds never own references."""
        names = [r.name for r in (*self.relations, *self.embeds)]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            msg = f"Duplicate relation names: {', '.join(duplicates)}"
            raise ValueError(msg)
        for embed in self.embeds:
            if embed.is_owning_reference:
                msg = f"Embed '{embed.name}' cannot be an owning reference"
                raise ValueError(msg)
        return self


@runtime_checkable
class SchemaIntrospector(Protocol):
    """Answers relation and primary-key-shape queries for an entity type."""

    def relations_of(self, entity_type: type) -> tuple[Relation, ...]:
        """Return association relations in a fixed order."""
        ...

    def embeds_of(self, entity_type: type) -> tuple[Relation, ...]:
        """Return embedded value object relations in a fixed order."""
        ...

    def primary_key_of(self, entity_type: type) -> PrimaryKeyShape:
        """Return the primary key shape."""
        ...


class SchemaCatalog:
    """SchemaIntrospector backed by explicit declarations.

    Example:
        >>> catalog = SchemaCatalog()
        >>> catalog.declare(Customer)
        >>> catalog.declare(Order, relations=[belongs_to("customer", Customer)])
        >>> [r.name for r in catalog.relations_of(Order)]
        ['customer']
    """

    def __init__(self) -> None:
        self._schemas: dict[type, EntitySchema] = {}

    def declare(
        self,
        entity_type: type,
        *,
        primary_key: PrimaryKeyShape | PrimaryKeyType | None = None,
        relations: Iterable[Relation] = (),
        embeds: Iterable[Relation] = (),
    ) -> EntitySchema:
        """Declare the schema of an entity type.

        Args:
            entity_type: The entity class.
            primary_key: Key shape, or just its type with the default field
                name "id". Defaults to a sequential integer "id".
            relations: Association relations.
            embeds: Embedded value objects.

        Returns:
            The registered EntitySchema.

        Raises:
            ConfigurationError: If the entity type is already declared.
        """
        if entity_type in self._schemas:
            msg = f"Schema already declared for {entity_type.__name__}"
            raise ConfigurationError(msg)

        if isinstance(primary_key, PrimaryKeyType):
            primary_key = PrimaryKeyShape(type=primary_key)

        schema = EntitySchema(
            entity_type=entity_type,
            primary_key=primary_key or PrimaryKeyShape(),
            relations=tuple(relations),
            embeds=tuple(embeds),
        )
        self._schemas[entity_type] = schema
        return schema

    def schema_of(self, entity_type: type) -> EntitySchema:
        """Return the declared schema.

        Raises:
            MissingImplementationError: If the entity type is not declared.
        """
        try:
            return self._schemas[entity_type]
        except KeyError:
            raise MissingImplementationError(entity_type, "schema") from None

    def relations_of(self, entity_type: type) -> tuple[Relation, ...]:
        return self.schema_of(entity_type).relations

    def embeds_of(self, entity_type: type) -> tuple[Relation, ...]:
        return self.schema_of(entity_type).embeds

    def primary_key_of(self, entity_type: type) -> PrimaryKeyShape:
        return self.schema_of(entity_type).primary_key

    def entity_types(self) -> list[type]:
        """Return every declared entity type, in declaration order."""
        return list(self._schemas)

    def __contains__(self, entity_type: Any) -> bool:
        return entity_type in self._schemas


def field_values(instance: Any) -> dict[str, Any]:
    """Return a shallow attribute map view of a realized instance.

    Pydantic models yield their declared fields; other objects fall back to
    their instance ``__dict__``.
    """
    if isinstance(instance, BaseModel):
        return dict(instance)
    return dict(vars(instance))

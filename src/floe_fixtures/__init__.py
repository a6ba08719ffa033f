"""Relational test fixtures for floe-runtime.

This package builds well-formed fixtures for entity types with relations:
given an entity type and caller overrides it produces either an in-memory
instance (build) or a persisted one (insert), synthesizing primary keys and
recursively resolving parents, children, many-to-many collections and
embedded value objects.

Key Components:
- schema: Entity, relation and primary key descriptors (SchemaCatalog)
- registry: Per-entity factories and Validators (FactoryRegistry)
- validation: Validator protocol and the pydantic ModelValidator
- repository: Repository protocol and InMemoryRepository
- factory: FixtureFactory with build and insert

Example:
    >>> from floe_fixtures import (
    ...     EntityFactory, FactoryRegistry, FixtureFactory, InMemoryRepository,
    ...     SchemaCatalog, belongs_to,
    ... )
    >>> catalog = SchemaCatalog()
    >>> catalog.declare(Customer)
    >>> catalog.declare(Order, relations=[belongs_to("customer", Customer)])
    >>> registry = FactoryRegistry()
    >>>
    >>> @registry.factory(Order)
    ... class OrderFactory(EntityFactory):
    ...     def build_map(self, mode, attrs):
    ...         return {"status": "pending", "customer": {}}
    >>>
    >>> factory = FixtureFactory(registry, catalog, InMemoryRepository(catalog))
    >>> order = factory.build(Order, status="cancelled")
"""

from __future__ import annotations

from floe_fixtures.attachments import CastAttachment, PutAttachment
from floe_fixtures.config import FixtureSettings
from floe_fixtures.errors import (
    ConfigurationError,
    FixtureError,
    MissingImplementationError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from floe_fixtures.factory import FixtureFactory
from floe_fixtures.keys import PrimaryKeyGenerator
from floe_fixtures.registry import EntityFactory, FactoryDefinition, FactoryRegistry
from floe_fixtures.repository import InMemoryRepository, Repository
from floe_fixtures.schema import (
    Cardinality,
    EntitySchema,
    Mode,
    PrimaryKeyShape,
    PrimaryKeyType,
    Relation,
    RelationKind,
    RelationStrategy,
    SchemaCatalog,
    SchemaIntrospector,
    belongs_to,
    has_many,
    has_one,
)
from floe_fixtures.validation import ModelValidator, ValidatedResult, Validator

__version__ = "0.1.0"

__all__ = [
    # Entry point
    "FixtureFactory",
    # Schema
    "Cardinality",
    "EntitySchema",
    "Mode",
    "PrimaryKeyShape",
    "PrimaryKeyType",
    "Relation",
    "RelationKind",
    "RelationStrategy",
    "SchemaCatalog",
    "SchemaIntrospector",
    "belongs_to",
    "has_many",
    "has_one",
    # Registry
    "EntityFactory",
    "FactoryDefinition",
    "FactoryRegistry",
    "PrimaryKeyGenerator",
    # Validation
    "CastAttachment",
    "ModelValidator",
    "PutAttachment",
    "ValidatedResult",
    "Validator",
    # Persistence
    "InMemoryRepository",
    "Repository",
    # Configuration
    "FixtureSettings",
    # Exceptions
    "ConfigurationError",
    "FixtureError",
    "MissingImplementationError",
    "NotFoundError",
    "PersistenceError",
    "ValidationError",
]

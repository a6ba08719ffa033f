"""Fixture entry points: build and insert.

This module provides the FixtureFactory, which drives attribute map
construction and then hands the result to the entity's Validator and, for
inserts, to the Repository.
"""

from __future__ import annotations

from typing import Any

import structlog

from floe_fixtures.builder import AttributeMapBuilder, Overrides, normalize
from floe_fixtures.config import FixtureSettings, load_repository
from floe_fixtures.errors import ConfigurationError, FixtureError, PersistenceError
from floe_fixtures.keys import PrimaryKeyGenerator
from floe_fixtures.observability import configure_logging
from floe_fixtures.registry import FactoryRegistry
from floe_fixtures.repository import Repository
from floe_fixtures.schema import Mode, SchemaIntrospector

logger = structlog.get_logger(__name__)


class FixtureFactory:
    """Builds and inserts well-formed fixtures.

    The repository binding is fixed at construction and never changes
    afterwards; independent factories share no mutable state.

    Example:
        >>> factory = FixtureFactory(registry, catalog, InMemoryRepository(catalog))
        >>> order = factory.build(Order, status="cancelled")
        >>> order.customer.name
        'Jane Doe'
        >>> persisted = factory.insert(Order, {"customer_id": 7})
    """

    def __init__(
        self,
        registry: FactoryRegistry,
        introspector: SchemaIntrospector,
        repository: Repository | None = None,
        *,
        key_generator: PrimaryKeyGenerator | None = None,
    ) -> None:
        """Initialize the factory.

        Args:
            registry: Factory and Validator registry.
            introspector: Source of relation and primary key declarations.
            repository: Persistence backend for insert and owner-key lookups.
            key_generator: Primary key generator (default: unseeded).
        """
        self.registry = registry
        self.introspector = introspector
        self._repository = repository
        self._builder = AttributeMapBuilder(
            registry,
            introspector,
            key_generator or PrimaryKeyGenerator(introspector),
            repository,
        )

    @classmethod
    def from_settings(
        cls,
        registry: FactoryRegistry,
        introspector: SchemaIntrospector,
        settings: FixtureSettings | None = None,
    ) -> FixtureFactory:
        """Create a factory wired from FixtureSettings.

        Args:
            registry: Factory and Validator registry.
            introspector: Source of relation and primary key declarations.
            settings: Settings (default: loaded from the environment).

        Returns:
            Configured FixtureFactory.

        Raises:
            ConfigurationError: If the repository binding cannot be loaded.
        """
        settings = settings or FixtureSettings()
        configure_logging(settings)
        key_generator = PrimaryKeyGenerator(
            introspector,
            seed=settings.seed,
            sequential_min=settings.sequential_key_min,
            sequential_max=settings.sequential_key_max,
        )
        return cls(
            registry,
            introspector,
            load_repository(settings),
            key_generator=key_generator,
        )

    @property
    def repository(self) -> Repository | None:
        """The bound Repository, if any."""
        return self._repository

    def build_map(
        self, entity_type: type, mode: Mode, overrides: Overrides | None = None, /, **fields: Any
    ) -> dict[str, Any]:
        """Return the unvalidated attribute map a build or insert would validate."""
        return self._builder.build(entity_type, mode, normalize(overrides, **fields))

    def build(self, entity_type: type, overrides: Overrides | None = None, /, **fields: Any) -> Any:
        """Construct a fixture without persisting it.

        Args:
            entity_type: Entity to build.
            overrides: Attributes winning over the entity's defaults, as a
                mapping or (key, value) pairs.
            **fields: Further overrides, winning over ``overrides``.

        Returns:
            The realized instance.

        Raises:
            ValidationError: If the Validator rejects the attributes.
            MissingImplementationError: If a factory or Validator is missing.
        """
        validator = self.registry.validator_for(entity_type)
        attrs = self._builder.build(entity_type, Mode.BUILD, normalize(overrides, **fields))

        instance = validator.realize(validator.validate(None, attrs))
        logger.debug("fixture_built", entity=entity_type.__name__)
        return instance

    def insert(self, entity_type: type, overrides: Overrides | None = None, /, **fields: Any) -> Any:
        """Construct and persist a fixture.

        An entity factory overriding ``insert`` takes over completely: its
        result is returned unmodified and neither the Validator nor the
        Repository is called.

        Args:
            entity_type: Entity to insert.
            overrides: Attributes winning over the entity's defaults.
            **fields: Further overrides, winning over ``overrides``.

        Returns:
            The persisted instance.

        Raises:
            ValidationError: If the Validator rejects the attributes.
            NotFoundError: If an owning-reference key does not resolve.
            PersistenceError: If the Repository fails to create the fixture.
            ConfigurationError: If no Repository is bound.
        """
        definition = self.registry.definition_for(entity_type)
        attrs = normalize(overrides, **fields)

        if definition.custom_insert is not None:
            logger.debug("fixture_custom_insert", entity=entity_type.__name__)
            return definition.custom_insert(entity_type, attrs)

        validator = self.registry.validator_for(entity_type)
        repository = self._require_repository()
        attrs = self._builder.build(entity_type, Mode.INSERT, attrs)
        result = validator.validate(None, attrs)

        try:
            instance = repository.create(result)
        except FixtureError:
            raise
        except Exception as exc:
            raise PersistenceError(
                entity_type,
                f"Failed to insert {entity_type.__name__}: {exc}",
                cause=str(exc),
            ) from exc

        logger.info("fixture_inserted", entity=entity_type.__name__)
        return instance

    def _require_repository(self) -> Repository:
        if self._repository is None:
            msg = "insert() requires a repository; none is bound to this factory"
            raise ConfigurationError(msg)
        return self._repository

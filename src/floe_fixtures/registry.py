"""Per-entity factory and Validator registry.

This module provides:
- EntityFactory: base class fixture authors subclass per entity type
- FactoryDefinition: capabilities of one factory, resolved at registration
- FactoryRegistry: entity type -> FactoryDefinition and entity type -> Validator

Optional factory capabilities (key generation, custom insert, relation
strategy) are detected once, when the factory is registered, by checking
whether the subclass overrides the corresponding EntityFactory method. Call
sites only test the resulting fields for None.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

from floe_fixtures.errors import ConfigurationError, MissingImplementationError
from floe_fixtures.schema import Mode, RelationStrategy
from floe_fixtures.validation import ModelValidator, Validator

logger = structlog.get_logger(__name__)

FactoryT = TypeVar("FactoryT", bound="type[EntityFactory]")

DefaultsProvider = Callable[[Mode, dict[str, Any]], Mapping[str, Any]]
KeyGenerator = Callable[[dict[str, Any]], Mapping[str, Any]]
CustomInsert = Callable[[type, dict[str, Any]], Any]
StrategySelector = Callable[[str], RelationStrategy]


class EntityFactory(ABC):
    """Default values and optional hooks for one entity type.

    Subclasses must implement build_map. Overriding generate_key, insert or
    relation_strategy opts the entity into that capability.

    Example:
        >>> @registry.factory(Order)
        ... class OrderFactory(EntityFactory):
        ...     def build_map(self, mode, attrs):
        ...         return {"status": "pending", "customer": {}}
        ...
        ...     def relation_strategy(self, relation):
        ...         return RelationStrategy.PUT
    """

    @abstractmethod
    def build_map(  # pragma: no cover - abstract method
        self, mode: Mode, attrs: dict[str, Any]
    ) -> Mapping[str, Any]:
        """Return default attributes for a fixture.

        Args:
            mode: Construction mode of this entity.
            attrs: Caller attributes after primary key generation.

        Returns:
            Default attribute map; caller attributes win over it.
        """
        ...

    def generate_key(self, attrs: dict[str, Any]) -> Mapping[str, Any]:
        """Replace primary key synthesis. The result is used verbatim."""
        raise NotImplementedError

    def insert(self, entity_type: type, attrs: dict[str, Any]) -> Any:
        """Replace the standard validate-and-persist insert path."""
        raise NotImplementedError

    def relation_strategy(self, relation: str) -> RelationStrategy:
        """Return the attachment strategy for a relation."""
        raise NotImplementedError


def _overrides(factory: EntityFactory, method: str) -> bool:
    return getattr(type(factory), method) is not getattr(EntityFactory, method)


@dataclass(frozen=True)
class FactoryDefinition:
    """Resolved capabilities of one entity factory.

    Attributes:
        entity_type: The entity type.
        provide_defaults: Default-value provider (required).
        generate_key: Primary key override, or None.
        custom_insert: Insert override, or None.
        strategy_for: Relation strategy selector, or None for CAST everywhere.
    """

    entity_type: type
    provide_defaults: DefaultsProvider
    generate_key: KeyGenerator | None = None
    custom_insert: CustomInsert | None = None
    strategy_for: StrategySelector | None = None

    @classmethod
    def from_factory(cls, entity_type: type, factory: EntityFactory) -> FactoryDefinition:
        """Resolve an EntityFactory's optional members."""
        return cls(
            entity_type=entity_type,
            provide_defaults=factory.build_map,
            generate_key=factory.generate_key if _overrides(factory, "generate_key") else None,
            custom_insert=factory.insert if _overrides(factory, "insert") else None,
            strategy_for=(
                factory.relation_strategy if _overrides(factory, "relation_strategy") else None
            ),
        )

    def strategy(self, relation: str) -> RelationStrategy:
        """Return the attachment strategy for a relation, CAST when unspecified."""
        if self.strategy_for is None:
            return RelationStrategy.CAST
        return RelationStrategy(self.strategy_for(relation))


class FactoryRegistry:
    """Explicit registry of entity factories and Validators.

    Populated at startup; read-only while fixtures are being built.

    Example:
        >>> registry = FactoryRegistry()
        >>> registry.register(Customer, CustomerFactory())
        >>> registry.register_model(Customer, required=["name"])
        >>> registry.definition_for(Customer).strategy("orders")
        <RelationStrategy.CAST: 'cast'>
    """

    def __init__(self) -> None:
        self._definitions: dict[type, FactoryDefinition] = {}
        self._validators: dict[type, Validator] = {}

    def register(self, entity_type: type, factory: EntityFactory) -> FactoryDefinition:
        """Register the factory of an entity type.

        Raises:
            ConfigurationError: If a factory is already registered for the type.
        """
        if entity_type in self._definitions:
            msg = f"Factory already registered for {entity_type.__name__}"
            raise ConfigurationError(msg)

        definition = FactoryDefinition.from_factory(entity_type, factory)
        self._definitions[entity_type] = definition
        logger.debug(
            "factory_registered",
            entity=entity_type.__name__,
            generate_key=definition.generate_key is not None,
            custom_insert=definition.custom_insert is not None,
            strategy_for=definition.strategy_for is not None,
        )
        return definition

    def factory(self, entity_type: type) -> Callable[[FactoryT], FactoryT]:
        """Class decorator registering an instance of the decorated factory."""

        def decorator(factory_cls: FactoryT) -> FactoryT:
            self.register(entity_type, factory_cls())
            return factory_cls

        return decorator

    def register_validator(self, entity_type: type, validator: Validator) -> None:
        """Associate an entity type with its Validator.

        Raises:
            ConfigurationError: If a Validator is already registered for the type.
        """
        if entity_type in self._validators:
            msg = f"Validator already registered for {entity_type.__name__}"
            raise ConfigurationError(msg)
        self._validators[entity_type] = validator

    def register_model(
        self,
        entity_type: type,
        *,
        permitted: Iterable[str] | None = None,
        required: Iterable[str] = (),
        references: Mapping[str, str] | None = None,
        reference_key: str = "id",
    ) -> ModelValidator:
        """Register a ModelValidator for a pydantic entity type."""
        validator = ModelValidator(
            entity_type,
            self.validator_for,
            permitted=permitted,
            required=required,
            references=references,
            reference_key=reference_key,
        )
        self.register_validator(entity_type, validator)
        return validator

    def definition_for(self, entity_type: type) -> FactoryDefinition:
        """Return the factory definition.

        Raises:
            MissingImplementationError: If no factory is registered.
        """
        try:
            return self._definitions[entity_type]
        except KeyError:
            raise MissingImplementationError(entity_type, "factory") from None

    def validator_for(self, entity_type: type) -> Validator:
        """Return the Validator.

        Raises:
            MissingImplementationError: If no Validator is registered.
        """
        try:
            return self._validators[entity_type]
        except KeyError:
            raise MissingImplementationError(entity_type, "validator") from None

    def missing(self, entity_types: Iterable[type]) -> list[tuple[type, str]]:
        """List (entity type, capability) pairs lacking a registration."""
        gaps: list[tuple[type, str]] = []
        for entity_type in entity_types:
            if entity_type not in self._definitions:
                gaps.append((entity_type, "factory"))
            if entity_type not in self._validators:
                gaps.append((entity_type, "validator"))
        return gaps

    def verify(self, entity_types: Iterable[type]) -> None:
        """Fail when any entity type lacks a factory or Validator.

        All gaps are logged, and listed under the ``missing`` detail of the
        raised error.

        Raises:
            MissingImplementationError: If any registration is missing.
        """
        gaps = self.missing(entity_types)
        for entity_type, capability in gaps:
            logger.error(
                "fixture_registration_missing",
                entity=entity_type.__name__,
                capability=capability,
            )
        if gaps:
            entity_type, capability = gaps[0]
            error = MissingImplementationError(entity_type, capability)
            error.details["missing"] = ", ".join(f"{t.__name__}:{c}" for t, c in gaps)
            raise error

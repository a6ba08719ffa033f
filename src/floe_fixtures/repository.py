"""Persistence backends for inserted fixtures.

This module provides:
- Repository: protocol the insert path and owning-reference lookups use
- InMemoryRepository: dictionary-backed Repository for tests and demos
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from typing import Any, Protocol, runtime_checkable

import structlog

from floe_fixtures.errors import FixtureError, NotFoundError, PersistenceError
from floe_fixtures.schema import PrimaryKeyType, SchemaIntrospector
from floe_fixtures.validation import ValidatedResult

logger = structlog.get_logger(__name__)


@runtime_checkable
class Repository(Protocol):
    """Persistence backend: key lookup and create."""

    def get_by_key(self, entity_type: type, key: Any) -> Any:
        """Return the stored instance.

        Raises:
            NotFoundError: If no instance has this key.
        """
        ...

    def create(self, result: ValidatedResult) -> Any:
        """Persist a validated result and return the stored instance.

        Raises:
            PersistenceError: On constraint violation or backend failure.
        """
        ...


class InMemoryRepository:
    """Dictionary-backed Repository.

    Assigns primary keys on create (sequential integers per entity type
    starting at 1, UUID strings for opaque ids), persists fresh children
    before their parent, leaves already stored children untouched, and fills
    the owner key of owning references from the persisted parent.

    Example:
        >>> repository = InMemoryRepository(catalog)
        >>> factory = FixtureFactory(registry, catalog, repository)
        >>> order = factory.insert(Order)
        >>> repository.get_by_key(Customer, order.customer_id) == order.customer
        True
    """

    def __init__(self, introspector: SchemaIntrospector) -> None:
        self._introspector = introspector
        self._rows: dict[type, dict[Any, Any]] = defaultdict(dict)
        self._sequences: dict[type, int] = defaultdict(int)

    def get_by_key(self, entity_type: type, key: Any) -> Any:
        try:
            return self._rows[entity_type][key]
        except KeyError:
            raise NotFoundError(entity_type, key) from None

    def create(self, result: ValidatedResult) -> Any:
        try:
            instance = self._persist(result)
        except FixtureError:
            raise
        except Exception as exc:
            raise PersistenceError(
                result.entity_type,
                f"Failed to persist {result.entity_type.__name__}: {exc}",
                cause=str(exc),
            ) from exc

        logger.debug("fixture_persisted", entity=result.entity_type.__name__)
        return instance

    def all(self, entity_type: type) -> list[Any]:
        """Return every stored instance of an entity type, in insertion order."""
        return list(self._rows[entity_type].values())

    def _persist(self, result: ValidatedResult) -> Any:
        entity_type = result.entity_type
        embeds = {embed.name for embed in self._introspector.embeds_of(entity_type)}

        update: dict[str, Any] = {}
        for name, change in result.changes.items():
            if name in embeds:
                continue
            if isinstance(change, ValidatedResult):
                update[name] = self._persist_child(change)
            elif isinstance(change, list) and any(isinstance(c, ValidatedResult) for c in change):
                update[name] = [
                    self._persist_child(c) if isinstance(c, ValidatedResult) else c for c in change
                ]

        model_fields = getattr(entity_type, "model_fields", {})
        for relation in self._introspector.relations_of(entity_type):
            parent = update.get(relation.name)
            if relation.is_owning_reference and parent is not None:
                if relation.owner_key in model_fields:
                    update[relation.owner_key] = self._key_of(relation.related, parent)

        instance = result.value.model_copy(update=update) if update else result.value

        shape = self._introspector.primary_key_of(entity_type)
        if shape.type is PrimaryKeyType.NONE:
            return instance

        key = getattr(instance, shape.field, None)
        rows = self._rows[entity_type]
        if key is None:
            key = self._next_key(entity_type, shape.type)
            instance = instance.model_copy(update={shape.field: key})
        elif key in rows:
            raise PersistenceError(
                entity_type,
                f"Duplicate primary key for {entity_type.__name__}",
                cause=f"{shape.field}={key!r} already exists",
            )

        rows[key] = instance
        return instance

    def _persist_child(self, child: ValidatedResult) -> Any:
        shape = self._introspector.primary_key_of(child.entity_type)
        if shape.type is not PrimaryKeyType.NONE:
            key = getattr(child.value, shape.field, None)
            if key is not None and key in self._rows[child.entity_type]:
                return child.value
        return self._persist(child)

    def _key_of(self, entity_type: type, instance: Any) -> Any:
        shape = self._introspector.primary_key_of(entity_type)
        if shape.type is PrimaryKeyType.NONE:
            return None
        return getattr(instance, shape.field, None)

    def _next_key(self, entity_type: type, key_type: PrimaryKeyType) -> Any:
        if key_type is PrimaryKeyType.OPAQUE_ID:
            return str(uuid.uuid4())

        rows = self._rows[entity_type]
        self._sequences[entity_type] += 1
        while self._sequences[entity_type] in rows:
            self._sequences[entity_type] += 1
        return self._sequences[entity_type]

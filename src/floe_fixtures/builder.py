"""Attribute map construction for one fixture and, recursively, its relations."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from floe_fixtures.expander import GraphExpander
from floe_fixtures.keys import PrimaryKeyGenerator
from floe_fixtures.registry import FactoryRegistry
from floe_fixtures.repository import Repository
from floe_fixtures.schema import Mode, SchemaIntrospector

logger = structlog.get_logger(__name__)

Overrides = Mapping[str, Any] | Iterable[tuple[str, Any]]


def normalize(overrides: Overrides | None = None, **fields: Any) -> dict[str, Any]:
    """Return overrides as a new dict.

    Accepts a mapping or an iterable of (key, value) pairs; keyword
    arguments win over the positional overrides.
    """
    attrs = dict(overrides) if overrides is not None else {}
    attrs.update(fields)
    return attrs


class AttributeMapBuilder:
    """Merges defaults, overrides, primary key and expanded relations.

    Steps, re-applied independently at every level of the relation graph:
    1. normalize caller overrides
    2. primary key generation
    3. default-value provider, with caller attributes winning
    4. association expansion, then embed expansion

    Example:
        >>> builder = AttributeMapBuilder(registry, catalog, keys)
        >>> builder.build(Order, Mode.BUILD, {"status": "cancelled"})
        {'id': 1234, 'status': 'cancelled', 'customer': CastAttachment(...)}
    """

    def __init__(
        self,
        registry: FactoryRegistry,
        introspector: SchemaIntrospector,
        key_generator: PrimaryKeyGenerator,
        repository: Repository | None = None,
    ) -> None:
        self.registry = registry
        self.key_generator = key_generator
        self.expander = GraphExpander(registry, introspector, self.build, repository)

    def build(self, entity_type: type, mode: Mode, overrides: Overrides) -> dict[str, Any]:
        """Build the final, unvalidated attribute map of ``entity_type``.

        Args:
            entity_type: Entity being constructed.
            mode: Construction mode of this entity.
            overrides: Caller attributes.

        Returns:
            New attribute map; ``overrides`` is never mutated.

        Raises:
            MissingImplementationError: If the entity has no factory.
            NotFoundError: If an owning-reference key cannot be resolved on insert.
        """
        definition = self.registry.definition_for(entity_type)

        attrs = normalize(overrides)
        attrs = self.key_generator.generate(entity_type, mode, attrs, definition)
        defaults = definition.provide_defaults(mode, dict(attrs))
        attrs = {**defaults, **attrs}

        attrs = self.expander.expand_associations(attrs, mode, entity_type)
        attrs = self.expander.expand_embeds(attrs, entity_type)

        logger.debug(
            "attribute_map_built",
            entity=entity_type.__name__,
            mode=mode.value,
            fields=sorted(attrs),
        )
        return attrs

"""Recursive expansion of association and embed attributes.

For every declared relation, the value found in the attribute map is turned
into something the parent's Validator can consume:
- a realized instance of the related type -> converted per relation strategy
- a mapping -> the related entity's full attribute map, as a CastAttachment
- a list (many cardinality) -> each element converted as above
- anything else, including an absent key -> left unchanged

Owning references additionally short-circuit on their owner key: insert
mode fetches the referenced instance, build and nested modes drop the
relation so no parent is fabricated around a bare key.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import structlog

from floe_fixtures.attachments import CastAttachment, PutAttachment
from floe_fixtures.errors import ConfigurationError
from floe_fixtures.registry import FactoryRegistry
from floe_fixtures.repository import Repository
from floe_fixtures.schema import (
    Cardinality,
    Mode,
    Relation,
    RelationStrategy,
    SchemaIntrospector,
    field_values,
)

logger = structlog.get_logger(__name__)

BuildMap = Callable[[type, Mode, Mapping[str, Any]], dict[str, Any]]


class GraphExpander:
    """Resolves relation attributes of one attribute map.

    Attributes:
        registry: Factory and Validator registry.
        introspector: Source of relation declarations.
        repository: Backend for owning-reference lookups in insert mode.
    """

    def __init__(
        self,
        registry: FactoryRegistry,
        introspector: SchemaIntrospector,
        build_map: BuildMap,
        repository: Repository | None = None,
    ) -> None:
        """Initialize the expander.

        Args:
            registry: Factory and Validator registry.
            introspector: Source of relation declarations.
            build_map: Recursive entry point building a related entity's map.
            repository: Backend for owning-reference lookups.
        """
        self.registry = registry
        self.introspector = introspector
        self.repository = repository
        self._build_map = build_map

    def expand_associations(
        self, attrs: dict[str, Any], mode: Mode, entity_type: type
    ) -> dict[str, Any]:
        """Expand every association of ``entity_type`` found in ``attrs``."""
        strategy = self.registry.definition_for(entity_type).strategy
        for relation in self.introspector.relations_of(entity_type):
            attrs = self._expand_association(attrs, relation, mode, strategy(relation.name))
        return attrs

    def expand_embeds(self, attrs: dict[str, Any], entity_type: type) -> dict[str, Any]:
        """Expand every embed of ``entity_type`` found in ``attrs``.

        Embeds have no identity of their own: they are always built, never
        fetched or persisted independently.
        """
        strategy = self.registry.definition_for(entity_type).strategy
        for embed in self.introspector.embeds_of(entity_type):
            attrs = self._expand_related(attrs, embed, Mode.BUILD, strategy(embed.name))
        return attrs

    def convert(self, strategy: RelationStrategy, entity_type: type, instance: Any) -> Any:
        """Convert a realized instance into its attachment form.

        CAST yields the instance's current field values without re-validation.
        PUT validates the instance as-is with the related entity's Validator.
        """
        if strategy is RelationStrategy.PUT:
            validator = self.registry.validator_for(entity_type)
            return PutAttachment(entity_type=entity_type, result=validator.validate(instance, {}))
        return CastAttachment(entity_type=entity_type, attrs=field_values(instance))

    def _expand_association(
        self,
        attrs: dict[str, Any],
        relation: Relation,
        mode: Mode,
        strategy: RelationStrategy,
    ) -> dict[str, Any]:
        if not (relation.is_owning_reference and relation.owner_key in attrs):
            return self._expand_related(attrs, relation, mode.descend(), strategy)

        owner_key = relation.owner_key
        if mode is Mode.INSERT:
            found = self._require_repository().get_by_key(relation.related, attrs[owner_key])
            logger.debug(
                "owner_reference_fetched",
                relation=relation.name,
                entity=relation.related.__name__,
            )
            remaining = {k: v for k, v in attrs.items() if k != owner_key}
            return {**remaining, relation.name: self.convert(strategy, relation.related, found)}

        logger.debug("owner_reference_ablated", relation=relation.name, mode=mode.value)
        return {k: v for k, v in attrs.items() if k != relation.name}

    def _expand_related(
        self,
        attrs: dict[str, Any],
        relation: Relation,
        mode: Mode,
        strategy: RelationStrategy,
    ) -> dict[str, Any]:
        if relation.name not in attrs:
            return attrs

        value = attrs[relation.name]
        if relation.cardinality is Cardinality.MANY:
            if not isinstance(value, list):
                return attrs
            expanded: Any = [self._expand_one(v, relation, mode, strategy) for v in value]
        else:
            expanded = self._expand_one(value, relation, mode, strategy)

        return {**attrs, relation.name: expanded}

    def _expand_one(
        self, value: Any, relation: Relation, mode: Mode, strategy: RelationStrategy
    ) -> Any:
        if isinstance(value, relation.related):
            return self.convert(strategy, relation.related, value)
        if isinstance(value, Mapping):
            return CastAttachment(
                entity_type=relation.related,
                attrs=self._build_map(relation.related, mode, value),
            )
        return value

    def _require_repository(self) -> Repository:
        if self.repository is None:
            msg = "A repository is required to resolve owning references on insert"
            raise ConfigurationError(msg)
        return self.repository

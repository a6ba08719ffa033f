"""Primary key synthesis for fixtures.

Build-mode fixtures get a synthesized key so they are inspectable without a
backend. Insert and nested fixtures leave the key to the persistence backend,
so generated keys never collide with real sequence state.
"""

from __future__ import annotations

from typing import Any

import structlog
from faker import Faker

from floe_fixtures.registry import FactoryDefinition
from floe_fixtures.schema import Mode, PrimaryKeyType, SchemaIntrospector

logger = structlog.get_logger(__name__)

SEQUENTIAL_KEY_MIN = 1
SEQUENTIAL_KEY_MAX = 32767


class PrimaryKeyGenerator:
    """Synthesizes or defers primary keys.

    Attributes:
        seed: Random seed, or None for an unseeded generator.
        fake: Faker instance for key generation.

    Example:
        >>> keys = PrimaryKeyGenerator(catalog, seed=42)
        >>> keys.generate(Customer, Mode.BUILD, {}, definition)
        {'id': 20345}
    """

    def __init__(
        self,
        introspector: SchemaIntrospector,
        *,
        seed: int | None = None,
        sequential_min: int = SEQUENTIAL_KEY_MIN,
        sequential_max: int = SEQUENTIAL_KEY_MAX,
    ) -> None:
        """Initialize the generator.

        Args:
            introspector: Source of primary key shapes.
            seed: Random seed for reproducible keys.
            sequential_min: Smallest sequential integer key.
            sequential_max: Largest sequential integer key.
        """
        if sequential_max < sequential_min:
            msg = f"sequential_max ({sequential_max}) must be >= sequential_min ({sequential_min})"
            raise ValueError(msg)

        self.seed = seed
        self.fake = Faker()
        if seed is not None:
            self.fake.seed_instance(seed)
        self._introspector = introspector
        self._min = sequential_min
        self._max = sequential_max

    def generate(
        self,
        entity_type: type,
        mode: Mode,
        attrs: dict[str, Any],
        definition: FactoryDefinition,
    ) -> dict[str, Any]:
        """Return ``attrs`` with the primary key handled for ``mode``.

        A registered key override is used verbatim. Otherwise only build mode
        synthesizes a key, and a key the caller already supplied is kept.

        Args:
            entity_type: Entity being constructed.
            mode: Construction mode.
            attrs: Normalized caller attributes.
            definition: The entity's factory definition.

        Returns:
            New attribute map.
        """
        if definition.generate_key is not None:
            return dict(definition.generate_key(dict(attrs)))

        if mode is not Mode.BUILD:
            return attrs

        shape = self._introspector.primary_key_of(entity_type)
        if shape.type is PrimaryKeyType.NONE or shape.field in attrs:
            return attrs

        if shape.type is PrimaryKeyType.SEQUENTIAL_INTEGER:
            key: Any = self.fake.random_int(min=self._min, max=self._max)
        else:
            key = self.fake.uuid4()

        logger.debug("primary_key_generated", entity=entity_type.__name__, field=shape.field)
        return {**attrs, shape.field: key}

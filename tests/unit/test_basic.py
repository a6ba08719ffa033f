"""Unit tests for fixtures of entities without relations.

Tests cover:
- Defaults merged with overrides, overrides winning
- Primary key synthesis per key shape in build mode
- No primary key synthesis in insert mode
- Primary key overrides
- Override normalization (mapping, pairs, keyword arguments)
"""

from __future__ import annotations

import uuid
from typing import Any

import pytest
from pydantic import BaseModel

from floe_fixtures import (
    EntityFactory,
    FactoryRegistry,
    FixtureFactory,
    InMemoryRepository,
    Mode,
    PrimaryKeyType,
    SchemaCatalog,
)
from floe_fixtures.keys import PrimaryKeyGenerator

pytestmark = pytest.mark.unit


class Basic(BaseModel):
    id: int | None = None
    field: str
    other_field: str | None = None


class Token(BaseModel):
    id: str | None = None
    label: str


class Setting(BaseModel):
    name: str
    value: str


class Tagged(BaseModel):
    code: str | None = None
    label: str


class BasicFactory(EntityFactory):
    def build_map(self, mode: Mode, attrs: dict[str, Any]) -> dict[str, Any]:
        return {"field": "foobar", "other_field": "barbaz"}


class TokenFactory(EntityFactory):
    def build_map(self, mode: Mode, attrs: dict[str, Any]) -> dict[str, Any]:
        return {"label": "token"}


class SettingFactory(EntityFactory):
    def build_map(self, mode: Mode, attrs: dict[str, Any]) -> dict[str, Any]:
        return {"name": "timezone", "value": "UTC"}


class TaggedFactory(EntityFactory):
    def build_map(self, mode: Mode, attrs: dict[str, Any]) -> dict[str, Any]:
        return {"label": "tagged"}

    def generate_key(self, attrs: dict[str, Any]) -> dict[str, Any]:
        return {**attrs, "code": "TAG-1"}


@pytest.fixture(autouse=True)
def declare(catalog: SchemaCatalog, registry: FactoryRegistry) -> None:
    """Declare and register the entities used in this module."""
    catalog.declare(Basic)
    catalog.declare(Token, primary_key=PrimaryKeyType.OPAQUE_ID)
    catalog.declare(Setting, primary_key=PrimaryKeyType.NONE)
    catalog.declare(Tagged, primary_key=PrimaryKeyType.NONE)

    registry.register(Basic, BasicFactory())
    registry.register(Token, TokenFactory())
    registry.register(Setting, SettingFactory())
    registry.register(Tagged, TaggedFactory())
    for entity_type in (Basic, Token, Setting, Tagged):
        registry.register_model(entity_type)


class TestBuild:
    """Tests for build on relation-free entities."""

    def test_provides_defaults(self, factory: FixtureFactory) -> None:
        """Defaults fill every field the caller leaves out."""
        basic = factory.build(Basic)

        assert basic.field == "foobar"
        assert basic.other_field == "barbaz"

    def test_overrides_win_over_defaults(self, factory: FixtureFactory) -> None:
        """Overrides replace only the fields they name."""
        basic = factory.build(Basic, {"field": "baz"})

        assert basic.field == "baz"
        assert basic.other_field == "barbaz"

    def test_accepts_key_value_pairs(self, factory: FixtureFactory) -> None:
        """Overrides may be given as (key, value) pairs."""
        basic = factory.build(Basic, [("field", "baz")])

        assert basic.field == "baz"

    def test_keyword_arguments_win_over_mapping(self, factory: FixtureFactory) -> None:
        """Keyword overrides win over the positional mapping."""
        basic = factory.build(Basic, {"field": "mapping"}, field="keyword")

        assert basic.field == "keyword"

    def test_does_not_mutate_overrides(self, factory: FixtureFactory) -> None:
        """The caller's overrides are left untouched."""
        overrides = {"field": "baz"}

        factory.build(Basic, overrides)

        assert overrides == {"field": "baz"}

    def test_sequential_key_in_range(self, factory: FixtureFactory) -> None:
        """Integer keys are synthesized within 1..32767."""
        for _ in range(200):
            basic = factory.build(Basic)
            assert isinstance(basic.id, int)
            assert 1 <= basic.id <= 32767

    def test_opaque_key_is_uuid(self, factory: FixtureFactory) -> None:
        """Opaque keys are syntactically valid UUID strings."""
        token = factory.build(Token)

        assert isinstance(token.id, str)
        assert str(uuid.UUID(token.id)) == token.id

    def test_opaque_keys_are_unique(self, factory: FixtureFactory) -> None:
        """Each build gets a fresh opaque key."""
        ids = {factory.build(Token).id for _ in range(50)}

        assert len(ids) == 50

    def test_no_key_shape_leaves_attributes(self, factory: FixtureFactory) -> None:
        """Entities without a primary key get none synthesized."""
        attrs = factory.build_map(Setting, Mode.BUILD)

        assert attrs == {"name": "timezone", "value": "UTC"}

    def test_caller_key_is_kept(self, factory: FixtureFactory) -> None:
        """A key supplied by the caller is not replaced."""
        basic = factory.build(Basic, id=99999)

        assert basic.id == 99999

    def test_key_override_is_used_verbatim(self, factory: FixtureFactory) -> None:
        """A registered key override decides the key."""
        tagged = factory.build(Tagged)

        assert tagged.code == "TAG-1"

    def test_seeded_keys_are_reproducible(
        self, registry: FactoryRegistry, catalog: SchemaCatalog
    ) -> None:
        """Same seed produces identical keys."""
        first = FixtureFactory(
            registry, catalog, key_generator=PrimaryKeyGenerator(catalog, seed=7)
        )
        second = FixtureFactory(
            registry, catalog, key_generator=PrimaryKeyGenerator(catalog, seed=7)
        )

        assert [first.build(Basic).id for _ in range(5)] == [
            second.build(Basic).id for _ in range(5)
        ]


class TestInsert:
    """Tests for insert on relation-free entities."""

    def test_does_not_synthesize_key(self, factory: FixtureFactory) -> None:
        """The map handed to the Validator carries no generated key."""
        attrs = factory.build_map(Basic, Mode.INSERT)

        assert "id" not in attrs

    def test_caller_key_reaches_validator_unchanged(self, factory: FixtureFactory) -> None:
        """A caller-supplied key is presented exactly as given."""
        attrs = factory.build_map(Basic, Mode.INSERT, id=12)

        assert attrs["id"] == 12

    def test_repository_assigns_key(
        self, factory: FixtureFactory, repository: InMemoryRepository
    ) -> None:
        """The backend assigns the key on create."""
        basic = factory.insert(Basic, field="stored")

        assert basic.id == 1
        assert repository.get_by_key(Basic, 1) == basic

    def test_key_override_applies_on_insert(self, factory: FixtureFactory) -> None:
        """Key overrides run in every mode."""
        attrs = factory.build_map(Tagged, Mode.INSERT)

        assert attrs["code"] == "TAG-1"

    def test_defaults_receive_mode(self, catalog: SchemaCatalog) -> None:
        """The default-value provider is told the construction mode."""
        seen: list[Mode] = []

        class Probe(BaseModel):
            id: int | None = None

        class ProbeFactory(EntityFactory):
            def build_map(self, mode: Mode, attrs: dict[str, Any]) -> dict[str, Any]:
                seen.append(mode)
                return {}

        registry = FactoryRegistry()
        registry.register(Probe, ProbeFactory())
        registry.register_model(Probe)
        catalog.declare(Probe)
        factory = FixtureFactory(registry, catalog, InMemoryRepository(catalog))

        factory.build(Probe)
        factory.insert(Probe)

        assert seen == [Mode.BUILD, Mode.INSERT]

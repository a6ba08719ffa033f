"""Unit tests for schema descriptors and the SchemaCatalog."""

from __future__ import annotations

import pytest
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from floe_fixtures import (
    Cardinality,
    ConfigurationError,
    MissingImplementationError,
    Mode,
    PrimaryKeyShape,
    PrimaryKeyType,
    Relation,
    RelationKind,
    SchemaCatalog,
    belongs_to,
    has_many,
    has_one,
)
from floe_fixtures.schema import field_values

pytestmark = pytest.mark.unit


class Customer(BaseModel):
    id: int | None = None
    name: str = "Jane Doe"


class Order(BaseModel):
    id: int | None = None
    customer_id: int | None = None


class TestMode:
    """Tests for mode descent."""

    def test_insert_descends_to_nested(self) -> None:
        """Descendants of an insert are nested."""
        assert Mode.INSERT.descend() is Mode.NESTED

    @pytest.mark.parametrize("mode", [Mode.BUILD, Mode.NESTED])
    def test_other_modes_are_preserved(self, mode: Mode) -> None:
        """Build and nested stay as they are."""
        assert mode.descend() is mode


class TestRelation:
    """Tests for Relation validation."""

    def test_belongs_to_defaults_owner_key(self) -> None:
        """The owner key defaults to <name>_id."""
        relation = belongs_to("customer", Customer)

        assert relation.kind is RelationKind.OWNING_REFERENCE
        assert relation.cardinality is Cardinality.ONE
        assert relation.owner_key == "customer_id"
        assert relation.is_owning_reference

    def test_has_one_and_has_many(self) -> None:
        """Owned children carry no owner key."""
        assert has_one("order", Order).cardinality is Cardinality.ONE
        assert has_many("orders", Order).cardinality is Cardinality.MANY
        assert has_many("orders", Order).owner_key is None

    def test_owning_reference_requires_owner_key(self) -> None:
        """An owning reference without a key is rejected."""
        with pytest.raises(PydanticValidationError, match="requires owner_key"):
            Relation(name="customer", related=Customer, kind=RelationKind.OWNING_REFERENCE)

    def test_owning_reference_must_be_one(self) -> None:
        """An owning reference cannot be many."""
        with pytest.raises(PydanticValidationError, match="cardinality one"):
            Relation(
                name="customers",
                related=Customer,
                kind=RelationKind.OWNING_REFERENCE,
                cardinality=Cardinality.MANY,
                owner_key="customer_id",
            )

    def test_owner_key_only_on_owning_reference(self) -> None:
        """Owned children reject an owner key."""
        with pytest.raises(PydanticValidationError, match="only valid on owning references"):
            Relation(name="order", related=Order, owner_key="order_id")

    def test_relation_is_frozen(self) -> None:
        """Relations are immutable."""
        relation = has_one("order", Order)

        with pytest.raises(PydanticValidationError):
            relation.name = "other"  # type: ignore[misc]


class TestSchemaCatalog:
    """Tests for SchemaCatalog declarations and lookups."""

    def test_defaults_to_sequential_id(self) -> None:
        """Undeclared key shapes default to a sequential integer id."""
        catalog = SchemaCatalog()
        catalog.declare(Customer)

        assert catalog.primary_key_of(Customer) == PrimaryKeyShape(
            type=PrimaryKeyType.SEQUENTIAL_INTEGER, field="id"
        )
        assert catalog.relations_of(Customer) == ()
        assert catalog.embeds_of(Customer) == ()

    def test_accepts_key_type_shortcut(self) -> None:
        """A bare key type uses the default field name."""
        catalog = SchemaCatalog()
        catalog.declare(Customer, primary_key=PrimaryKeyType.OPAQUE_ID)

        assert catalog.primary_key_of(Customer).type is PrimaryKeyType.OPAQUE_ID
        assert catalog.primary_key_of(Customer).field == "id"

    def test_preserves_relation_order(self) -> None:
        """Relations are returned in declaration order."""
        catalog = SchemaCatalog()
        catalog.declare(
            Order,
            relations=[belongs_to("customer", Customer), has_many("lines", Customer)],
        )

        assert [r.name for r in catalog.relations_of(Order)] == ["customer", "lines"]
        assert Order in catalog
        assert catalog.entity_types() == [Order]

    def test_undeclared_entity_raises(self) -> None:
        """Lookups of undeclared entities are configuration errors."""
        catalog = SchemaCatalog()

        with pytest.raises(MissingImplementationError) as exc_info:
            catalog.relations_of(Customer)

        assert exc_info.value.capability == "schema"

    def test_duplicate_declaration_raises(self) -> None:
        """An entity can only be declared once."""
        catalog = SchemaCatalog()
        catalog.declare(Customer)

        with pytest.raises(ConfigurationError, match="already declared"):
            catalog.declare(Customer)

    def test_duplicate_relation_names_rejected(self) -> None:
        """Relation and embed names share one namespace."""
        catalog = SchemaCatalog()

        with pytest.raises(PydanticValidationError, match="Duplicate relation names"):
            catalog.declare(
                Order,
                relations=[has_one("customer", Customer)],
                embeds=[has_one("customer", Customer)],
            )

    def test_embeds_cannot_own_references(self) -> None:
        """Embeds have no foreign key short-circuit."""
        catalog = SchemaCatalog()

        with pytest.raises(PydanticValidationError, match="cannot be an owning reference"):
            catalog.declare(Order, embeds=[belongs_to("customer", Customer)])


class TestFieldValues:
    """Tests for the shallow field view of instances."""

    def test_pydantic_model(self) -> None:
        """Pydantic models yield their declared fields."""
        assert field_values(Customer(id=1)) == {"id": 1, "name": "Jane Doe"}

    def test_plain_object(self) -> None:
        """Other objects yield their instance dict."""

        class Plain:
            def __init__(self) -> None:
                self.id = 2

        assert field_values(Plain()) == {"id": 2}

    def test_returns_copy(self) -> None:
        """The view can be modified without touching the instance."""
        customer = Customer(id=1)
        view = field_values(customer)
        view["name"] = "changed"

        assert customer.name == "Jane Doe"

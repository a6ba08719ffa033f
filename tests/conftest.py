"""Shared pytest fixtures for floe-fixtures tests.

Each test module declares its own entity models and registers them against
the fresh catalog and registry provided here.
"""

from __future__ import annotations

import sys

import pytest
import structlog

from floe_fixtures import FactoryRegistry, FixtureFactory, InMemoryRepository, SchemaCatalog
from floe_fixtures.keys import PrimaryKeyGenerator


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture
def catalog() -> SchemaCatalog:
    """Return an empty schema catalog."""
    return SchemaCatalog()


@pytest.fixture
def registry() -> FactoryRegistry:
    """Return an empty factory registry."""
    return FactoryRegistry()


@pytest.fixture
def repository(catalog: SchemaCatalog) -> InMemoryRepository:
    """Return an empty in-memory repository bound to the catalog."""
    return InMemoryRepository(catalog)


@pytest.fixture
def factory(
    registry: FactoryRegistry,
    catalog: SchemaCatalog,
    repository: InMemoryRepository,
) -> FixtureFactory:
    """Return a FixtureFactory with deterministic key generation."""
    return FixtureFactory(
        registry,
        catalog,
        repository,
        key_generator=PrimaryKeyGenerator(catalog, seed=42),
    )

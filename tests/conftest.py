"""Shared test fixtures."""

from collections.abc import Generator
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from retailinv.api import create_app
from retailinv.config import InventoryConfig
from retailinv.dependencies import AppResources
from retailinv.inventory_service import InventoryService
from retailinv.models import Product, Store
from retailinv.repositories.base import InventoryRepository
from retailinv.repositories.csv_file import CsvInventoryRepository
from retailinv.repositories.memory import InMemoryInventoryRepository
from retailinv.repositories.sql import SqlInventoryRepository

BACKENDS = ["memory", "csv", "sql"]


def make_repository(backend: str, tmp_path: Path) -> InventoryRepository:
    """Build an empty repository of the given kind under ``tmp_path``."""
    if backend == "memory":
        return InMemoryInventoryRepository()
    if backend == "csv":
        return CsvInventoryRepository.from_directory(tmp_path / "data")
    if backend == "sql":
        return SqlInventoryRepository.from_url(f"sqlite:///{tmp_path / 'inventory.db'}")
    raise ValueError(backend)


@pytest.fixture(params=BACKENDS)
def repository(request: pytest.FixtureRequest, tmp_path: Path) -> InventoryRepository:
    """Empty repository, once per backend."""
    return make_repository(request.param, tmp_path)


@pytest.fixture
def bread_repository(repository: InventoryRepository) -> InventoryRepository:
    """Store 1 sells Bread 10 @ 2.00, store 2 sells Bread 5 @ 1.50."""
    repository.create_store(Store(code=1, name="Store A", address="1 North St"))
    repository.create_store(Store(code=2, name="Store B", address="2 South St"))
    repository.create_product(
        Product(name="Bread", store_code=1, quantity=10, price=Decimal("2.00"))
    )
    repository.create_product(
        Product(name="Bread", store_code=2, quantity=5, price=Decimal("1.50"))
    )
    return repository


@pytest.fixture
def memory_service() -> InventoryService:
    """Service over a fresh in-memory repository."""
    return InventoryService(InMemoryInventoryRepository())


@pytest.fixture
def api_test_config() -> InventoryConfig:
    """Provide a test-owned API config instance."""
    return InventoryConfig(_env_file=None, backend="memory")


@pytest.fixture
def api_test_client(
    api_test_config: InventoryConfig, memory_service: InventoryService
) -> Generator[TestClient, None, None]:
    """TestClient over an app wired to an in-memory service."""
    app = create_app(AppResources(config=api_test_config, service=memory_service))
    with TestClient(app) as client:
        yield client

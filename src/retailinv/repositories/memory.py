"""In-memory inventory state and repository for tests and local runs."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional, Sequence

from retailinv import batching
from retailinv.exceptions import DuplicateKeyError, UnknownStoreError
from retailinv.models import Product, PurchaseResult, Store
from retailinv.repositories.base import InventoryRepository

logger = logging.getLogger(__name__)


@dataclass
class InventorySnapshot:
    """Complete inventory state held in memory.

    Mutating methods change this snapshot in place; callers that need
    all-or-nothing semantics work on ``copy()`` and publish it on success.
    """

    stores: dict[int, Store] = field(default_factory=dict)
    products: dict[tuple[str, int], Product] = field(default_factory=dict)

    def copy(self) -> "InventorySnapshot":
        return InventorySnapshot(stores=dict(self.stores), products=dict(self.products))

    def require_store(self, code: int) -> Store:
        store = self.stores.get(code)
        if store is None:
            raise UnknownStoreError(code)
        return store

    def store_stock(self, code: int) -> dict[str, Product]:
        return {p.name: p for p in self.products.values() if p.store_code == code}

    def add_store(self, store: Store) -> Store:
        if store.code in self.stores:
            raise DuplicateKeyError(store.code)
        self.stores[store.code] = store
        return store

    def upsert_product(self, product: Product) -> Product:
        self.require_store(product.store_code)
        merged = batching.merge_product(self.products.get(product.key), product)
        self.products[merged.key] = merged
        return merged

    def import_goods(self, store_code: int, products: Sequence[Product]) -> list[Product]:
        self.require_store(store_code)
        touched: dict[str, Product] = {}
        for product in products:
            line = product.model_copy(update={"store_code": store_code})
            touched[line.name] = self.upsert_product(line)
        return list(touched.values())

    def cheapest_store_for_product(self, product_name: str) -> Optional[Store]:
        return batching.cheapest_store_for_product(
            self.stores, self.products.values(), product_name
        )

    def affordable_products(self, store_code: int, budget: Decimal) -> list[Product]:
        self.require_store(store_code)
        return batching.affordable_products(self.store_stock(store_code).values(), budget)

    def purchase(self, store_code: int, items: Mapping[str, int]) -> PurchaseResult:
        self.require_store(store_code)
        result, updated = batching.plan_purchase(
            store_code, self.store_stock(store_code), items
        )
        for product in updated:
            self.products[product.key] = product
        return result

    def cheapest_store_for_batch(self, items: Mapping[str, int]) -> Optional[Store]:
        return batching.cheapest_store_for_batch(
            sorted(self.stores.values(), key=lambda s: s.code),
            batching.index_by_store(self.products.values()),
            items,
        )

    def sorted_stores(self) -> list[Store]:
        return sorted(self.stores.values(), key=lambda s: s.code)

    def sorted_products(self, store_code: Optional[int] = None) -> list[Product]:
        rows = [
            p
            for p in self.products.values()
            if store_code is None or p.store_code == store_code
        ]
        return sorted(rows, key=lambda p: (p.store_code, p.name))


class InMemoryInventoryRepository(InventoryRepository):
    """Thread-safe in-memory storage."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        """Reset all in-memory state (used by tests)."""
        with self._lock:
            self._state = InventorySnapshot()

    def create_store(self, store: Store) -> Store:
        with self._lock:
            created = self._state.add_store(store)
        logger.info("Created store %s (%s)", store.code, store.name)
        return created

    def create_product(self, product: Product) -> Product:
        with self._lock:
            return self._state.upsert_product(product)

    def import_goods_to_store(
        self, store_code: int, products: Sequence[Product]
    ) -> list[Product]:
        with self._lock:
            working = self._state.copy()
            imported = working.import_goods(store_code, products)
            self._state = working
        logger.info("Imported %d product lines into store %s", len(products), store_code)
        return imported

    def find_cheapest_store_for_product(self, product_name: str) -> Optional[Store]:
        with self._lock:
            return self._state.cheapest_store_for_product(product_name)

    def get_affordable_products_in_store(
        self, store_code: int, budget: Decimal
    ) -> list[Product]:
        with self._lock:
            return self._state.affordable_products(store_code, budget)

    def purchase_goods(
        self, store_code: int, items: Mapping[str, int]
    ) -> PurchaseResult:
        with self._lock:
            self._state.require_store(store_code)
            items = batching.validate_items(items)
            working = self._state.copy()
            result = working.purchase(store_code, items)
            if result.ok:
                self._state = working
        logger.info("Purchase in store %s: %s", store_code, result.status)
        return result

    def find_cheapest_store_for_batch(self, items: Mapping[str, int]) -> Optional[Store]:
        items = batching.validate_items(items)
        with self._lock:
            return self._state.cheapest_store_for_batch(items)

    def list_stores(self) -> list[Store]:
        with self._lock:
            return self._state.sorted_stores()

    def get_store(self, code: int) -> Optional[Store]:
        with self._lock:
            return self._state.stores.get(code)

    def list_products(self, store_code: Optional[int] = None) -> list[Product]:
        with self._lock:
            return self._state.sorted_products(store_code)

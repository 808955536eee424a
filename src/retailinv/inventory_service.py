"""Inventory service: forwards to a repository and normalizes failures."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator, Mapping, Optional, Sequence

from retailinv.exceptions import OperationFailedError
from retailinv.models import Product, PurchaseResult, Store
from retailinv.repositories.base import InventoryRepository

logger = logging.getLogger(__name__)


class InventoryService:
    """Coordinates client commands with the configured inventory backend.

    Every backend failure is re-raised as ``OperationFailedError`` chained to
    the original exception; successful results pass through unchanged.
    """

    def __init__(self, repository: InventoryRepository) -> None:
        self.repository = repository

    @contextmanager
    def _wrap(self, context: str) -> Iterator[None]:
        try:
            yield
        except OperationFailedError:
            raise
        except Exception as exc:
            logger.warning("%s: %s", context, exc)
            raise OperationFailedError(context, exc) from exc

    def create_store(self, store: Store) -> Store:
        with self._wrap("Error creating store"):
            return self.repository.create_store(store)

    def create_product(self, product: Product) -> Product:
        with self._wrap("Error creating product"):
            return self.repository.create_product(product)

    def import_goods_to_store(
        self, store_code: int, products: Sequence[Product]
    ) -> list[Product]:
        with self._wrap("Error importing goods to store"):
            return self.repository.import_goods_to_store(store_code, products)

    def find_cheapest_store_for_product(self, product_name: str) -> Optional[Store]:
        with self._wrap("Error finding cheapest store for product"):
            return self.repository.find_cheapest_store_for_product(product_name)

    def get_affordable_products_in_store(
        self, store_code: int, budget: Decimal
    ) -> list[Product]:
        with self._wrap("Error getting affordable products"):
            return self.repository.get_affordable_products_in_store(store_code, budget)

    def purchase_goods(self, store_code: int, items: Mapping[str, int]) -> PurchaseResult:
        with self._wrap("Error purchasing goods"):
            return self.repository.purchase_goods(store_code, items)

    def find_cheapest_store_for_batch(self, items: Mapping[str, int]) -> Optional[Store]:
        with self._wrap("Error finding cheapest store for batch"):
            return self.repository.find_cheapest_store_for_batch(items)

    def list_stores(self) -> list[Store]:
        with self._wrap("Error listing stores"):
            return self.repository.list_stores()

    def get_store(self, code: int) -> Optional[Store]:
        with self._wrap("Error loading store"):
            return self.repository.get_store(code)

    def list_products(self, store_code: Optional[int] = None) -> list[Product]:
        with self._wrap("Error listing products"):
            return self.repository.list_products(store_code)

"""Flat-file inventory repository backed by two headerless CSV files.

Every operation loads a fresh snapshot of both files, works on it in memory
and writes the final state at most once. Product rewrites go through a
temporary file and ``os.replace`` so readers never see a half-written file.
"""

from __future__ import annotations

import csv
import logging
import os
import tempfile
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence

from retailinv import batching
from retailinv.models import Product, PurchaseResult, Store
from retailinv.repositories.base import InventoryRepository
from retailinv.repositories.memory import InventorySnapshot

logger = logging.getLogger(__name__)


def _store_row(store: Store) -> list[str]:
    return [str(store.code), store.name, store.address]


def _product_row(product: Product) -> list[str]:
    return [product.name, str(product.store_code), str(product.quantity), str(product.price)]


class CsvInventoryRepository(InventoryRepository):
    """Inventory stored as ``stores.csv`` and ``products.csv``."""

    def __init__(self, stores_path: Path, products_path: Path) -> None:
        self.stores_path = Path(stores_path)
        self.products_path = Path(products_path)

    @classmethod
    def from_directory(
        cls,
        data_dir: Path,
        *,
        stores_file: str = "stores.csv",
        products_file: str = "products.csv",
    ) -> "CsvInventoryRepository":
        data_dir = Path(data_dir)
        return cls(data_dir / stores_file, data_dir / products_file)

    def create_store(self, store: Store) -> Store:
        snapshot = self._load()
        snapshot.add_store(store)
        self._append_rows(self.stores_path, [_store_row(store)])
        logger.info("Created store %s (%s)", store.code, store.name)
        return store

    def create_product(self, product: Product) -> Product:
        snapshot = self._load()
        existed = product.key in snapshot.products
        merged = snapshot.upsert_product(product)
        if existed:
            self._rewrite_products(snapshot)
        else:
            self._append_rows(self.products_path, [_product_row(merged)])
        return merged

    def import_goods_to_store(
        self, store_code: int, products: Sequence[Product]
    ) -> list[Product]:
        snapshot = self._load()
        imported = snapshot.import_goods(store_code, products)
        self._rewrite_products(snapshot)
        logger.info("Imported %d product lines into store %s", len(products), store_code)
        return imported

    def find_cheapest_store_for_product(self, product_name: str) -> Optional[Store]:
        return self._load().cheapest_store_for_product(product_name)

    def get_affordable_products_in_store(
        self, store_code: int, budget: Decimal
    ) -> list[Product]:
        return self._load().affordable_products(store_code, budget)

    def purchase_goods(
        self, store_code: int, items: Mapping[str, int]
    ) -> PurchaseResult:
        snapshot = self._load()
        snapshot.require_store(store_code)
        items = batching.validate_items(items)
        result = snapshot.purchase(store_code, items)
        if result.ok:
            self._rewrite_products(snapshot)
        logger.info("Purchase in store %s: %s", store_code, result.status)
        return result

    def find_cheapest_store_for_batch(self, items: Mapping[str, int]) -> Optional[Store]:
        items = batching.validate_items(items)
        return self._load().cheapest_store_for_batch(items)

    def list_stores(self) -> list[Store]:
        return self._load().sorted_stores()

    def get_store(self, code: int) -> Optional[Store]:
        return self._load().stores.get(code)

    def list_products(self, store_code: Optional[int] = None) -> list[Product]:
        return self._load().sorted_products(store_code)

    def _load(self) -> InventorySnapshot:
        snapshot = InventorySnapshot()
        for store in self._read_stores():
            snapshot.stores[store.code] = store
        for product in self._read_products():
            snapshot.products[product.key] = product
        return snapshot

    def _read_stores(self) -> list[Store]:
        stores = []
        for lineno, row in self._read_rows(self.stores_path):
            try:
                code, name, address = row
                stores.append(Store(code=int(code), name=name, address=address))
            except ValueError as exc:
                raise ValueError(f"{self.stores_path}:{lineno}: malformed store row") from exc
        return stores

    def _read_products(self) -> list[Product]:
        products = []
        for lineno, row in self._read_rows(self.products_path):
            try:
                name, store_code, quantity, price = row
                products.append(
                    Product(
                        name=name,
                        store_code=int(store_code),
                        quantity=int(quantity),
                        price=Decimal(price),
                    )
                )
            except (ValueError, ArithmeticError) as exc:
                raise ValueError(
                    f"{self.products_path}:{lineno}: malformed product row"
                ) from exc
        return products

    @staticmethod
    def _read_rows(path: Path) -> Iterable[tuple[int, list[str]]]:
        if not path.exists():
            return []
        with path.open(newline="", encoding="utf-8") as f:
            return [
                (lineno, row)
                for lineno, row in enumerate(csv.reader(f), start=1)
                if row
            ]

    @staticmethod
    def _append_rows(path: Path, rows: list[list[str]]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", newline="", encoding="utf-8") as f:
            csv.writer(f, lineterminator="\n").writerows(rows)

    def _rewrite_products(self, snapshot: InventorySnapshot) -> None:
        path = self.products_path
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
                csv.writer(f, lineterminator="\n").writerows(
                    _product_row(p) for p in snapshot.products.values()
                )
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

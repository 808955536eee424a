"""Repository interface every inventory backend satisfies."""

from decimal import Decimal
from typing import Mapping, Optional, Protocol, Sequence

from retailinv.models import Product, PurchaseResult, Store


class InventoryRepository(Protocol):
    """Persistence operations for stores, products and batch purchases."""

    def create_store(self, store: Store) -> Store:
        ...

    def create_product(self, product: Product) -> Product:
        ...

    def import_goods_to_store(
        self, store_code: int, products: Sequence[Product]
    ) -> list[Product]:
        ...

    def find_cheapest_store_for_product(self, product_name: str) -> Optional[Store]:
        ...

    def get_affordable_products_in_store(
        self, store_code: int, budget: Decimal
    ) -> list[Product]:
        ...

    def purchase_goods(
        self, store_code: int, items: Mapping[str, int]
    ) -> PurchaseResult:
        ...

    def find_cheapest_store_for_batch(self, items: Mapping[str, int]) -> Optional[Store]:
        ...

    def list_stores(self) -> list[Store]:
        ...

    def get_store(self, code: int) -> Optional[Store]:
        ...

    def list_products(self, store_code: Optional[int] = None) -> list[Product]:
        ...

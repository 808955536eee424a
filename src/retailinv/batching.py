"""Batch-consistency algorithms shared by every inventory backend.

Backends load rows however they like and hand them to these functions, so
feasibility, cost and tie-break rules are identical across storage engines.
Rows for a single store are passed as a ``{product name: Product}`` mapping.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Mapping, Optional

from retailinv.exceptions import InvalidBatchError
from retailinv.models import Product, PurchaseResult, Shortage, Store, StoreQuote

StoreStock = Mapping[str, Product]


def validate_items(items: Mapping[str, int]) -> dict[str, int]:
    """Reject empty batches and non-positive quantities."""
    if not items:
        raise InvalidBatchError("Batch must contain at least one item")

    invalid = {name: qty for name, qty in items.items() if qty < 1}
    if invalid:
        raise InvalidBatchError(
            "Batch quantities must be positive",
            details={"invalid_items": invalid},
        )
    return dict(items)


def merge_product(existing: Optional[Product], incoming: Product) -> Product:
    """Merge incoming stock into an existing row; latest price wins."""
    if existing is None:
        return incoming
    return existing.model_copy(
        update={
            "quantity": existing.quantity + incoming.quantity,
            "price": incoming.price,
        }
    )


def index_by_store(products: Iterable[Product]) -> dict[int, dict[str, Product]]:
    """Group rows into per-store name lookups."""
    stock: dict[int, dict[str, Product]] = {}
    for product in products:
        stock.setdefault(product.store_code, {})[product.name] = product
    return stock


def quote_store(store_code: int, stock: StoreStock, items: Mapping[str, int]) -> StoreQuote:
    """Price a whole batch at one store and record every shortage."""
    total = Decimal("0")
    shortages: list[Shortage] = []

    for name, requested in items.items():
        product = stock.get(name)
        available = product.quantity if product is not None else 0
        if product is None or available < requested:
            shortages.append(Shortage(name=name, requested=requested, available=available))
            continue
        total += product.price * requested

    return StoreQuote(store_code=store_code, total_cost=total, shortages=shortages)


def plan_purchase(
    store_code: int, stock: StoreStock, items: Mapping[str, int]
) -> tuple[PurchaseResult, list[Product]]:
    """
    Decide a purchase against one consistent view of the store.

    Returns the result plus the decremented rows to persist. A rejected
    result always comes with an empty row list, so callers write nothing.
    """
    quote = quote_store(store_code, stock, items)
    if not quote.feasible:
        return (
            PurchaseResult(
                store_code=store_code,
                status="rejected",
                shortages=quote.shortages,
            ),
            [],
        )

    updated = []
    for name, requested in items.items():
        product = stock[name]
        remaining = product.quantity - requested
        if remaining < 0:
            raise ValueError(f"quantity of {name} would go negative")
        updated.append(product.model_copy(update={"quantity": remaining}))

    return (
        PurchaseResult(
            store_code=store_code,
            status="completed",
            total_cost=quote.total_cost,
        ),
        updated,
    )


def cheapest_store_for_product(
    stores: Mapping[int, Store], products: Iterable[Product], name: str
) -> Optional[Store]:
    """Store with the lowest unit price for ``name``; ties go to the lowest code."""
    candidates = [
        p for p in products if p.name == name and p.store_code in stores
    ]
    if not candidates:
        return None
    best = min(candidates, key=lambda p: (p.price, p.store_code))
    return stores[best.store_code]


def rank_stores_for_batch(
    stores: Iterable[Store],
    stock_by_store: Mapping[int, StoreStock],
    items: Mapping[str, int],
) -> list[tuple[Store, StoreQuote]]:
    """Feasible stores with their quotes, cheapest first, then by code."""
    ranked = []
    for store in stores:
        quote = quote_store(store.code, stock_by_store.get(store.code, {}), items)
        if quote.feasible:
            ranked.append((store, quote))
    ranked.sort(key=lambda pair: (pair[1].total_cost, pair[0].code))
    return ranked


def cheapest_store_for_batch(
    stores: Iterable[Store],
    stock_by_store: Mapping[int, StoreStock],
    items: Mapping[str, int],
) -> Optional[Store]:
    """Cheapest store that can fill the whole batch alone, or None."""
    ranked = rank_stores_for_batch(stores, stock_by_store, items)
    if not ranked:
        return None
    return ranked[0][0]


def affordable_products(products: Iterable[Product], budget: Decimal) -> list[Product]:
    """Products whose unit price fits the budget, ordered by name."""
    if not isinstance(budget, Decimal):
        budget = Decimal(str(budget))
    return sorted(
        (p for p in products if p.price <= budget),
        key=lambda p: p.name,
    )

"""CLI interface for the retail inventory."""

import logging
from decimal import Decimal, InvalidOperation
from typing import List, NoReturn, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from .config import configure_logging, get_config
from .dependencies import build_service
from .exceptions import InventoryError, OperationFailedError
from .inventory_service import InventoryService
from .models import Product, Store

app = typer.Typer(
    name="retailinv",
    help="""
    [bold]Retail Inventory CLI[/bold]

    Manage stores and stock, find the cheapest store and buy batches atomically.

    [cyan]Examples:[/cyan]
      retailinv create-store 1 "Corner Shop" "1 Main St"
      retailinv deliver 1 Bread=10@2.00 Milk=5@1.20
      retailinv purchase 1 Bread=2 Milk=1
      retailinv cheapest-batch Bread=5 Milk=2

    [cyan]Backends:[/cyan]
      Set BACKEND=csv (default), sql or memory; DATABASE_URL for sql.
    """,
    no_args_is_help=True,
)

console = Console()
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed processing information",
    ),
) -> None:
    """Retail inventory commands."""
    try:
        config = get_config()
    except ValueError as e:
        _fail(e)
    configure_logging(config, verbose=verbose)


def get_service() -> InventoryService:
    """Build the service for the configured backend."""
    try:
        return build_service(get_config())
    except (ValueError, SQLAlchemyError) as e:
        _fail(e)


def _fail(exc: Exception) -> NoReturn:
    if isinstance(exc, OperationFailedError):
        console.print(f"[bold red]✗ Error:[/bold red] {escape(exc.message)} [dim]({exc.code})[/dim]")
    else:
        console.print(f"[bold red]✗ Error:[/bold red] {escape(str(exc))}")
    raise typer.Exit(code=1)


def _parse_money(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise typer.BadParameter(f"Invalid amount: {value!r}")


def parse_items(values: List[str]) -> dict[str, int]:
    """Parse ``NAME=QTY`` arguments; repeated names add up."""
    items: dict[str, int] = {}
    for value in values:
        name, sep, qty = value.rpartition("=")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Expected NAME=QTY, got {value!r}")
        try:
            quantity = int(qty)
        except ValueError:
            raise typer.BadParameter(f"Invalid quantity in {value!r}")
        items[name.strip()] = items.get(name.strip(), 0) + quantity
    return items


def parse_delivery(values: List[str], store_code: int) -> list[Product]:
    """Parse ``NAME=QTY@PRICE`` delivery lines."""
    products = []
    for value in values:
        name, sep, rest = value.rpartition("=")
        qty, at, price = rest.partition("@")
        if not sep or not at:
            raise typer.BadParameter(f"Expected NAME=QTY@PRICE, got {value!r}")
        try:
            quantity = int(qty)
        except ValueError:
            raise typer.BadParameter(f"Invalid quantity in {value!r}")
        try:
            products.append(
                Product(
                    name=name,
                    store_code=store_code,
                    quantity=quantity,
                    price=_parse_money(price),
                )
            )
        except ValidationError as e:
            raise typer.BadParameter(f"Invalid delivery line {value!r}: {e.errors()[0]['msg']}")
    return products


def _print_store(label: str, store: Store) -> None:
    console.print(f"{label} [bold]{store.name}[/bold] (code {store.code}) at {store.address}")


def _print_products(title: str, products: list[Product]) -> None:
    table = Table(title=title)
    table.add_column("Store", justify="right")
    table.add_column("Product")
    table.add_column("Quantity", justify="right")
    table.add_column("Price", justify="right")
    for product in products:
        table.add_row(
            str(product.store_code), product.name, str(product.quantity), str(product.price)
        )
    console.print(table)


@app.command("create-store")
def create_store(
    code: int = typer.Argument(..., help="Unique store code"),
    name: str = typer.Argument(..., help="Store name"),
    address: str = typer.Argument(..., help="Store address"),
):
    """Create a store."""
    try:
        store = Store(code=code, name=name, address=address)
    except ValidationError as e:
        raise typer.BadParameter(e.errors()[0]["msg"])
    try:
        get_service().create_store(store)
    except InventoryError as e:
        _fail(e)
    console.print("[bold green]✓ Store created successfully.[/bold green]")


@app.command("create-product")
def create_product(
    name: str = typer.Argument(..., help="Product name"),
    store_code: int = typer.Argument(..., help="Code of the store holding the product"),
    quantity: int = typer.Argument(..., min=0, help="Units on hand"),
    price: str = typer.Argument(..., help="Unit price"),
):
    """Create a product, or add stock to an existing one."""
    try:
        product = Product(
            name=name, store_code=store_code, quantity=quantity, price=_parse_money(price)
        )
    except ValidationError as e:
        raise typer.BadParameter(e.errors()[0]["msg"])
    try:
        stored = get_service().create_product(product)
    except InventoryError as e:
        _fail(e)
    console.print(
        f"[bold green]✓ Product saved:[/bold green] {stored.name} "
        f"x{stored.quantity} at {stored.price}"
    )


@app.command()
def deliver(
    store_code: int = typer.Argument(..., help="Store receiving the delivery"),
    lines: List[str] = typer.Argument(..., help="Delivery lines as NAME=QTY@PRICE"),
):
    """Deliver a batch of products to a store."""
    products = parse_delivery(lines, store_code)
    try:
        get_service().import_goods_to_store(store_code, products)
    except InventoryError as e:
        _fail(e)
    console.print("[bold green]✓ Batch of products delivered successfully.[/bold green]")


@app.command("cheapest-store")
def cheapest_store(
    product_name: str = typer.Argument(..., help="Product to look up"),
):
    """Find the store with the lowest price for a product."""
    try:
        store = get_service().find_cheapest_store_for_product(product_name)
    except InventoryError as e:
        _fail(e)
    if store is None:
        console.print(f"No store found selling {product_name}.")
        return
    _print_store(f"Cheapest store for {product_name} is", store)


@app.command()
def affordable(
    store_code: int = typer.Argument(..., help="Store to search"),
    budget: str = typer.Argument(..., help="Budget per unit"),
):
    """List products in a store whose unit price is within budget."""
    amount = _parse_money(budget)
    if amount < 0:
        raise typer.BadParameter(f"Budget cannot be negative: {budget}")
    try:
        products = get_service().get_affordable_products_in_store(store_code, amount)
    except InventoryError as e:
        _fail(e)
    if not products:
        console.print("No products are affordable within your budget.")
        return
    _print_products(f"Products within {amount}", products)


@app.command()
def purchase(
    store_code: int = typer.Argument(..., help="Store to buy from"),
    items: List[str] = typer.Argument(..., help="Items as NAME=QTY"),
):
    """Buy a batch of products; nothing is bought unless everything is in stock."""
    try:
        result = get_service().purchase_goods(store_code, parse_items(items))
    except InventoryError as e:
        _fail(e)
    if result.ok:
        console.print(f"[bold green]✓ Total cost of the purchase:[/bold green] {result.total_cost}")
        return
    console.print(
        "[bold yellow]⚠️  Purchase could not be completed due to insufficient stock.[/bold yellow]"
    )
    for shortage in result.shortages:
        console.print(
            f"  {shortage.name}: requested {shortage.requested}, available {shortage.available}"
        )
    raise typer.Exit(code=1)


@app.command("cheapest-batch")
def cheapest_batch(
    items: List[str] = typer.Argument(..., help="Items as NAME=QTY"),
):
    """Find the cheapest store that can fulfil the whole batch."""
    try:
        store = get_service().find_cheapest_store_for_batch(parse_items(items))
    except InventoryError as e:
        _fail(e)
    if store is None:
        console.print("No store can fulfil the whole batch.")
        return
    _print_store("Cheapest store for the batch is", store)


@app.command()
def stores():
    """List all stores."""
    try:
        all_stores = get_service().list_stores()
    except InventoryError as e:
        _fail(e)
    table = Table(title="Stores")
    table.add_column("Code", justify="right")
    table.add_column("Name")
    table.add_column("Address")
    for store in all_stores:
        table.add_row(str(store.code), store.name, store.address)
    console.print(table)


@app.command()
def products(
    store_code: Optional[int] = typer.Option(None, "--store", "-s", help="Only this store"),
):
    """List products, optionally for one store."""
    try:
        rows = get_service().list_products(store_code)
    except InventoryError as e:
        _fail(e)
    _print_products("Products", rows)


@app.command()
def version():
    """Show version information."""
    console.print(f"retailinv version {VERSION}")


if __name__ == "__main__":
    app()

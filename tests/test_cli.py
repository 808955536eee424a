"""Test suite for the retail inventory CLI."""

import logging

import pytest
from typer.testing import CliRunner

from retailinv.cli import app, parse_items

runner = CliRunner()


@pytest.fixture(autouse=True)
def csv_backend(tmp_path, monkeypatch):
    """Point the CLI at a fresh csv data directory."""
    monkeypatch.setenv("BACKEND", "csv")
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setattr("retailinv.config._config_instance", None)
    return tmp_path


def _invoke(*args: str):
    return runner.invoke(app, list(args))


def _seed() -> None:
    assert _invoke("create-store", "1", "Store A", "1 North St").exit_code == 0
    assert _invoke("create-store", "2", "Store B", "2 South St").exit_code == 0
    assert _invoke("create-product", "Bread", "1", "10", "2.00").exit_code == 0
    assert _invoke("create-product", "Bread", "2", "5", "1.50").exit_code == 0


def test_cli_create_store_writes_csv(csv_backend):
    result = _invoke("create-store", "1", "Store A", "1 North St")
    assert result.exit_code == 0
    assert "Store created successfully" in result.output
    assert (csv_backend / "stores.csv").read_text() == "1,Store A,1 North St\n"


def test_cli_duplicate_store_fails_cleanly():
    _invoke("create-store", "1", "Store A", "1 North St")
    result = _invoke("create-store", "1", "Other", "Elsewhere")
    assert result.exit_code == 1
    assert "DUPLICATE_KEY" in result.output


def test_cli_create_product_unknown_store():
    result = _invoke("create-product", "Bread", "9", "1", "1.00")
    assert result.exit_code == 1
    assert "UNKNOWN_STORE" in result.output


def test_cli_create_product_rejects_bad_price():
    _invoke("create-store", "1", "Store A", "1 North St")
    result = _invoke("create-product", "Bread", "1", "1", "cheap")
    assert result.exit_code != 0
    assert "Invalid amount" in result.output


def test_cli_deliver_and_list_products(csv_backend):
    _seed()
    result = _invoke("deliver", "1", "Bread=5@2.10", "Milk=3@1.20")
    assert result.exit_code == 0
    assert "delivered successfully" in result.output
    assert (csv_backend / "products.csv").read_text().splitlines() == [
        "Bread,1,15,2.10",
        "Bread,2,5,1.50",
        "Milk,1,3,1.20",
    ]

    listing = _invoke("products", "--store", "1")
    assert listing.exit_code == 0
    assert "Milk" in listing.output


def test_cli_deliver_rejects_malformed_line():
    _seed()
    result = _invoke("deliver", "1", "Bread:5")
    assert result.exit_code != 0
    assert "NAME=QTY@PRICE" in result.output


def test_cli_cheapest_store():
    _seed()
    result = _invoke("cheapest-store", "Bread")
    assert result.exit_code == 0
    assert "Store B" in result.output

    missing = _invoke("cheapest-store", "Caviar")
    assert missing.exit_code == 0
    assert "No store found selling Caviar" in missing.output


def test_cli_affordable():
    _seed()
    result = _invoke("affordable", "2", "1.50")
    assert result.exit_code == 0
    assert "Bread" in result.output

    none = _invoke("affordable", "1", "1")
    assert "No products are affordable" in none.output


def test_cli_purchase_success_and_rejection(csv_backend):
    _seed()
    ok = _invoke("purchase", "1", "Bread=4")
    assert ok.exit_code == 0
    assert "8.00" in ok.output

    rejected = _invoke("purchase", "1", "Bread=7")
    assert rejected.exit_code == 1
    assert "insufficient stock" in rejected.output
    assert "requested 7, available 6" in rejected.output
    assert "Bread,1,6,2.00" in (csv_backend / "products.csv").read_text()


def test_cli_cheapest_batch():
    _seed()
    assert "Store B" in _invoke("cheapest-batch", "Bread=5").output
    assert "Store A" in _invoke("cheapest-batch", "Bread=6").output
    assert "No store can fulfil" in _invoke("cheapest-batch", "Bread=11").output


def test_cli_stores_listing():
    _seed()
    result = _invoke("stores")
    assert result.exit_code == 0
    assert "Store A" in result.output
    assert "Store B" in result.output


def test_cli_version():
    """Test version command."""
    result = _invoke("version")
    assert result.exit_code == 0
    assert "retailinv version 0.1.0" in result.output


def test_parse_items_sums_repeated_names():
    assert parse_items(["Bread=2", "Milk=1", "Bread=3"]) == {"Bread": 5, "Milk": 1}


def test_cli_affordable_rejects_negative_budget():
    _seed()
    result = _invoke("affordable", "1", "--", "-0.50")
    assert result.exit_code == 2
    assert "Budget cannot be negative" in result.output


def test_cli_invalid_config_exits_without_traceback(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")

    result = _invoke("stores")

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Configuration validation failed" in result.output


def test_cli_unopenable_database_exits_without_traceback(tmp_path, monkeypatch):
    monkeypatch.setenv("BACKEND", "sql")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'missing' / 'dir' / 'x.db'}")

    result = _invoke("stores")

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "unable to open database file" in result.output


@pytest.mark.parametrize(
    ("args", "expected"),
    [(["version"], "WARNING"), (["-v", "version"], logging.DEBUG)],
)
def test_cli_logging_follows_log_level(monkeypatch, args, expected):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    calls = []
    monkeypatch.setattr("logging.basicConfig", lambda **kwargs: calls.append(kwargs))

    result = _invoke(*args)

    assert result.exit_code == 0
    assert calls[0]["level"] == expected

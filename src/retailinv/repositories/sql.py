"""Relational inventory repository on SQLAlchemy."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator, Mapping, Optional, Sequence

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    Numeric,
    String,
    create_engine,
    event,
    select,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from retailinv import batching
from retailinv.exceptions import DuplicateKeyError, UnknownStoreError
from retailinv.models import Product, PurchaseResult, Store
from retailinv.repositories.base import InventoryRepository

logger = logging.getLogger(__name__)

Base = declarative_base()


class StoreRow(Base):
    __tablename__ = "stores"

    code = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String, nullable=False)
    address = Column(String, nullable=False)

    products = relationship("ProductRow", back_populates="store")


class ProductRow(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
    )

    name = Column(String, primary_key=True)
    store_code = Column(Integer, ForeignKey("stores.code"), primary_key=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    store = relationship("StoreRow", back_populates="products")


def _to_store(row: StoreRow) -> Store:
    return Store(code=row.code, name=row.name, address=row.address)


def _to_product(row: ProductRow) -> Product:
    return Product(
        name=row.name,
        store_code=row.store_code,
        quantity=row.quantity,
        price=row.price,
    )


def create_inventory_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine; SQLite gets foreign keys and a shared in-memory pool."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo)

    kwargs: dict = {}
    if url.database in (None, "", ":memory:"):
        kwargs = {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    engine = create_engine(url, echo=echo, **kwargs)

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


class SqlInventoryRepository(InventoryRepository):
    """Inventory stored in ``stores`` and ``products`` tables."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = sessionmaker(
            bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
        )

    @classmethod
    def from_url(cls, database_url: str, *, echo: bool = False) -> "SqlInventoryRepository":
        repository = cls(create_inventory_engine(database_url, echo=echo))
        repository.init_schema()
        return repository

    def init_schema(self) -> None:
        """Create missing tables."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_store(self, store: Store) -> Store:
        with self.session_scope() as session:
            if session.get(StoreRow, store.code) is not None:
                raise DuplicateKeyError(store.code)
            session.add(StoreRow(code=store.code, name=store.name, address=store.address))
        logger.info("Created store %s (%s)", store.code, store.name)
        return store

    def create_product(self, product: Product) -> Product:
        with self.session_scope() as session:
            self._require_store(session, product.store_code)
            return self._upsert(session, product)

    def import_goods_to_store(
        self, store_code: int, products: Sequence[Product]
    ) -> list[Product]:
        with self.session_scope() as session:
            self._require_store(session, store_code)
            touched: dict[str, Product] = {}
            for product in products:
                line = product.model_copy(update={"store_code": store_code})
                touched[line.name] = self._upsert(session, line)
        logger.info("Imported %d product lines into store %s", len(products), store_code)
        return list(touched.values())

    def find_cheapest_store_for_product(self, product_name: str) -> Optional[Store]:
        stmt = (
            select(StoreRow)
            .join(ProductRow, ProductRow.store_code == StoreRow.code)
            .where(ProductRow.name == product_name)
            .order_by(ProductRow.price, ProductRow.store_code)
            .limit(1)
        )
        with self.session_scope() as session:
            row = session.scalars(stmt).first()
            return _to_store(row) if row is not None else None

    def get_affordable_products_in_store(
        self, store_code: int, budget: Decimal
    ) -> list[Product]:
        with self.session_scope() as session:
            self._require_store(session, store_code)
            rows = session.scalars(
                select(ProductRow).where(ProductRow.store_code == store_code)
            ).all()
            return batching.affordable_products((_to_product(r) for r in rows), budget)

    def purchase_goods(
        self, store_code: int, items: Mapping[str, int]
    ) -> PurchaseResult:
        with self.session_scope() as session:
            self._require_store(session, store_code)
            items = batching.validate_items(items)
            rows = {
                row.name: row
                for row in session.scalars(
                    select(ProductRow)
                    .where(ProductRow.store_code == store_code)
                    .where(ProductRow.name.in_(list(items)))
                    .with_for_update()
                )
            }
            stock = {name: _to_product(row) for name, row in rows.items()}
            result, updated = batching.plan_purchase(store_code, stock, items)
            if not result.ok:
                session.rollback()
            for product in updated:
                rows[product.name].quantity = product.quantity
        logger.info("Purchase in store %s: %s", store_code, result.status)
        return result

    def find_cheapest_store_for_batch(self, items: Mapping[str, int]) -> Optional[Store]:
        items = batching.validate_items(items)
        with self.session_scope() as session:
            stores = [
                _to_store(row)
                for row in session.scalars(select(StoreRow).order_by(StoreRow.code))
            ]
            products = [
                _to_product(row)
                for row in session.scalars(
                    select(ProductRow).where(ProductRow.name.in_(list(items)))
                )
            ]
        return batching.cheapest_store_for_batch(
            stores, batching.index_by_store(products), items
        )

    def list_stores(self) -> list[Store]:
        with self.session_scope() as session:
            return [
                _to_store(row)
                for row in session.scalars(select(StoreRow).order_by(StoreRow.code))
            ]

    def get_store(self, code: int) -> Optional[Store]:
        with self.session_scope() as session:
            row = session.get(StoreRow, code)
            return _to_store(row) if row is not None else None

    def list_products(self, store_code: Optional[int] = None) -> list[Product]:
        stmt = select(ProductRow).order_by(ProductRow.store_code, ProductRow.name)
        if store_code is not None:
            stmt = stmt.where(ProductRow.store_code == store_code)
        with self.session_scope() as session:
            return [_to_product(row) for row in session.scalars(stmt)]

    @staticmethod
    def _require_store(session: Session, store_code: int) -> StoreRow:
        row = session.get(StoreRow, store_code)
        if row is None:
            raise UnknownStoreError(store_code)
        return row

    @staticmethod
    def _upsert(session: Session, product: Product) -> Product:
        row = session.get(ProductRow, (product.name, product.store_code))
        merged = batching.merge_product(
            _to_product(row) if row is not None else None, product
        )
        if row is None:
            session.add(
                ProductRow(
                    name=merged.name,
                    store_code=merged.store_code,
                    quantity=merged.quantity,
                    price=merged.price,
                )
            )
            # later lines of the same delivery must find this row
            session.flush()
        else:
            row.quantity = merged.quantity
            row.price = merged.price
        return merged

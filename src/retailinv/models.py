"""Pydantic data models for stores, products and batch operations."""

from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from retailinv.exceptions import InsufficientStockError

_FORBIDDEN_CHARS = (",", "\n", "\r")


def _check_text(value: str, field_name: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{field_name} cannot be blank")
    if any(char in value for char in _FORBIDDEN_CHARS):
        raise ValueError(f"{field_name} cannot contain commas or line breaks")
    return value


class Store(BaseModel):
    """Retail outlet identified by a unique numeric code."""

    model_config = ConfigDict(frozen=True)

    code: int = Field(..., description="Unique store code")
    name: str = Field(..., description="Store name")
    address: str = Field(..., description="Street address")

    @field_validator("name", "address")
    @classmethod
    def validate_text(cls, v: str, info) -> str:
        return _check_text(v, info.field_name)


class Product(BaseModel):
    """Stock of one named good in one store."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Product name")
    store_code: int = Field(..., description="Code of the owning store")
    quantity: int = Field(..., ge=0, description="Units on hand")
    price: Decimal = Field(..., ge=0, decimal_places=2, description="Unit price")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_text(v, "name")

    @property
    def key(self) -> tuple[str, int]:
        return (self.name, self.store_code)


class DeliveryLine(BaseModel):
    """One line of a stock delivery to a fixed store."""

    name: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)
    price: Decimal = Field(..., ge=0, decimal_places=2)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_text(v, "name")

    def to_product(self, store_code: int) -> Product:
        return Product(
            name=self.name,
            store_code=store_code,
            quantity=self.quantity,
            price=self.price,
        )


class DeliveryRequest(BaseModel):
    """Request payload for a stock delivery."""

    products: List[DeliveryLine] = Field(..., min_length=1)


class BatchRequest(BaseModel):
    """Shopping list: product name to requested quantity."""

    items: Dict[str, int] = Field(..., min_length=1)


class Shortage(BaseModel):
    """Item of a batch a store cannot satisfy."""

    name: str
    requested: int
    available: int


class StoreQuote(BaseModel):
    """Feasibility and total cost of a batch at one store."""

    store_code: int
    total_cost: Decimal
    shortages: List[Shortage] = Field(default_factory=list)

    @property
    def feasible(self) -> bool:
        return not self.shortages


class PurchaseResult(BaseModel):
    """Outcome of a multi-item purchase."""

    store_code: int
    status: Literal["completed", "rejected"]
    total_cost: Optional[Decimal] = None
    shortages: List[Shortage] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "completed"

    def raise_for_status(self) -> "PurchaseResult":
        """Raise InsufficientStockError if the purchase was rejected."""
        if not self.ok:
            raise InsufficientStockError(
                self.store_code,
                [shortage.model_dump(mode="json") for shortage in self.shortages],
            )
        return self

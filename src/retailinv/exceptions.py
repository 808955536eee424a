"""Inventory error taxonomy with stable API error payloads."""

from typing import Any, Dict, Optional


class InventoryError(Exception):
    """Error that maps to a stable API error payload."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class DuplicateKeyError(InventoryError):
    """Store code already taken."""

    def __init__(self, store_code: int) -> None:
        super().__init__(
            "DUPLICATE_KEY",
            f"A store with code {store_code} already exists.",
            status_code=409,
            details={"store_code": store_code},
        )
        self.store_code = store_code


class UnknownStoreError(InventoryError):
    """Operation references a store code that does not exist."""

    def __init__(self, store_code: int) -> None:
        super().__init__(
            "UNKNOWN_STORE",
            f"Store with code {store_code} does not exist.",
            status_code=404,
            details={"store_code": store_code},
        )
        self.store_code = store_code


class InsufficientStockError(InventoryError):
    """Purchase cannot be satisfied in full."""

    def __init__(self, store_code: int, shortages: list[dict]) -> None:
        names = ", ".join(s["name"] for s in shortages)
        super().__init__(
            "INSUFFICIENT_STOCK",
            f"Purchase in store {store_code} rejected, insufficient stock for: {names}",
            status_code=409,
            details={"store_code": store_code, "shortages": shortages},
        )
        self.store_code = store_code
        self.shortages = shortages


class InvalidBatchError(InventoryError):
    """Batch request is empty or has a non-positive quantity."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("INVALID_BATCH", message, status_code=422, details=details)


class NotFoundError(InventoryError):
    """Lookup matched nothing."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("NOT_FOUND", message, status_code=404, details=details)


class OperationFailedError(InventoryError):
    """Service-level wrapper that keeps the backend failure as its cause."""

    def __init__(self, context: str, cause: BaseException) -> None:
        if isinstance(cause, InventoryError):
            code, status_code, details = cause.code, cause.status_code, cause.details
        else:
            code, status_code, details = "OPERATION_FAILED", 500, {}
        super().__init__(
            code,
            f"{context}: {cause}",
            status_code=status_code,
            details=details,
        )
        self.context = context
        self.cause = cause

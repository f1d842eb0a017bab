from __future__ import annotations


class LedgerError(Exception):
    """Base class for every failure a bookkeeping operation reports to its caller."""

    code = "ledger_error"
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.detail}


class InvalidInput(LedgerError):
    code = "invalid_input"
    status_code = 422


class InsufficientStock(LedgerError):
    code = "insufficient_stock"
    status_code = 409

    def __init__(self, product_id: int, available: float, requested: float):
        super().__init__(
            "Insufficient stock for product {}: requested {}, available {}.".format(
                product_id, _format_quantity(requested), _format_quantity(available)
            )
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload.update(
            product_id=self.product_id,
            available=self.available,
            requested=self.requested,
        )
        return payload


class _NotFound(LedgerError):
    status_code = 404
    entity = "Record"

    def __init__(self, entity_id: int, detail: str | None = None):
        super().__init__(detail or "{} {} not found.".format(self.entity, entity_id))
        self.entity_id = entity_id


class ProductNotFound(_NotFound):
    code = "product_not_found"
    entity = "Product"


class SaleNotFound(_NotFound):
    code = "sale_not_found"
    entity = "Sale"


class InventoryNotFound(_NotFound):
    code = "inventory_not_found"
    entity = "Inventory record"


class ExpenseNotFound(_NotFound):
    code = "expense_not_found"
    entity = "Expense"


class Unauthenticated(LedgerError):
    code = "unauthenticated"
    status_code = 401

    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(detail)


class StorageUnavailable(LedgerError):
    code = "storage_unavailable"
    status_code = 503

    def __init__(self, detail: str = "Storage is unavailable, try again later."):
        super().__init__(detail)


def _format_quantity(value: float) -> str:
    return "{:g}".format(value)


__all__ = [
    "ExpenseNotFound",
    "InsufficientStock",
    "InvalidInput",
    "InventoryNotFound",
    "LedgerError",
    "ProductNotFound",
    "SaleNotFound",
    "StorageUnavailable",
    "Unauthenticated",
]

import math

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from bookkeeping.core.constants import LOW_STOCK_LIMIT
from bookkeeping.core.dates import utcnow
from bookkeeping.core.errors import InvalidInput, InventoryNotFound
from bookkeeping.core.security import SessionContext, require_session
from bookkeeping.database.session import atomic, storage_errors
from bookkeeping.models.inventory import Inventory
from bookkeeping.models.product import Product


def list_inventory(db: Session, ctx: SessionContext) -> list[tuple[Inventory, Product]]:
    require_session(ctx)
    stmt = (
        select(Inventory, Product)
        .join(Product, Product.id == Inventory.product_id)
        .order_by(Inventory.quantity.asc(), Product.name)
        .execution_options(populate_existing=True)
    )
    with storage_errors():
        rows = db.execute(stmt).all()
    return [(row.Inventory, row.Product) for row in rows]


def set_reorder_level(db: Session, ctx: SessionContext, inventory_id: int, reorder_level) -> Inventory:
    require_session(ctx)
    try:
        level = float(reorder_level)
    except (TypeError, ValueError) as exc:
        raise InvalidInput("reorder_level must be a number.") from exc
    if not math.isfinite(level) or level < 0:
        raise InvalidInput("reorder_level must be non-negative.")

    with atomic(db):
        result = db.execute(
            update(Inventory)
            .where(Inventory.id == inventory_id)
            .values(reorder_level=level, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InventoryNotFound(inventory_id)
        record = db.get(Inventory, inventory_id, populate_existing=True)
    return record


def low_stock_items(
    db: Session,
    ctx: SessionContext,
    limit: int | None = LOW_STOCK_LIMIT,
) -> list[tuple[Inventory, Product]]:
    require_session(ctx)
    stmt = (
        select(Inventory, Product)
        .join(Product, Product.id == Inventory.product_id)
        .where(Product.is_active.is_(True), Inventory.quantity <= Inventory.reorder_level)
        .order_by(Inventory.quantity.asc(), Product.name)
        .execution_options(populate_existing=True)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    with storage_errors():
        rows = db.execute(stmt).all()
    return [(row.Inventory, row.Product) for row in rows]


def inventory_value(db: Session, ctx: SessionContext) -> float:
    require_session(ctx)
    stmt = select(
        func.coalesce(func.sum(Inventory.quantity * Product.cost_per_unit), 0)
    ).join(Product, Product.id == Inventory.product_id)
    with storage_errors():
        total = db.execute(stmt).scalar_one()
    return round(float(total), 2)

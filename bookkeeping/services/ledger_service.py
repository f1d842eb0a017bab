import logging
import math
from dataclasses import dataclass
from datetime import date

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.orm import Session

from bookkeeping.core.constants import QUANTITY_DECIMALS, QUANTITY_TOLERANCE
from bookkeeping.core.dates import normalize_date, utcnow
from bookkeeping.core.errors import (
    InsufficientStock,
    InvalidInput,
    InventoryNotFound,
    ProductNotFound,
    SaleNotFound,
)
from bookkeeping.core.security import SessionContext, require_session
from bookkeeping.database.session import atomic, storage_errors
from bookkeeping.models.inventory import Inventory
from bookkeeping.models.product import Product
from bookkeeping.models.restock import RestockEntry
from bookkeeping.models.sales import Sale

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockDiscrepancy:
    inventory_id: int
    product_id: int
    recorded_quantity: float
    expected_quantity: float

    @property
    def difference(self) -> float:
        return self.recorded_quantity - self.expected_quantity


def require_positive(name: str, value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput("{} must be a number.".format(name)) from exc
    if not math.isfinite(number) or number <= 0:
        raise InvalidInput("{} must be greater than zero.".format(name))
    return number


def require_quantity(name: str, value) -> float:
    quantity = round(require_positive(name, value), QUANTITY_DECIMALS)
    if quantity <= 0:
        raise InvalidInput(
            "{} must be at least {}.".format(name, 10 ** -QUANTITY_DECIMALS)
        )
    return quantity


def _snap_to_zero(expression):
    # Float residue left by fractional sales must not trip the CHECK constraint.
    return case((expression < QUANTITY_TOLERANCE, 0.0), else_=expression)


def money(value: float) -> float:
    return round(value, 2)


def _resolve_date(name: str, value) -> date:
    if value is None:
        return date.today()
    resolved = normalize_date(value)
    if resolved is None:
        raise InvalidInput("{} must be an ISO date.".format(name))
    return resolved


def _sale_rejection(db: Session, product_id: int, requested: float):
    is_active = db.execute(
        select(Product.is_active).where(Product.id == product_id)
    ).scalar_one_or_none()
    if not is_active:
        return ProductNotFound(product_id)

    available = db.execute(
        select(Inventory.quantity).where(Inventory.product_id == product_id)
    ).scalar_one_or_none()
    available = float(available or 0.0)
    logger.warning(
        "Rejected sale of %s units: only %g available.",
        requested,
        available,
        extra={"product_id": product_id},
    )
    return InsufficientStock(product_id, available=available, requested=requested)


def record_sale(
    db: Session,
    ctx: SessionContext,
    product_id: int,
    quantity,
    price_per_unit,
    sale_date=None,
    *,
    customer_name: str | None = None,
    notes: str | None = None,
) -> Sale:
    require_session(ctx)
    quantity = require_quantity("quantity", quantity)
    price_per_unit = require_positive("price_per_unit", price_per_unit)
    sale_date = _resolve_date("sale_date", sale_date)

    product_is_active = (
        select(Product.id)
        .where(Product.id == product_id, Product.is_active.is_(True))
        .exists()
    )
    # Check and decrement in one statement; it is also the first write of the
    # transaction so concurrent sellers queue on the row/database lock.
    decrement = (
        update(Inventory)
        .where(
            Inventory.product_id == product_id,
            Inventory.quantity >= quantity - QUANTITY_TOLERANCE,
            product_is_active,
        )
        .values(quantity=_snap_to_zero(Inventory.quantity - quantity), updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )

    with atomic(db):
        result = db.execute(decrement)
        if result.rowcount != 1:
            raise _sale_rejection(db, product_id, quantity)

        cost_per_unit = float(
            db.execute(
                select(Product.cost_per_unit).where(Product.id == product_id)
            ).scalar_one()
        )
        total_revenue = money(quantity * price_per_unit)
        total_cost = money(quantity * cost_per_unit)
        sale = Sale(
            product_id=product_id,
            sale_date=sale_date,
            quantity=quantity,
            price_per_unit=price_per_unit,
            cost_per_unit=cost_per_unit,
            total_revenue=total_revenue,
            total_cost=total_cost,
            profit=money(total_revenue - total_cost),
            customer_name=(customer_name or "").strip() or None,
            notes=(notes or "").strip() or None,
        )
        db.add(sale)
        db.flush()

    logger.info(
        "Recorded sale of %s units, revenue %.2f.",
        quantity,
        sale.total_revenue,
        extra={"user_id": ctx.user_id, "product_id": product_id, "sale_id": sale.id},
    )
    return sale


def delete_sale(db: Session, ctx: SessionContext, sale_id: int) -> None:
    require_session(ctx)

    remove = (
        delete(Sale)
        .where(Sale.id == sale_id)
        .returning(Sale.product_id, Sale.quantity)
        .execution_options(synchronize_session=False)
    )

    with atomic(db):
        removed = db.execute(remove).first()
        if removed is None:
            raise SaleNotFound(sale_id)

        restored = db.execute(
            update(Inventory)
            .where(Inventory.product_id == removed.product_id)
            .values(quantity=Inventory.quantity + removed.quantity, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if restored.rowcount != 1:
            raise InventoryNotFound(
                removed.product_id,
                "No inventory record for product {}; sale {} was kept.".format(
                    removed.product_id, sale_id
                ),
            )

    logger.info(
        "Deleted sale, restored %s units.",
        removed.quantity,
        extra={"user_id": ctx.user_id, "product_id": removed.product_id, "sale_id": sale_id},
    )


def restock(
    db: Session,
    ctx: SessionContext,
    inventory_id: int,
    added_quantity,
    restocked_on=None,
) -> Inventory:
    require_session(ctx)
    added_quantity = require_quantity("added_quantity", added_quantity)
    restocked_on = _resolve_date("restocked_on", restocked_on)

    increment = (
        update(Inventory)
        .where(Inventory.id == inventory_id)
        .values(
            quantity=Inventory.quantity + added_quantity,
            last_restocked_date=restocked_on,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )

    with atomic(db):
        result = db.execute(increment)
        if result.rowcount != 1:
            raise InventoryNotFound(inventory_id)

        record = db.get(Inventory, inventory_id, populate_existing=True)
        db.add(
            RestockEntry(
                inventory_id=inventory_id,
                product_id=record.product_id,
                quantity=added_quantity,
                restocked_on=restocked_on,
            )
        )

    logger.info(
        "Restocked %s %s (now %g).",
        added_quantity,
        record.unit,
        record.quantity,
        extra={
            "user_id": ctx.user_id,
            "product_id": record.product_id,
            "inventory_id": inventory_id,
        },
    )
    return record


def reconcile_inventory(
    db: Session,
    ctx: SessionContext,
    product_id: int | None = None,
) -> list[StockDiscrepancy]:
    require_session(ctx)

    restocked = (
        select(
            RestockEntry.product_id.label("product_id"),
            func.sum(RestockEntry.quantity).label("total"),
        )
        .group_by(RestockEntry.product_id)
        .subquery()
    )
    sold = (
        select(
            Sale.product_id.label("product_id"),
            func.sum(Sale.quantity).label("total"),
        )
        .group_by(Sale.product_id)
        .subquery()
    )
    stmt = (
        select(
            Inventory.id,
            Inventory.product_id,
            Inventory.quantity,
            func.coalesce(restocked.c.total, 0).label("restocked"),
            func.coalesce(sold.c.total, 0).label("sold"),
        )
        .outerjoin(restocked, restocked.c.product_id == Inventory.product_id)
        .outerjoin(sold, sold.c.product_id == Inventory.product_id)
        .order_by(Inventory.product_id)
    )
    if product_id is not None:
        stmt = stmt.where(Inventory.product_id == product_id)

    with storage_errors():
        rows = db.execute(stmt).all()

    discrepancies = []
    for row in rows:
        expected = float(row.restocked) - float(row.sold)
        recorded = float(row.quantity)
        if abs(recorded - expected) > QUANTITY_TOLERANCE:
            discrepancies.append(
                StockDiscrepancy(
                    inventory_id=row.id,
                    product_id=row.product_id,
                    recorded_quantity=recorded,
                    expected_quantity=expected,
                )
            )
    if discrepancies:
        logger.warning("Found %s inventory records out of balance.", len(discrepancies))
    return discrepancies


__all__ = [
    "StockDiscrepancy",
    "delete_sale",
    "money",
    "reconcile_inventory",
    "record_sale",
    "require_positive",
    "require_quantity",
    "restock",
]

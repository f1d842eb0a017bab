import logging
import math
from datetime import datetime, timezone
from typing import cast

from sqlalchemy import select
from sqlalchemy.orm import Session

from bookkeeping.config import get_settings
from bookkeeping.core.errors import InvalidInput, ProductNotFound
from bookkeeping.core.security import SessionContext, require_session
from bookkeeping.database.session import atomic, storage_errors
from bookkeeping.models.inventory import Inventory
from bookkeeping.models.price_history import PriceHistory
from bookkeeping.models.product import Product

logger = logging.getLogger(__name__)


def _require_name(name) -> str:
    value = str(name or "").strip()
    if not value:
        raise InvalidInput("name is required.")
    return value


def _require_price(name: str, value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput("{} must be a number.".format(name)) from exc
    if not math.isfinite(number) or number < 0:
        raise InvalidInput("{} must be non-negative.".format(name))
    return number


def apply_price_update(
    db: Session,
    product: Product,
    field: str,
    new_value: float | None,
    *,
    changed_at: datetime | None = None,
) -> datetime | None:
    if new_value is None:
        return None

    new_value = _require_price(field, new_value)
    current = getattr(product, field)
    old_value = float(current) if current is not None else None
    if old_value is not None and old_value == new_value:
        return None

    if changed_at is None:
        changed_at = datetime.now(timezone.utc)
    elif changed_at.tzinfo is None:
        changed_at = changed_at.replace(tzinfo=timezone.utc)
    else:
        changed_at = changed_at.astimezone(timezone.utc)

    if product.id is not None:
        db.add(
            PriceHistory(
                product_id=product.id,
                field=field,
                old_value=old_value if old_value is not None else 0.0,
                new_value=new_value,
                changed_at=changed_at,
            )
        )
    setattr(product, field, new_value)
    return changed_at


def _load_product(db: Session, product_id: int, *, include_inactive: bool = False) -> Product:
    with storage_errors():
        product = db.get(Product, product_id)
    if product is None or (not include_inactive and not product.is_active):
        raise ProductNotFound(product_id)
    return product


def create_product(
    db: Session,
    ctx: SessionContext,
    name: str,
    selling_price,
    cost_per_unit,
    *,
    category: str = "",
    description: str | None = None,
) -> Product:
    require_session(ctx)
    settings = get_settings()
    product = Product(
        name=_require_name(name),
        category=(category or "").strip(),
        description=(description or "").strip() or None,
        selling_price=_require_price("selling_price", selling_price),
        cost_per_unit=_require_price("cost_per_unit", cost_per_unit),
        is_active=True,
    )

    with atomic(db):
        db.add(product)
        db.flush()
        db.add(
            Inventory(
                product_id=product.id,
                quantity=0,
                unit=settings.DEFAULT_STOCK_UNIT,
                reorder_level=settings.DEFAULT_REORDER_LEVEL,
            )
        )

    logger.info(
        "Created product %s.",
        product.name,
        extra={"user_id": ctx.user_id, "product_id": product.id},
    )
    return product


def update_product(
    db: Session,
    ctx: SessionContext,
    product_id: int,
    *,
    name: str | None = None,
    category: str | None = None,
    description: str | None = None,
    selling_price: float | None = None,
    cost_per_unit: float | None = None,
) -> Product:
    require_session(ctx)
    with atomic(db):
        product = _load_product(db, product_id)
        if name is not None:
            product.name = _require_name(name)
        if category is not None:
            product.category = category.strip()
        if description is not None:
            product.description = description.strip() or None
        apply_price_update(db, product, "selling_price", selling_price)
        apply_price_update(db, product, "cost_per_unit", cost_per_unit)
    return product


def deactivate_product(db: Session, ctx: SessionContext, product_id: int) -> Product:
    require_session(ctx)
    with atomic(db):
        product = _load_product(db, product_id)
        product.is_active = False
    logger.info("Deactivated product.", extra={"user_id": ctx.user_id, "product_id": product_id})
    return product


def get_product(
    db: Session,
    ctx: SessionContext,
    product_id: int,
    *,
    include_inactive: bool = False,
) -> Product:
    require_session(ctx)
    return _load_product(db, product_id, include_inactive=include_inactive)


def list_products(
    db: Session,
    ctx: SessionContext,
    *,
    include_inactive: bool = False,
) -> list[tuple[Product, Inventory | None]]:
    require_session(ctx)
    stmt = (
        select(Product, Inventory)
        .outerjoin(Inventory, Inventory.product_id == Product.id)
        .order_by(Product.name, Product.id)
        .execution_options(populate_existing=True)
    )
    if not include_inactive:
        stmt = stmt.where(Product.is_active.is_(True))
    with storage_errors():
        rows = db.execute(stmt).all()
    return [(row.Product, row.Inventory) for row in rows]


def get_inventory_for_product(db: Session, product_id: int) -> Inventory | None:
    with storage_errors():
        return (
            db.execute(
                select(Inventory)
                .where(Inventory.product_id == product_id)
                .execution_options(populate_existing=True)
            )
            .scalars()
            .one_or_none()
        )


def load_price_history(db: Session, product_id: int) -> list[PriceHistory]:
    with storage_errors():
        history = (
            db.execute(
                select(PriceHistory)
                .where(PriceHistory.product_id == product_id)
                .order_by(PriceHistory.changed_at.desc(), PriceHistory.id.desc())
            )
            .scalars()
            .all()
        )
    return cast(list[PriceHistory], list(history))


__all__ = [
    "apply_price_update",
    "create_product",
    "deactivate_product",
    "get_inventory_for_product",
    "get_product",
    "list_products",
    "load_price_history",
    "update_product",
]

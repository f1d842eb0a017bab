from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bookkeeping.config import get_settings
from bookkeeping.core.constants import LOW_STOCK_LIMIT, RECENT_SALES_LIMIT
from bookkeeping.core.dates import window_start
from bookkeeping.core.security import SessionContext, require_session
from bookkeeping.database.session import storage_errors
from bookkeeping.models.expense import Expense
from bookkeeping.models.product import Product
from bookkeeping.models.sales import Sale
from bookkeeping.services.inventory_service import inventory_value, low_stock_items


def sales_totals(sales) -> dict:
    revenue = sum(float(sale.total_revenue) for sale in sales)
    cost = sum(float(sale.total_cost) for sale in sales)
    profit = sum(float(sale.profit) for sale in sales)
    return {
        "count": len(sales),
        "total_revenue": round(revenue, 2),
        "total_cost": round(cost, 2),
        "gross_profit": round(profit, 2),
    }


def list_sales(
    db: Session,
    ctx: SessionContext,
    *,
    since: date | None = None,
    limit: int | None = None,
) -> list[tuple[Sale, str | None]]:
    require_session(ctx)
    stmt = (
        select(Sale, Product.name)
        .outerjoin(Product, Product.id == Sale.product_id)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
    )
    if since is not None:
        stmt = stmt.where(Sale.sale_date >= since)
    if limit is not None:
        stmt = stmt.limit(limit)
    with storage_errors():
        rows = db.execute(stmt).all()
    return [(row.Sale, row.name) for row in rows]


def _recent_sales(db: Session, limit: int):
    stmt = (
        select(Sale, Product.name)
        .outerjoin(Product, Product.id == Sale.product_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(limit)
    )
    return [
        {
            "id": row.Sale.id,
            "product_id": row.Sale.product_id,
            "product_name": row.name,
            "sale_date": row.Sale.sale_date,
            "quantity": row.Sale.quantity,
            "total_revenue": row.Sale.total_revenue,
            "profit": row.Sale.profit,
        }
        for row in db.execute(stmt).all()
    ]


def dashboard_summary(
    db: Session,
    ctx: SessionContext,
    *,
    window_days: int | None = None,
    today: date | None = None,
) -> dict:
    require_session(ctx)
    if window_days is None:
        window_days = get_settings().SUMMARY_WINDOW_DAYS
    since = window_start(window_days, today)

    sales_stmt = select(
        func.coalesce(func.sum(Sale.total_revenue), 0),
        func.coalesce(func.sum(Sale.total_cost), 0),
        func.coalesce(func.sum(Sale.profit), 0),
    ).where(Sale.sale_date >= since)
    expenses_stmt = select(func.coalesce(func.sum(Expense.amount), 0)).where(
        Expense.expense_date >= since
    )
    product_count_stmt = select(func.count(Product.id)).where(Product.is_active.is_(True))

    with storage_errors():
        revenue, product_cost, gross_profit = db.execute(sales_stmt).one()
        total_expenses = db.execute(expenses_stmt).scalar_one()
        product_count = db.execute(product_count_stmt).scalar_one()
        recent_sales = _recent_sales(db, RECENT_SALES_LIMIT)

    revenue = round(float(revenue), 2)
    gross_profit = round(float(gross_profit), 2)
    total_expenses = round(float(total_expenses), 2)
    net_profit = round(gross_profit - total_expenses, 2)
    profit_margin = round(net_profit / revenue * 100, 1) if revenue > 0 else 0.0

    low_stock = [
        {
            "inventory_id": record.id,
            "product_id": product.id,
            "product_name": product.name,
            "quantity": record.quantity,
            "unit": record.unit,
            "reorder_level": record.reorder_level,
        }
        for record, product in low_stock_items(db, ctx, limit=LOW_STOCK_LIMIT)
    ]

    return {
        "window_days": window_days,
        "since": since,
        "total_revenue": revenue,
        "total_product_cost": round(float(product_cost), 2),
        "gross_profit": gross_profit,
        "total_expenses": total_expenses,
        "net_profit": net_profit,
        "profit_margin": profit_margin,
        "inventory_value": inventory_value(db, ctx),
        "product_count": int(product_count),
        "recent_sales": recent_sales,
        "low_stock": low_stock,
    }

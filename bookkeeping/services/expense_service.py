import logging
import math
from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from bookkeeping.core.constants import EXPENSE_CATEGORIES, MATERIALS_CATEGORY
from bookkeeping.core.dates import normalize_date
from bookkeeping.core.errors import ExpenseNotFound, InvalidInput
from bookkeeping.core.security import SessionContext, require_session
from bookkeeping.database.session import atomic, storage_errors
from bookkeeping.models.expense import Expense

logger = logging.getLogger(__name__)


def normalize_category(value) -> str:
    category = str(value or "").strip().lower()
    if category not in EXPENSE_CATEGORIES:
        raise InvalidInput(
            "category must be one of: {}.".format(", ".join(EXPENSE_CATEGORIES))
        )
    return category


def record_expense(
    db: Session,
    ctx: SessionContext,
    expense_date,
    category: str,
    amount,
    description: str,
    *,
    notes: str | None = None,
) -> Expense:
    require_session(ctx)
    resolved_date = date.today() if expense_date is None else normalize_date(expense_date)
    if resolved_date is None:
        raise InvalidInput("expense_date must be an ISO date.")
    try:
        amount = float(amount)
    except (TypeError, ValueError) as exc:
        raise InvalidInput("amount must be a number.") from exc
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidInput("amount must be greater than zero.")
    description = str(description or "").strip()
    if not description:
        raise InvalidInput("description is required.")

    expense = Expense(
        expense_date=resolved_date,
        category=normalize_category(category),
        amount=round(amount, 2),
        description=description,
        notes=(notes or "").strip() or None,
    )
    with atomic(db):
        db.add(expense)
    logger.info(
        "Recorded %s expense of %.2f.",
        expense.category,
        expense.amount,
        extra={"user_id": ctx.user_id, "expense_id": expense.id},
    )
    return expense


def delete_expense(db: Session, ctx: SessionContext, expense_id: int) -> None:
    require_session(ctx)
    with atomic(db):
        result = db.execute(
            delete(Expense)
            .where(Expense.id == expense_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ExpenseNotFound(expense_id)
    logger.info("Deleted expense.", extra={"user_id": ctx.user_id, "expense_id": expense_id})


def list_expenses(db: Session, ctx: SessionContext, *, since: date | None = None) -> list[Expense]:
    require_session(ctx)
    stmt = select(Expense).order_by(Expense.expense_date.desc(), Expense.id.desc())
    if since is not None:
        stmt = stmt.where(Expense.expense_date >= since)
    with storage_errors():
        return list(db.execute(stmt).scalars().all())


def expense_totals(expenses) -> dict:
    total = 0.0
    materials = 0.0
    for expense in expenses:
        amount = float(expense.amount)
        total += amount
        if expense.category == MATERIALS_CATEGORY:
            materials += amount
    return {
        "count": len(expenses),
        "total": round(total, 2),
        "materials": round(materials, 2),
        "operational": round(total - materials, 2),
    }

from datetime import date

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from bookkeeping.core.security import SessionContext
from bookkeeping.dependencies import get_db, require_auth
from bookkeeping.schemas.expense import ExpenseCreate, ExpenseList, ExpenseRead
from bookkeeping.services.expense_service import (
    delete_expense,
    expense_totals,
    list_expenses,
    record_expense,
)

router = APIRouter(prefix="/expenses", tags=["Expenses"])


@router.get("", response_model=ExpenseList)
def expenses_list(
    since: date | None = Query(None, description="Only expenses on or after this date"),
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    expenses = list_expenses(db, ctx, since=since)
    return ExpenseList(
        totals=expense_totals(expenses),
        expenses=[ExpenseRead.model_validate(expense) for expense in expenses],
    )


@router.post("", response_model=ExpenseRead, status_code=201)
def expense_record(
    payload: ExpenseCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    return record_expense(
        db,
        ctx,
        payload.expense_date,
        payload.category,
        payload.amount,
        payload.description,
        notes=payload.notes,
    )


@router.delete("/{expense_id}", status_code=204)
def expense_delete(
    expense_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    delete_expense(db, ctx, expense_id)
    return Response(status_code=204)


__all__ = ["router"]

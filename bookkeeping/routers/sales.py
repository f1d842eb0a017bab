from datetime import date

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from bookkeeping.core.security import SessionContext
from bookkeeping.dependencies import get_db, require_auth
from bookkeeping.schemas.sales import SaleCreate, SaleRead, SalesList, SaleWithProduct
from bookkeeping.services.ledger_service import delete_sale, record_sale
from bookkeeping.services.summary_service import list_sales, sales_totals

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.get("", response_model=SalesList)
def sales_list(
    since: date | None = Query(None, description="Only sales on or after this date"),
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    rows = list_sales(db, ctx, since=since)
    sales = []
    for sale, product_name in rows:
        item = SaleWithProduct.model_validate(sale)
        item.product_name = product_name
        sales.append(item)
    return SalesList(totals=sales_totals([sale for sale, _ in rows]), sales=sales)


@router.post("", response_model=SaleRead, status_code=201)
def sale_record(
    payload: SaleCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    return record_sale(
        db,
        ctx,
        payload.product_id,
        payload.quantity,
        payload.price_per_unit,
        payload.sale_date,
        customer_name=payload.customer_name,
        notes=payload.notes,
    )


@router.delete("/{sale_id}", status_code=204)
def sale_delete(
    sale_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    delete_sale(db, ctx, sale_id)
    return Response(status_code=204)


__all__ = ["router"]

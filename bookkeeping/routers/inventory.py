from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bookkeeping.core.security import SessionContext
from bookkeeping.dependencies import get_db, require_auth
from bookkeeping.schemas.inventory import (
    InventoryItem,
    InventoryList,
    InventoryRead,
    ReorderLevelUpdate,
    RestockRequest,
    StockDiscrepancyRead,
)
from bookkeeping.services.inventory_service import (
    inventory_value,
    list_inventory,
    low_stock_items,
    set_reorder_level,
)
from bookkeeping.services.ledger_service import reconcile_inventory, restock

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def _inventory_item(record, product) -> InventoryItem:
    base = InventoryRead.model_validate(record).model_dump()
    return InventoryItem(
        **base,
        product_name=product.name,
        category=product.category,
        selling_price=product.selling_price,
        cost_per_unit=product.cost_per_unit,
        is_active=product.is_active,
        stock_value=round(record.quantity * product.cost_per_unit, 2),
        low_stock=record.quantity <= record.reorder_level,
    )


@router.get("", response_model=InventoryList)
def inventory_list(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    items = [_inventory_item(record, product) for record, product in list_inventory(db, ctx)]
    return InventoryList(
        count=len(items),
        low_stock_count=sum(1 for item in items if item.low_stock),
        total_value=inventory_value(db, ctx),
        items=items,
    )


@router.get("/low-stock", response_model=list[InventoryItem])
def inventory_low_stock(
    limit: int = Query(50, ge=1, le=1000, description="Max records to return"),
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    return [
        _inventory_item(record, product)
        for record, product in low_stock_items(db, ctx, limit=limit)
    ]


@router.get("/reconcile", response_model=list[StockDiscrepancyRead])
def inventory_reconcile(
    product_id: int | None = Query(None, description="Limit the check to one product"),
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    return [
        StockDiscrepancyRead.model_validate(entry)
        for entry in reconcile_inventory(db, ctx, product_id=product_id)
    ]


@router.post("/{inventory_id}/restock", response_model=InventoryRead)
def inventory_restock(
    inventory_id: int,
    payload: RestockRequest,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    return restock(db, ctx, inventory_id, payload.added_quantity, payload.restocked_on)


@router.patch("/{inventory_id}/reorder-level", response_model=InventoryRead)
def inventory_reorder_level(
    inventory_id: int,
    payload: ReorderLevelUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    return set_reorder_level(db, ctx, inventory_id, payload.reorder_level)


__all__ = ["router"]

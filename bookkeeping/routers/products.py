from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bookkeeping.core.security import SessionContext
from bookkeeping.dependencies import get_db, require_auth
from bookkeeping.schemas.product import (
    PriceHistoryRead,
    ProductCreate,
    ProductRead,
    ProductReadWithHistory,
    ProductUpdate,
    ProductWithStock,
)
from bookkeeping.services.product_service import (
    create_product,
    deactivate_product,
    get_product,
    list_products,
    load_price_history,
    update_product,
)

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("", response_model=list[ProductWithStock])
def products_list(
    include_inactive: bool = Query(False, description="Include deactivated products"),
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    results = []
    for product, inventory in list_products(db, ctx, include_inactive=include_inactive):
        item = ProductWithStock.model_validate(product)
        if inventory is not None:
            item.inventory_id = inventory.id
            item.quantity = inventory.quantity
            item.unit = inventory.unit
        results.append(item)
    return results


@router.post("", response_model=ProductRead, status_code=201)
def product_create(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    return create_product(
        db,
        ctx,
        payload.name,
        payload.selling_price,
        payload.cost_per_unit,
        category=payload.category,
        description=payload.description,
    )


@router.get("/{product_id}", response_model=ProductReadWithHistory)
def product_detail(
    product_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    product = get_product(db, ctx, product_id, include_inactive=True)
    base = ProductReadWithHistory.model_validate(product).model_dump()
    base["price_history"] = [
        PriceHistoryRead.model_validate(entry) for entry in load_price_history(db, product.id)
    ]
    return ProductReadWithHistory(**base)


@router.patch("/{product_id}", response_model=ProductRead)
def product_update(
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    return update_product(db, ctx, product_id, **payload.model_dump(exclude_unset=True))


@router.delete("/{product_id}", response_model=ProductRead)
def product_deactivate(
    product_id: int,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    return deactivate_product(db, ctx, product_id)


__all__ = ["router"]

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SaleCreate(BaseModel):
    product_id: int
    quantity: float
    price_per_unit: float
    sale_date: Optional[date] = None
    customer_name: Optional[str] = None
    notes: Optional[str] = None


class SaleRead(BaseModel):
    id: int
    product_id: int
    sale_date: date
    quantity: float
    price_per_unit: float
    cost_per_unit: float
    total_revenue: float
    total_cost: float
    profit: float
    customer_name: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SaleWithProduct(SaleRead):
    product_name: Optional[str] = None


class SalesTotals(BaseModel):
    count: int
    total_revenue: float
    total_cost: float
    gross_profit: float


class SalesList(BaseModel):
    totals: SalesTotals
    sales: List[SaleWithProduct] = Field(default_factory=list)

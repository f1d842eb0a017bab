from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


class RecentSale(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    sale_date: date
    quantity: float
    total_revenue: float
    profit: float


class LowStockItem(BaseModel):
    inventory_id: int
    product_id: int
    product_name: str
    quantity: float
    unit: str
    reorder_level: float


class DashboardSummary(BaseModel):
    window_days: int
    since: date
    total_revenue: float
    total_product_cost: float
    gross_profit: float
    total_expenses: float
    net_profit: float
    profit_margin: float
    inventory_value: float
    product_count: int
    recent_sales: List[RecentSale] = Field(default_factory=list)
    low_stock: List[LowStockItem] = Field(default_factory=list)

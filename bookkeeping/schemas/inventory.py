from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class InventoryRead(BaseModel):
    id: int
    product_id: int
    quantity: float
    unit: str
    reorder_level: float
    last_restocked_date: Optional[date] = None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InventoryItem(InventoryRead):
    product_name: str
    category: str
    selling_price: float
    cost_per_unit: float
    is_active: bool
    stock_value: float
    low_stock: bool


class InventoryList(BaseModel):
    count: int
    low_stock_count: int
    total_value: float
    items: List[InventoryItem] = Field(default_factory=list)


class RestockRequest(BaseModel):
    added_quantity: float
    restocked_on: Optional[date] = None


class ReorderLevelUpdate(BaseModel):
    reorder_level: float


class StockDiscrepancyRead(BaseModel):
    inventory_id: int
    product_id: int
    recorded_quantity: float
    expected_quantity: float
    difference: float

    model_config = ConfigDict(from_attributes=True)

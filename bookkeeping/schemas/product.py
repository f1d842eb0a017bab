from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProductBase(BaseModel):
    name: str
    category: str = ""
    description: Optional[str] = None
    selling_price: float
    cost_per_unit: float


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    selling_price: Optional[float] = None
    cost_per_unit: Optional[float] = None


class ProductRead(ProductBase):
    id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductWithStock(ProductRead):
    inventory_id: Optional[int] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None


class PriceHistoryRead(BaseModel):
    field: str
    old_value: float
    new_value: float
    changed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductReadWithHistory(ProductRead):
    price_history: List[PriceHistoryRead] = Field(default_factory=list)

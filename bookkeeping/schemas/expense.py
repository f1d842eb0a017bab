from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExpenseCreate(BaseModel):
    expense_date: Optional[date] = None
    category: str = "materials"
    amount: float
    description: str
    notes: Optional[str] = None


class ExpenseRead(BaseModel):
    id: int
    expense_date: date
    category: str
    amount: float
    description: str
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ExpenseTotals(BaseModel):
    count: int
    total: float
    materials: float
    operational: float


class ExpenseList(BaseModel):
    totals: ExpenseTotals
    expenses: List[ExpenseRead] = Field(default_factory=list)

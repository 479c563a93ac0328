from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class StudentDueItem(BaseModel):
    """One due line item with its fee category name."""

    due_id: int
    student_id: int
    hostel_id: int
    fee_category_id: int
    fee_type: Optional[str] = None
    due_month: str
    due_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    due_date: date
    is_paid: bool
    paid_date: Optional[datetime] = None
    is_carried_forward: bool
    carried_from_month: Optional[str] = None

    class Config:
        from_attributes = True

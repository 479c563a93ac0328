"""Student dues summary schemas."""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from hostel_fees.core.enums import DuesPaymentStatus
from hostel_fees.core.schemas import StudentDueItem


class StudentDuesSummary(BaseModel):
    """Per-student dues position for one month."""

    student_id: int
    first_name: str
    last_name: Optional[str] = None
    student_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    admission_date: Optional[date] = None
    due_day: Optional[int] = None
    hostel_id: int
    hostel_name: Optional[str] = None
    room_id: Optional[int] = None
    room_number: Optional[str] = None
    floor_number: Optional[int] = None
    monthly_rent: Decimal
    month: str
    total_dues: Decimal
    total_paid: Decimal
    unpaid_count: int
    paid_count: int
    payment_status: DuesPaymentStatus
    unpaid_dues: List[StudentDueItem] = Field(default_factory=list)
    paid_dues: List[StudentDueItem] = Field(default_factory=list)

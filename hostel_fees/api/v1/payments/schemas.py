"""Payment schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class PaymentCreate(BaseModel):
    student_id: int = Field(..., gt=0)
    hostel_id: int = Field(..., gt=0)
    amount_paid: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    payment_mode_id: int = Field(..., gt=0)
    payment_date: Optional[date] = None
    transaction_reference: Optional[str] = Field(None, max_length=100)
    remarks: Optional[str] = None


class PaymentRecordedResponse(BaseModel):
    payment_id: int
    receipt_number: str
    amount_paid: Decimal
    # Amount applied to dues; the rest is an overpayment not tracked as credit
    allocated_amount: Decimal
    unallocated_amount: Decimal
    dues_updated: int


class PaymentResponse(BaseModel):
    payment_id: int
    student_id: int
    hostel_id: int
    student_name: Optional[str] = None
    phone: Optional[str] = None
    hostel_name: Optional[str] = None
    amount_paid: Decimal
    payment_date: date
    payment_mode_id: int
    payment_mode: Optional[str] = None
    transaction_reference: Optional[str] = None
    receipt_number: str
    remarks: Optional[str] = None
    created_at: datetime


class ReceiptResponse(PaymentResponse):
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    hostel_contact: Optional[str] = None
    room_number: Optional[str] = None


class PaymentModeResponse(BaseModel):
    payment_mode_id: int
    payment_mode_name: str
    order_index: Optional[int] = None

    class Config:
        from_attributes = True

"""Fee category schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from hostel_fees.core.enums import FeeFrequency


class FeeCategoryCreate(BaseModel):
    hostel_id: int = Field(..., gt=0)
    fee_type: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    frequency: FeeFrequency


class FeeCategoryUpdate(BaseModel):
    fee_type: Optional[str] = Field(None, min_length=1, max_length=100)
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    frequency: Optional[FeeFrequency] = None
    is_active: Optional[bool] = None


class FeeCategoryResponse(BaseModel):
    fee_structure_id: int
    hostel_id: int
    hostel_name: Optional[str] = None
    fee_type: str
    amount: Decimal
    frequency: FeeFrequency
    is_active: bool
    created_at: datetime
    updated_at: datetime


class FeeCategoryDeleteResponse(BaseModel):
    fee_structure_id: int
    deactivated: bool
    message: str

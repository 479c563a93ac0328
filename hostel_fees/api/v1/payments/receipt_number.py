"""
Receipt number generation.
Format: <prefix>-<YYYYMMDD>-<12 uppercase hex chars from uuid4>, e.g. RCP-20260205-9F1C2B7A44E0.
Uniqueness is enforced by the unique index on student_fee_payments.receipt_number.
"""

import uuid
from datetime import date
from typing import Optional

from hostel_fees.core.config import settings


def generate_receipt_number(on: date, prefix: Optional[str] = None) -> str:
    prefix = (prefix or settings.receipt_prefix).strip().upper()
    return f"{prefix}-{on:%Y%m%d}-{uuid.uuid4().hex[:12].upper()}"

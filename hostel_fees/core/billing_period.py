"""Billing month helpers. Months are zero-padded "YYYY-MM" strings, so they sort lexicographically."""

import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple

from hostel_fees.core.config import settings
from hostel_fees.core.exceptions import ValidationError


MONTH_YEAR_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"
_MONTH_YEAR_RE = re.compile(MONTH_YEAR_PATTERN)


def parse_month_year(month_year: Optional[str]) -> Tuple[int, int]:
    """Return (year, month) or raise ValidationError."""
    if month_year is None or not str(month_year).strip():
        raise ValidationError.missing(["month_year"])
    value = str(month_year).strip()
    if not _MONTH_YEAR_RE.match(value):
        raise ValidationError(f"Invalid month_year '{value}'. Expected format YYYY-MM")
    year, month = value.split("-")
    return int(year), int(month)


def normalize_month_year(month_year: Optional[str]) -> str:
    year, month = parse_month_year(month_year)
    return f"{year:04d}-{month:02d}"


def current_month_year(today: Optional[date] = None) -> str:
    today = today or datetime.now(timezone.utc).date()
    return f"{today.year:04d}-{today.month:02d}"


def due_date_for_month(month_year: str) -> date:
    year, month = parse_month_year(month_year)
    return date(year, month, settings.dues_day_of_month)


def to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))

"""Dues schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field

from hostel_fees.core.billing_period import MONTH_YEAR_PATTERN
from hostel_fees.core.enums import GenerationOutcome


class GenerateDuesRequest(BaseModel):
    hostel_id: int = Field(..., gt=0)
    month_year: str = Field(..., pattern=MONTH_YEAR_PATTERN, description="YYYY-MM")


class GenerateDuesResponse(BaseModel):
    hostel_id: int
    month_year: str
    students_count: int = 0
    categories_count: int = 0
    new_dues_created: int = 0
    carried_forward_dues: int = 0
    total_dues_records: int = 0


class TriggerMonthlyDuesRequest(BaseModel):
    month_year: Optional[str] = Field(
        None,
        pattern=MONTH_YEAR_PATTERN,
        description="Defaults to the current month",
    )


class HostelGenerationResult(BaseModel):
    hostel_id: int
    hostel_name: str
    outcome: GenerationOutcome
    reason: Optional[str] = None
    summary: Optional[GenerateDuesResponse] = None


class TriggerMonthlyDuesResponse(BaseModel):
    month_year: str
    generated: int
    skipped: int
    failed: int
    results: List[HostelGenerationResult]

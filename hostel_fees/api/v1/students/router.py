"""Students dues router."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hostel_fees.auth.dependencies import get_current_user
from hostel_fees.auth.schemas import CurrentUser
from hostel_fees.core.exceptions import ServiceError
from hostel_fees.db.session import get_db

from .schemas import StudentDuesSummary
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.get(
    "/dues",
    response_model=List[StudentDuesSummary],
)
async def get_students_with_dues(
    hostel_id: Optional[int] = Query(None),
    month: Optional[str] = Query(None, description="YYYY-MM; defaults to the current month"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[StudentDuesSummary]:
    try:
        return await service.get_students_with_dues(
            db,
            current_user,
            hostel_id=hostel_id,
            month=month,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

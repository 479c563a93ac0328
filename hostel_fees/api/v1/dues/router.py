"""Dues router: monthly generation, batch trigger, per-student dues, available months."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from hostel_fees.auth.dependencies import get_current_user
from hostel_fees.auth.rbac import require_admin
from hostel_fees.auth.schemas import CurrentUser
from hostel_fees.core.exceptions import ServiceError
from hostel_fees.core.schemas import StudentDueItem
from hostel_fees.db.session import get_db

from .schemas import (
    GenerateDuesRequest,
    GenerateDuesResponse,
    TriggerMonthlyDuesRequest,
    TriggerMonthlyDuesResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/dues", tags=["dues"])


@router.post(
    "/generate",
    response_model=GenerateDuesResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_monthly_dues(
    payload: GenerateDuesRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> GenerateDuesResponse:
    try:
        return await service.generate_monthly_dues(
            db,
            payload.hostel_id,
            payload.month_year,
            scope=current_user,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/trigger-monthly",
    response_model=TriggerMonthlyDuesResponse,
)
async def trigger_monthly_dues(
    payload: Optional[TriggerMonthlyDuesRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> TriggerMonthlyDuesResponse:
    """Generate dues for every active hostel; the manual counterpart of the monthly cron."""
    month_year = payload.month_year if payload else None
    try:
        return await service.generate_dues_for_all_hostels(db, month_year, scope=current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/student/{student_id}",
    response_model=List[StudentDueItem],
)
async def get_student_dues(
    student_id: int,
    include_paid: bool = Query(False, description="Also return dues already cleared"),
    include_superseded: bool = Query(
        True,
        description="Set false to hide unpaid dues already re-billed by a later carried-forward due",
    ),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[StudentDueItem]:
    try:
        return await service.get_student_dues(
            db,
            current_user,
            student_id,
            include_paid=include_paid,
            include_superseded=include_superseded,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/months",
    response_model=List[str],
)
async def list_due_months(
    hostel_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[str]:
    try:
        return await service.list_due_months(db, current_user, hostel_id=hostel_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

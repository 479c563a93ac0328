"""Payments router: record payment, list, history, receipts, payment modes."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from hostel_fees.auth.dependencies import get_current_user
from hostel_fees.auth.schemas import CurrentUser
from hostel_fees.core.exceptions import ServiceError
from hostel_fees.db.session import get_db

from .schemas import (
    PaymentCreate,
    PaymentModeResponse,
    PaymentRecordedResponse,
    PaymentResponse,
    ReceiptResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.post(
    "",
    response_model=PaymentRecordedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> PaymentRecordedResponse:
    try:
        return await service.record_payment(db, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[PaymentResponse],
)
async def list_payments(
    hostel_id: Optional[int] = Query(None),
    student_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[PaymentResponse]:
    try:
        return await service.list_payments(
            db,
            current_user,
            hostel_id=hostel_id,
            student_id=student_id,
            start_date=start_date,
            end_date=end_date,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/modes",
    response_model=List[PaymentModeResponse],
)
async def list_payment_modes(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[PaymentModeResponse]:
    return await service.list_payment_modes(db)


@router.get(
    "/student/{student_id}",
    response_model=List[PaymentResponse],
)
async def get_student_payment_history(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[PaymentResponse]:
    try:
        return await service.get_student_payment_history(db, current_user, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/receipts/{payment_id}",
    response_model=ReceiptResponse,
)
async def get_receipt(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ReceiptResponse:
    try:
        return await service.get_receipt(db, current_user, payment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

"""Fee categories router."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from hostel_fees.auth.dependencies import get_current_user
from hostel_fees.auth.schemas import CurrentUser
from hostel_fees.core.exceptions import ServiceError
from hostel_fees.db.session import get_db

from .schemas import (
    FeeCategoryCreate,
    FeeCategoryDeleteResponse,
    FeeCategoryResponse,
    FeeCategoryUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/fee-categories", tags=["fee-categories"])


@router.post(
    "",
    response_model=FeeCategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_fee_category(
    payload: FeeCategoryCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeCategoryResponse:
    try:
        return await service.create_fee_category(db, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[FeeCategoryResponse],
)
async def list_fee_categories(
    hostel_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[FeeCategoryResponse]:
    try:
        return await service.list_fee_categories(db, current_user, hostel_id=hostel_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch(
    "/{fee_structure_id}",
    response_model=FeeCategoryResponse,
)
async def update_fee_category(
    fee_structure_id: int,
    payload: FeeCategoryUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeCategoryResponse:
    try:
        fc = await service.update_fee_category(db, current_user, fee_structure_id, payload)
        if not fc:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Fee category not found",
            )
        return fc
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{fee_structure_id}",
    response_model=FeeCategoryDeleteResponse,
)
async def delete_fee_category(
    fee_structure_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeCategoryDeleteResponse:
    try:
        result = await service.delete_fee_category(db, current_user, fee_structure_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not result:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Fee category not found",
        )
    return result

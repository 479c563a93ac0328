"""Fee category service layer."""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hostel_fees.auth.rbac import resolve_hostel
from hostel_fees.auth.schemas import CurrentUser
from hostel_fees.core.billing_period import to_decimal
from hostel_fees.core.exceptions import ConflictError, NotFoundError
from hostel_fees.core.models import FeeCategory, Hostel, StudentDue

from .schemas import (
    FeeCategoryCreate,
    FeeCategoryDeleteResponse,
    FeeCategoryResponse,
    FeeCategoryUpdate,
)


def _to_response(fc: FeeCategory, hostel_name: Optional[str] = None) -> FeeCategoryResponse:
    return FeeCategoryResponse(
        fee_structure_id=fc.fee_structure_id,
        hostel_id=fc.hostel_id,
        hostel_name=hostel_name,
        fee_type=fc.fee_type,
        amount=to_decimal(fc.amount),
        frequency=fc.frequency,
        is_active=fc.is_active,
        created_at=fc.created_at,
        updated_at=fc.updated_at,
    )


async def _ensure_unique_fee_type(
    db: AsyncSession,
    hostel_id: int,
    fee_type: str,
    exclude_id: Optional[int] = None,
) -> None:
    stmt = select(FeeCategory.fee_structure_id).where(
        FeeCategory.hostel_id == hostel_id,
        FeeCategory.fee_type == fee_type,
        FeeCategory.is_active.is_(True),
    )
    if exclude_id is not None:
        stmt = stmt.where(FeeCategory.fee_structure_id != exclude_id)
    if (await db.execute(stmt.limit(1))).first():
        raise ConflictError(f'Fee category "{fee_type}" already exists for this hostel')


async def _get_scoped(db: AsyncSession, scope: CurrentUser, fee_structure_id: int) -> Optional[FeeCategory]:
    hostel_id = resolve_hostel(scope, None)
    stmt = select(FeeCategory).where(FeeCategory.fee_structure_id == fee_structure_id)
    if hostel_id is not None:
        stmt = stmt.where(FeeCategory.hostel_id == hostel_id)
    return (await db.execute(stmt)).scalar_one_or_none()


async def list_fee_categories(
    db: AsyncSession,
    scope: CurrentUser,
    hostel_id: Optional[int] = None,
) -> List[FeeCategoryResponse]:
    hostel_id = resolve_hostel(scope, hostel_id)
    stmt = (
        select(FeeCategory, Hostel.hostel_name)
        .outerjoin(Hostel, FeeCategory.hostel_id == Hostel.hostel_id)
        .where(FeeCategory.is_active.is_(True))
    )
    if hostel_id is not None:
        stmt = stmt.where(FeeCategory.hostel_id == hostel_id)
    stmt = stmt.order_by(FeeCategory.hostel_id, FeeCategory.fee_type)
    result = await db.execute(stmt)
    return [_to_response(fc, hostel_name) for fc, hostel_name in result.all()]


async def create_fee_category(
    db: AsyncSession,
    scope: CurrentUser,
    payload: FeeCategoryCreate,
) -> FeeCategoryResponse:
    hostel_id = resolve_hostel(scope, payload.hostel_id)
    hostel = await db.get(Hostel, hostel_id)
    if not hostel:
        raise NotFoundError("Hostel not found")
    fee_type = payload.fee_type.strip()
    await _ensure_unique_fee_type(db, hostel_id, fee_type)
    try:
        fc = FeeCategory(
            hostel_id=hostel_id,
            fee_type=fee_type,
            amount=payload.amount,
            frequency=payload.frequency.value,
            is_active=True,
        )
        db.add(fc)
        await db.commit()
        await db.refresh(fc)
        return _to_response(fc, hostel.hostel_name)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Fee category could not be created")


async def update_fee_category(
    db: AsyncSession,
    scope: CurrentUser,
    fee_structure_id: int,
    payload: FeeCategoryUpdate,
) -> Optional[FeeCategoryResponse]:
    fc = await _get_scoped(db, scope, fee_structure_id)
    if not fc:
        return None
    if payload.fee_type is not None and payload.fee_type.strip() != fc.fee_type:
        await _ensure_unique_fee_type(db, fc.hostel_id, payload.fee_type.strip(), exclude_id=fc.fee_structure_id)
        fc.fee_type = payload.fee_type.strip()
    if payload.amount is not None:
        fc.amount = payload.amount
    if payload.frequency is not None:
        fc.frequency = payload.frequency.value
    if payload.is_active is not None:
        fc.is_active = payload.is_active
    try:
        await db.commit()
        await db.refresh(fc)
        return _to_response(fc)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Fee category update conflict")


async def delete_fee_category(
    db: AsyncSession,
    scope: CurrentUser,
    fee_structure_id: int,
) -> Optional[FeeCategoryDeleteResponse]:
    """Deactivate when dues reference the category, otherwise delete the row."""
    fc = await _get_scoped(db, scope, fee_structure_id)
    if not fc:
        return None
    in_use = (
        await db.execute(
            select(func.count(StudentDue.due_id)).where(StudentDue.fee_category_id == fee_structure_id)
        )
    ).scalar() or 0
    if in_use:
        fc.is_active = False
        await db.commit()
        return FeeCategoryDeleteResponse(
            fee_structure_id=fee_structure_id,
            deactivated=True,
            message="Fee category deactivated (linked to existing dues)",
        )
    await db.delete(fc)
    await db.commit()
    return FeeCategoryDeleteResponse(
        fee_structure_id=fee_structure_id,
        deactivated=False,
        message="Fee category deleted successfully",
    )

"""Payments service: record a payment and allocate it to unpaid dues oldest first; payment reads."""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hostel_fees.auth.rbac import resolve_hostel
from hostel_fees.auth.schemas import CurrentUser
from hostel_fees.core.billing_period import to_decimal
from hostel_fees.core.exceptions import NotFoundError, ValidationError
from hostel_fees.core.models import (
    Hostel,
    PaymentMode,
    Room,
    Student,
    StudentDue,
    StudentFeePayment,
)

from .receipt_number import generate_receipt_number
from .schemas import (
    PaymentCreate,
    PaymentModeResponse,
    PaymentRecordedResponse,
    PaymentResponse,
    ReceiptResponse,
)

logger = logging.getLogger(__name__)

RECEIPT_NUMBER_ATTEMPTS = 3


def allocate_to_dues(dues: List[StudentDue], amount: Decimal, paid_at: datetime) -> Tuple[Decimal, int]:
    """
    Apply amount to dues in the given order until it runs out.

    Mutates the dues in place and returns (remaining, dues_touched).
    """
    remaining = amount
    touched = 0
    for due in dues:
        if remaining <= 0:
            break
        balance = to_decimal(due.balance_amount)
        allocate = min(remaining, balance)
        due.paid_amount = to_decimal(due.paid_amount) + allocate
        due.balance_amount = max(Decimal("0"), balance - allocate)
        due.is_paid = due.balance_amount <= 0
        if due.is_paid:
            due.paid_date = paid_at
        remaining -= allocate
        touched += 1
    return remaining, touched


async def _insert_and_allocate(
    db: AsyncSession,
    payload: PaymentCreate,
    hostel_id: int,
    amount: Decimal,
    created_by: Optional[int],
) -> PaymentRecordedResponse:
    now = datetime.now(timezone.utc)
    payment_date = payload.payment_date or now.date()
    payment = StudentFeePayment(
        student_id=payload.student_id,
        hostel_id=hostel_id,
        amount_paid=amount,
        payment_date=payment_date,
        payment_mode_id=payload.payment_mode_id,
        transaction_reference=(payload.transaction_reference or "").strip() or None,
        receipt_number=generate_receipt_number(payment_date),
        remarks=(payload.remarks or "").strip() or None,
        created_by=created_by,
    )
    db.add(payment)
    await db.flush()

    # Lock the student's open dues until commit so concurrent payments cannot both spend the same balance
    dues = (
        await db.execute(
            select(StudentDue)
            .where(
                StudentDue.student_id == payload.student_id,
                StudentDue.hostel_id == hostel_id,
                StudentDue.is_paid.is_(False),
            )
            .order_by(StudentDue.due_date, StudentDue.due_id)
            .with_for_update()
        )
    ).scalars().all()
    remaining, touched = allocate_to_dues(dues, amount, now)
    await db.flush()

    return PaymentRecordedResponse(
        payment_id=payment.payment_id,
        receipt_number=payment.receipt_number,
        amount_paid=amount,
        allocated_amount=amount - remaining,
        unallocated_amount=remaining,
        dues_updated=touched,
    )


async def record_payment(
    db: AsyncSession,
    scope: CurrentUser,
    payload: PaymentCreate,
) -> PaymentRecordedResponse:
    """Insert the payment and spread it over the student's unpaid dues by due date, in one transaction."""
    missing = [
        name
        for name in ("student_id", "hostel_id", "amount_paid", "payment_mode_id")
        if not getattr(payload, name)
    ]
    if missing:
        raise ValidationError.missing(missing)
    amount = to_decimal(payload.amount_paid)
    if amount <= 0:
        raise ValidationError("amount_paid must be greater than zero")
    hostel_id = resolve_hostel(scope, payload.hostel_id)

    student = (
        await db.execute(
            select(Student.student_id).where(
                Student.student_id == payload.student_id,
                Student.hostel_id == hostel_id,
            )
        )
    ).scalar_one_or_none()
    if student is None:
        raise NotFoundError("Student not found")
    mode = await db.get(PaymentMode, payload.payment_mode_id)
    if not mode:
        raise ValidationError("Invalid payment mode")

    for attempt in range(RECEIPT_NUMBER_ATTEMPTS):
        try:
            result = await _insert_and_allocate(db, payload, hostel_id, amount, scope.user_id)
            await db.commit()
            break
        except IntegrityError:
            await db.rollback()
            if attempt == RECEIPT_NUMBER_ATTEMPTS - 1:
                logger.exception("Could not record payment for student %s", payload.student_id)
                raise
            logger.warning("Receipt number collision for student %s, retrying", payload.student_id)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Could not record payment for student %s", payload.student_id)
            raise

    logger.info(
        "Payment %s (%s) recorded for student %s: amount=%s allocated=%s unallocated=%s dues_updated=%s",
        result.payment_id,
        result.receipt_number,
        payload.student_id,
        result.amount_paid,
        result.allocated_amount,
        result.unallocated_amount,
        result.dues_updated,
    )
    return result


# --- Reads ---
def _payment_select():
    return (
        select(StudentFeePayment, Student, Hostel, PaymentMode.payment_mode_name, Room.room_number)
        .join(Student, StudentFeePayment.student_id == Student.student_id)
        .join(Hostel, StudentFeePayment.hostel_id == Hostel.hostel_id)
        .outerjoin(PaymentMode, StudentFeePayment.payment_mode_id == PaymentMode.payment_mode_id)
        .outerjoin(Room, Student.room_id == Room.room_id)
    )


def _to_response(payment: StudentFeePayment, student: Student, hostel: Hostel, mode_name: Optional[str]) -> PaymentResponse:
    return PaymentResponse(
        payment_id=payment.payment_id,
        student_id=payment.student_id,
        hostel_id=payment.hostel_id,
        student_name=student.full_name,
        phone=student.phone,
        hostel_name=hostel.hostel_name,
        amount_paid=to_decimal(payment.amount_paid),
        payment_date=payment.payment_date,
        payment_mode_id=payment.payment_mode_id,
        payment_mode=mode_name,
        transaction_reference=payment.transaction_reference,
        receipt_number=payment.receipt_number,
        remarks=payment.remarks,
        created_at=payment.created_at,
    )


async def list_payments(
    db: AsyncSession,
    scope: CurrentUser,
    hostel_id: Optional[int] = None,
    student_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[PaymentResponse]:
    hostel_id = resolve_hostel(scope, hostel_id)
    stmt = _payment_select()
    if hostel_id is not None:
        stmt = stmt.where(StudentFeePayment.hostel_id == hostel_id)
    if student_id is not None:
        stmt = stmt.where(StudentFeePayment.student_id == student_id)
    if start_date is not None:
        stmt = stmt.where(StudentFeePayment.payment_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(StudentFeePayment.payment_date <= end_date)
    stmt = stmt.order_by(StudentFeePayment.payment_date.desc(), StudentFeePayment.payment_id.desc())
    result = await db.execute(stmt)
    return [
        _to_response(payment, student, hostel, mode_name)
        for payment, student, hostel, mode_name, _ in result.all()
    ]


async def get_student_payment_history(
    db: AsyncSession,
    scope: CurrentUser,
    student_id: int,
) -> List[PaymentResponse]:
    hostel_id = resolve_hostel(scope, None)
    stmt = select(Student.student_id).where(Student.student_id == student_id)
    if hostel_id is not None:
        stmt = stmt.where(Student.hostel_id == hostel_id)
    if (await db.execute(stmt)).scalar_one_or_none() is None:
        raise NotFoundError("Student not found")
    return await list_payments(db, scope, hostel_id=hostel_id, student_id=student_id)


async def get_receipt(
    db: AsyncSession,
    scope: CurrentUser,
    payment_id: int,
) -> ReceiptResponse:
    hostel_id = resolve_hostel(scope, None)
    stmt = _payment_select().where(StudentFeePayment.payment_id == payment_id)
    if hostel_id is not None:
        stmt = stmt.where(StudentFeePayment.hostel_id == hostel_id)
    row = (await db.execute(stmt)).first()
    if row is None:
        raise NotFoundError("Payment not found")
    payment, student, hostel, mode_name, room_number = row
    base = _to_response(payment, student, hostel, mode_name)
    return ReceiptResponse(
        **base.model_dump(),
        first_name=student.first_name,
        last_name=student.last_name,
        email=student.email,
        address=hostel.address,
        city=hostel.city,
        hostel_contact=hostel.contact_number,
        room_number=room_number,
    )


async def list_payment_modes(db: AsyncSession) -> List[PaymentModeResponse]:
    result = await db.execute(
        select(PaymentMode).order_by(
            PaymentMode.order_index.asc().nullslast(),
            PaymentMode.payment_mode_name,
        )
    )
    return [PaymentModeResponse.model_validate(m) for m in result.scalars().all()]

"""Dues service: monthly generation with carry-forward, batch generation, per-student dues."""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import distinct, func, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hostel_fees.auth.rbac import resolve_hostel
from hostel_fees.auth.schemas import CurrentUser
from hostel_fees.core.billing_period import (
    current_month_year,
    due_date_for_month,
    normalize_month_year,
    to_decimal,
)
from hostel_fees.core.enums import (
    MONTHLY_RENT_FEE_TYPE,
    FeeFrequency,
    GenerationOutcome,
    StudentStatus,
)
from hostel_fees.core.exceptions import (
    ConfigurationError,
    DuplicateGenerationError,
    NotFoundError,
    ValidationError,
)
from hostel_fees.core.models import (
    DuesGenerationRun,
    FeeCategory,
    Hostel,
    Room,
    Student,
    StudentDue,
)
from hostel_fees.core.schemas import StudentDueItem

from .schemas import (
    GenerateDuesResponse,
    HostelGenerationResult,
    TriggerMonthlyDuesResponse,
)

logger = logging.getLogger(__name__)


def effective_monthly_rent():
    """Student's frozen rent, else the assigned room's rent per bed, else 0."""
    return func.coalesce(Student.monthly_rent, Room.rent_per_bed, 0)


def due_to_item(due: StudentDue, fee_type: Optional[str] = None) -> StudentDueItem:
    return StudentDueItem(
        due_id=due.due_id,
        student_id=due.student_id,
        hostel_id=due.hostel_id,
        fee_category_id=due.fee_category_id,
        fee_type=fee_type,
        due_month=due.due_month,
        due_amount=to_decimal(due.due_amount),
        paid_amount=to_decimal(due.paid_amount),
        balance_amount=to_decimal(due.balance_amount),
        due_date=due.due_date,
        is_paid=bool(due.is_paid),
        paid_date=due.paid_date,
        is_carried_forward=bool(due.is_carried_forward),
        carried_from_month=due.carried_from_month,
    )


def _new_due_row(
    student_id: int,
    hostel_id: int,
    fee_category_id: int,
    month_year: str,
    amount: Decimal,
    due_date,
    carried_from_month: Optional[str] = None,
) -> dict:
    return {
        "student_id": student_id,
        "hostel_id": hostel_id,
        "fee_category_id": fee_category_id,
        "due_month": month_year,
        "due_amount": amount,
        "paid_amount": Decimal("0"),
        "balance_amount": amount,
        "due_date": due_date,
        "is_paid": amount <= 0,
        "is_carried_forward": carried_from_month is not None,
        "carried_from_month": carried_from_month,
    }


# --- Generation ---
async def generate_monthly_dues(
    db: AsyncSession,
    hostel_id: Optional[int],
    month_year: Optional[str],
    scope: Optional[CurrentUser] = None,
) -> GenerateDuesResponse:
    """
    Create the month's dues for every active student with a room in the hostel.

    Unpaid dues from earlier months are re-billed at their current balance as
    carried-forward rows; the source rows are left as they are. Every row, plus
    the generation marker, is written in one transaction.
    """
    if not hostel_id:
        raise ValidationError.missing(["hostel_id"])
    month_year = normalize_month_year(month_year)
    if scope is not None:
        hostel_id = resolve_hostel(scope, hostel_id)

    hostel = await db.get(Hostel, hostel_id)
    if not hostel:
        raise NotFoundError("Hostel not found")

    existing = (
        await db.execute(
            select(StudentDue.due_id)
            .where(StudentDue.hostel_id == hostel_id, StudentDue.due_month == month_year)
            .limit(1)
        )
    ).first()
    if existing:
        raise DuplicateGenerationError(hostel_id, month_year)

    students = (
        await db.execute(
            select(Student.student_id, effective_monthly_rent().label("monthly_rent"))
            .outerjoin(Room, Student.room_id == Room.room_id)
            .where(
                Student.hostel_id == hostel_id,
                Student.status == StudentStatus.ACTIVE.value,
                Student.room_id.isnot(None),
            )
            .order_by(Student.student_id)
        )
    ).all()
    summary = GenerateDuesResponse(hostel_id=hostel_id, month_year=month_year)
    if not students:
        logger.info("No active students for hostel %s, month %s", hostel_id, month_year)
        return summary

    categories = (
        await db.execute(
            select(FeeCategory)
            .where(
                FeeCategory.hostel_id == hostel_id,
                FeeCategory.is_active.is_(True),
                FeeCategory.frequency == FeeFrequency.MONTHLY.value,
            )
            .order_by(FeeCategory.fee_structure_id)
        )
    ).scalars().all()
    if not categories:
        raise ConfigurationError("No monthly fee categories configured for this hostel")

    due_date = due_date_for_month(month_year)
    student_ids = [s.student_id for s in students]

    unpaid_prior = (
        await db.execute(
            select(StudentDue)
            .where(
                StudentDue.student_id.in_(student_ids),
                StudentDue.hostel_id == hostel_id,
                StudentDue.is_paid.is_(False),
                StudentDue.due_month < month_year,
            )
            .order_by(StudentDue.student_id, StudentDue.due_date, StudentDue.due_id)
        )
    ).scalars().all()
    unpaid_by_student: Dict[int, List[StudentDue]] = defaultdict(list)
    for due in unpaid_prior:
        unpaid_by_student[due.student_id].append(due)

    rows: List[dict] = []
    for student_id, monthly_rent in students:
        for old_due in unpaid_by_student.get(student_id, []):
            rows.append(
                _new_due_row(
                    student_id,
                    hostel_id,
                    old_due.fee_category_id,
                    month_year,
                    to_decimal(old_due.balance_amount),
                    due_date,
                    carried_from_month=old_due.due_month,
                )
            )
            summary.carried_forward_dues += 1

        for category in categories:
            if category.fee_type == MONTHLY_RENT_FEE_TYPE:
                amount = to_decimal(monthly_rent)
            else:
                amount = to_decimal(category.amount)
            rows.append(
                _new_due_row(
                    student_id,
                    hostel_id,
                    category.fee_structure_id,
                    month_year,
                    amount,
                    due_date,
                )
            )
            summary.new_dues_created += 1

    summary.students_count = len(students)
    summary.categories_count = len(categories)
    summary.total_dues_records = len(rows)

    try:
        # Marker first: a concurrent run for the same month fails here, before any due is written
        db.add(
            DuesGenerationRun(
                hostel_id=hostel_id,
                due_month=month_year,
                students_count=summary.students_count,
                total_dues_records=summary.total_dues_records,
                created_by=scope.user_id if scope is not None else None,
            )
        )
        await db.flush()
        await db.execute(insert(StudentDue), rows)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateGenerationError(hostel_id, month_year)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Dues generation failed for hostel %s, month %s", hostel_id, month_year)
        raise

    logger.info(
        "Dues generated for hostel %s, month %s: students=%s categories=%s new=%s carried_forward=%s total=%s",
        hostel_id,
        month_year,
        summary.students_count,
        summary.categories_count,
        summary.new_dues_created,
        summary.carried_forward_dues,
        summary.total_dues_records,
    )
    return summary


async def generate_dues_for_all_hostels(
    db: AsyncSession,
    month_year: Optional[str] = None,
    scope: Optional[CurrentUser] = None,
) -> TriggerMonthlyDuesResponse:
    """Run generation for every active hostel. One hostel failing does not stop the rest."""
    month_year = normalize_month_year(month_year) if month_year else current_month_year()
    hostels = (
        await db.execute(
            select(Hostel.hostel_id, Hostel.hostel_name)
            .where(Hostel.is_active.is_(True))
            .order_by(Hostel.hostel_id)
        )
    ).all()
    logger.info("Monthly dues generation for %s over %s active hostel(s)", month_year, len(hostels))

    results: List[HostelGenerationResult] = []
    for hostel_id, hostel_name in hostels:
        result = HostelGenerationResult(
            hostel_id=hostel_id,
            hostel_name=hostel_name,
            outcome=GenerationOutcome.GENERATED,
        )
        try:
            summary = await generate_monthly_dues(db, hostel_id, month_year, scope=scope)
            result.summary = summary
            if summary.students_count == 0:
                result.outcome = GenerationOutcome.SKIPPED
                result.reason = "no_students"
        except DuplicateGenerationError:
            result.outcome = GenerationOutcome.SKIPPED
            result.reason = "already_exists"
        except ConfigurationError:
            result.outcome = GenerationOutcome.SKIPPED
            result.reason = "no_categories"
        except SQLAlchemyError as e:
            await db.rollback()
            result.outcome = GenerationOutcome.FAILED
            result.reason = str(e)
        if result.outcome != GenerationOutcome.GENERATED:
            logger.warning(
                "Hostel %s %s for %s: %s", hostel_id, result.outcome.value, month_year, result.reason
            )
        results.append(result)

    response = TriggerMonthlyDuesResponse(
        month_year=month_year,
        generated=sum(1 for r in results if r.outcome == GenerationOutcome.GENERATED),
        skipped=sum(1 for r in results if r.outcome == GenerationOutcome.SKIPPED),
        failed=sum(1 for r in results if r.outcome == GenerationOutcome.FAILED),
        results=results,
    )
    logger.info(
        "Monthly dues generation for %s done: generated=%s skipped=%s failed=%s",
        month_year,
        response.generated,
        response.skipped,
        response.failed,
    )
    return response


# --- Read side ---
def _superseded_ids(dues: List[StudentDue]) -> set:
    """Unpaid dues whose balance was re-billed by a later carried-forward row."""
    carried_keys = {
        (d.fee_category_id, d.carried_from_month)
        for d in dues
        if d.is_carried_forward and d.carried_from_month
    }
    return {
        d.due_id
        for d in dues
        if not d.is_paid and (d.fee_category_id, d.due_month) in carried_keys
    }


async def get_student_dues(
    db: AsyncSession,
    scope: CurrentUser,
    student_id: int,
    include_paid: bool = False,
    include_superseded: bool = True,
) -> List[StudentDueItem]:
    hostel_id = resolve_hostel(scope, None)
    stmt = select(Student).where(Student.student_id == student_id)
    if hostel_id is not None:
        stmt = stmt.where(Student.hostel_id == hostel_id)
    student = (await db.execute(stmt)).scalar_one_or_none()
    if not student:
        raise NotFoundError("Student not found")

    result = await db.execute(
        select(StudentDue, FeeCategory.fee_type)
        .outerjoin(FeeCategory, StudentDue.fee_category_id == FeeCategory.fee_structure_id)
        .where(StudentDue.student_id == student_id)
        .order_by(StudentDue.due_date, StudentDue.due_id)
    )
    rows = result.all()
    hidden = set() if include_superseded else _superseded_ids([due for due, _ in rows])
    return [
        due_to_item(due, fee_type)
        for due, fee_type in rows
        if (include_paid or not due.is_paid) and due.due_id not in hidden
    ]


async def list_due_months(
    db: AsyncSession,
    scope: CurrentUser,
    hostel_id: Optional[int] = None,
) -> List[str]:
    hostel_id = resolve_hostel(scope, hostel_id)
    stmt = select(distinct(StudentDue.due_month))
    if hostel_id is not None:
        stmt = stmt.where(StudentDue.hostel_id == hostel_id)
    stmt = stmt.order_by(StudentDue.due_month.desc())
    result = await db.execute(stmt)
    return [m for m in result.scalars().all()]

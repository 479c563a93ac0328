"""Students-with-dues query: read-only monthly aggregation over dues rows."""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hostel_fees.api.v1.dues.service import due_to_item, effective_monthly_rent
from hostel_fees.auth.rbac import resolve_hostel
from hostel_fees.auth.schemas import CurrentUser
from hostel_fees.core.billing_period import current_month_year, normalize_month_year, to_decimal
from hostel_fees.core.enums import DuesPaymentStatus, StudentStatus
from hostel_fees.core.models import FeeCategory, Hostel, Room, Student, StudentDue
from hostel_fees.core.schemas import StudentDueItem

from .schemas import StudentDuesSummary


def derive_payment_status(
    dues: List[StudentDueItem],
    monthly_rent: Decimal,
) -> Tuple[DuesPaymentStatus, Decimal, Decimal]:
    """
    Return (status, total_dues, total_paid) for one student's dues in a month.

    With no dues rows yet, a student with rent is Pending for the projected rent.
    """
    if not dues:
        if monthly_rent > 0:
            return DuesPaymentStatus.PENDING, monthly_rent, Decimal("0")
        return DuesPaymentStatus.NO_DUES, Decimal("0"), Decimal("0")
    total_dues = sum((d.balance_amount for d in dues if not d.is_paid), Decimal("0"))
    total_paid = sum((d.paid_amount for d in dues), Decimal("0"))
    if total_dues > 0:
        return DuesPaymentStatus.PENDING, total_dues, total_paid
    return DuesPaymentStatus.PAID, total_dues, total_paid


async def get_students_with_dues(
    db: AsyncSession,
    scope: CurrentUser,
    hostel_id: Optional[int] = None,
    month: Optional[str] = None,
) -> List[StudentDuesSummary]:
    hostel_id = resolve_hostel(scope, hostel_id)
    month = normalize_month_year(month) if month else current_month_year()

    stmt = (
        select(
            Student,
            Hostel.hostel_name,
            Room.room_number,
            Room.floor_number,
            effective_monthly_rent().label("monthly_rent"),
        )
        .join(Hostel, Student.hostel_id == Hostel.hostel_id)
        .outerjoin(Room, Student.room_id == Room.room_id)
        .where(Student.status == StudentStatus.ACTIVE.value)
    )
    if hostel_id is not None:
        stmt = stmt.where(Student.hostel_id == hostel_id)
    stmt = stmt.order_by(Student.first_name, Student.last_name, Student.student_id)
    students = (await db.execute(stmt)).all()
    if not students:
        return []

    student_ids = [row[0].student_id for row in students]
    due_rows = (
        await db.execute(
            select(StudentDue, FeeCategory.fee_type)
            .outerjoin(FeeCategory, StudentDue.fee_category_id == FeeCategory.fee_structure_id)
            .where(
                StudentDue.student_id.in_(student_ids),
                StudentDue.due_month == month,
            )
            .order_by(StudentDue.due_date, StudentDue.due_id)
        )
    ).all()
    dues_by_student: Dict[int, List[StudentDueItem]] = defaultdict(list)
    for due, fee_type in due_rows:
        dues_by_student[due.student_id].append(due_to_item(due, fee_type))

    out = []
    for student, hostel_name, room_number, floor_number, monthly_rent in students:
        dues = dues_by_student.get(student.student_id, [])
        rent = to_decimal(monthly_rent)
        payment_status, total_dues, total_paid = derive_payment_status(dues, rent)
        unpaid = [d for d in dues if not d.is_paid]
        paid = [d for d in dues if d.is_paid]
        out.append(
            StudentDuesSummary(
                student_id=student.student_id,
                first_name=student.first_name,
                last_name=student.last_name,
                student_name=student.full_name,
                phone=student.phone,
                email=student.email,
                admission_date=student.admission_date,
                due_day=student.due_day,
                hostel_id=student.hostel_id,
                hostel_name=hostel_name,
                room_id=student.room_id,
                room_number=room_number,
                floor_number=floor_number,
                monthly_rent=rent,
                month=month,
                total_dues=total_dues,
                total_paid=total_paid,
                unpaid_count=len(unpaid),
                paid_count=len(paid),
                payment_status=payment_status,
                unpaid_dues=unpaid,
                paid_dues=paid,
            )
        )
    return out

"""Student due: one charge line per student, fee category and month."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    text,
)
from sqlalchemy.orm import relationship

from hostel_fees.db.session import Base


class StudentDue(Base):
    """
    Created only by dues generation, updated only by payment allocation, never deleted.
    paid_amount + balance_amount == due_amount and is_paid == (balance_amount <= 0) at rest.
    """

    __tablename__ = "student_dues"
    __table_args__ = (
        CheckConstraint("paid_amount >= 0", name="chk_student_due_paid_non_negative"),
        CheckConstraint("balance_amount >= 0", name="chk_student_due_balance_non_negative"),
        # One fresh charge per (student, category, month); carried-forward rows are exempt
        Index(
            "uq_student_due_fresh_charge",
            "student_id",
            "fee_category_id",
            "due_month",
            unique=True,
            postgresql_where=text("NOT is_carried_forward"),
            sqlite_where=text("is_carried_forward = 0"),
        ),
        Index("ix_student_dues_hostel_month", "hostel_id", "due_month"),
        Index("ix_student_dues_student_unpaid", "student_id", "is_paid"),
    )

    due_id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False)
    hostel_id = Column(Integer, ForeignKey("hostel_master.hostel_id", ondelete="CASCADE"), nullable=False)
    fee_category_id = Column(
        Integer,
        ForeignKey("fee_structure.fee_structure_id", ondelete="RESTRICT"),
        nullable=False,
    )
    due_month = Column(String(7), nullable=False)  # YYYY-MM
    due_amount = Column(Numeric(10, 2), nullable=False)
    paid_amount = Column(Numeric(10, 2), nullable=False, default=0)
    balance_amount = Column(Numeric(10, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)
    paid_date = Column(DateTime(timezone=True), nullable=True)
    is_carried_forward = Column(Boolean, nullable=False, default=False)
    carried_from_month = Column(String(7), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student")
    fee_category = relationship("FeeCategory")

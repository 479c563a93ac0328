"""Student fee payment: immutable record of money received."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from hostel_fees.db.session import Base


class StudentFeePayment(Base):
    """One row per payment. Allocation against dues is applied at write time and not stored."""

    __tablename__ = "student_fee_payments"

    payment_id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False, index=True)
    hostel_id = Column(Integer, ForeignKey("hostel_master.hostel_id", ondelete="CASCADE"), nullable=False, index=True)
    amount_paid = Column(Numeric(10, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    payment_mode_id = Column(
        Integer,
        ForeignKey("payment_modes.payment_mode_id", ondelete="RESTRICT"),
        nullable=False,
    )
    transaction_reference = Column(String(100), nullable=True)
    receipt_number = Column(String(50), nullable=False, unique=True)
    remarks = Column(Text, nullable=True)
    # Caller identity from the access token; users live outside this service
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student")
    payment_mode = relationship("PaymentMode")

"""Hostel resident. Owned by student management; read-only for the fees workflow."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from hostel_fees.core.enums import StudentStatus
from hostel_fees.db.session import Base


class Student(Base):
    __tablename__ = "students"
    __table_args__ = (
        CheckConstraint("due_day IS NULL OR (due_day BETWEEN 1 AND 31)", name="chk_student_due_day"),
    )

    student_id = Column(Integer, primary_key=True, autoincrement=True)
    hostel_id = Column(Integer, ForeignKey("hostel_master.hostel_id", ondelete="CASCADE"), nullable=False, index=True)
    # Null while the student has no bed; such students get no dues
    room_id = Column(Integer, ForeignKey("rooms.room_id", ondelete="SET NULL"), nullable=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=StudentStatus.ACTIVE.value)  # Active, Inactive
    admission_date = Column(Date, nullable=True)
    # Rent of the assigned room, frozen when the bed was allocated
    monthly_rent = Column(Numeric(10, 2), nullable=True)
    due_day = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    hostel = relationship("Hostel")
    room = relationship("Room")

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

"""Marker row written in the same transaction as a hostel's monthly dues."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from hostel_fees.db.session import Base


class DuesGenerationRun(Base):
    """The unique (hostel_id, due_month) key makes a second concurrent generation fail on insert."""

    __tablename__ = "dues_generation_runs"
    __table_args__ = (
        UniqueConstraint("hostel_id", "due_month", name="uq_dues_generation_hostel_month"),
    )

    run_id = Column(Integer, primary_key=True, autoincrement=True)
    hostel_id = Column(Integer, ForeignKey("hostel_master.hostel_id", ondelete="CASCADE"), nullable=False)
    due_month = Column(String(7), nullable=False)
    students_count = Column(Integer, nullable=False, default=0)
    total_dues_records = Column(Integer, nullable=False, default=0)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

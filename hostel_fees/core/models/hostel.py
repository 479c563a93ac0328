"""Hostel master: the unit every fee, due and payment is scoped to."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from hostel_fees.db.session import Base


class Hostel(Base):
    __tablename__ = "hostel_master"

    hostel_id = Column(Integer, primary_key=True, autoincrement=True)
    hostel_name = Column(String(255), nullable=False)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    contact_number = Column(String(20), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

"""Room within a hostel. rent_per_bed is the default monthly rent for its occupants."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from hostel_fees.db.session import Base


class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (
        UniqueConstraint("hostel_id", "room_number", name="uq_room_hostel_number"),
    )

    room_id = Column(Integer, primary_key=True, autoincrement=True)
    hostel_id = Column(Integer, ForeignKey("hostel_master.hostel_id", ondelete="CASCADE"), nullable=False, index=True)
    room_number = Column(String(20), nullable=False)
    floor_number = Column(Integer, nullable=True)
    rent_per_bed = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    hostel = relationship("Hostel")

"""Fee category (fee_structure): named charge per hostel, e.g. Monthly Rent, Electricity."""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from hostel_fees.core.enums import FeeFrequency
from hostel_fees.db.session import Base


class FeeCategory(Base):
    """Only active Monthly categories take part in dues generation. Soft delete via is_active."""

    __tablename__ = "fee_structure"
    __table_args__ = (
        CheckConstraint(
            "frequency IN ('Monthly','Quarterly','Half-Yearly','Yearly','One-Time')",
            name="chk_fee_structure_frequency",
        ),
    )

    fee_structure_id = Column(Integer, primary_key=True, autoincrement=True)
    hostel_id = Column(Integer, ForeignKey("hostel_master.hostel_id", ondelete="CASCADE"), nullable=False, index=True)
    fee_type = Column(String(100), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    frequency = Column(String(20), nullable=False, default=FeeFrequency.MONTHLY.value)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    hostel = relationship("Hostel")

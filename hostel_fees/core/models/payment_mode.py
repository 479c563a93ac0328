"""Payment mode master (Cash, UPI, Card, ...)."""

from sqlalchemy import Column, Integer, String

from hostel_fees.db.session import Base


class PaymentMode(Base):
    __tablename__ = "payment_modes"

    payment_mode_id = Column(Integer, primary_key=True, autoincrement=True)
    payment_mode_name = Column(String(50), nullable=False, unique=True)
    order_index = Column(Integer, nullable=True)

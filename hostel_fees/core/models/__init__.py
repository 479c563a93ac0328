from hostel_fees.core.models.hostel import Hostel
from hostel_fees.core.models.room import Room
from hostel_fees.core.models.student import Student
from hostel_fees.core.models.fee_category import FeeCategory
from hostel_fees.core.models.payment_mode import PaymentMode
from hostel_fees.core.models.student_due import StudentDue
from hostel_fees.core.models.student_fee_payment import StudentFeePayment
from hostel_fees.core.models.dues_generation_run import DuesGenerationRun

__all__ = [
    "Hostel",
    "Room",
    "Student",
    "FeeCategory",
    "PaymentMode",
    "StudentDue",
    "StudentFeePayment",
    "DuesGenerationRun",
]

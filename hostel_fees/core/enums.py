from enum import Enum, IntEnum


class Role(IntEnum):
    ADMIN = 1
    OWNER = 2


class StudentStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class FeeFrequency(str, Enum):
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    HALF_YEARLY = "Half-Yearly"
    YEARLY = "Yearly"
    ONE_TIME = "One-Time"


class DuesPaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    NO_DUES = "No Dues"


class GenerationOutcome(str, Enum):
    GENERATED = "generated"
    SKIPPED = "skipped"
    FAILED = "failed"


# Fee category whose amount comes from the student's room rent, not fee_structure.amount
MONTHLY_RENT_FEE_TYPE = "Monthly Rent"

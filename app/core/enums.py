from enum import Enum


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"


class EnrollmentStatus(str, Enum):
    PENDING = "PENDING"
    ENROLLED = "ENROLLED"
    TRANSFERRED = "TRANSFERRED"
    DROPPED = "DROPPED"


class FeeCategory(str, Enum):
    TUITION = "TUITION"
    BOOKS = "BOOKS"
    UNIFORM = "UNIFORM"
    LABORATORY = "LABORATORY"
    LIBRARY = "LIBRARY"
    ID_CARD = "ID_CARD"
    EXAM = "EXAM"
    REGISTRATION = "REGISTRATION"
    MISC = "MISC"


class OptionalFeeCategory(str, Enum):
    ID_CARD = "ID_CARD"
    UNIFORM = "UNIFORM"
    BOOKS = "BOOKS"
    MISCELLANEOUS = "MISCELLANEOUS"
    GRADUATION = "GRADUATION"
    CERTIFICATION = "CERTIFICATION"
    OTHER = "OTHER"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CHECK = "CHECK"
    BANK_TRANSFER = "BANK_TRANSFER"
    ONLINE = "ONLINE"
    GCASH = "GCASH"
    PAYMAYA = "PAYMAYA"


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERPAID = "OVERPAID"


class AdjustmentType(str, Enum):
    DISCOUNT = "DISCOUNT"
    ADDITIONAL = "ADDITIONAL"


class NotificationType(str, Enum):
    ENROLLMENT = "ENROLLMENT"
    SYSTEM = "SYSTEM"
    ALERT = "ALERT"


class RecycleEntityType(str, Enum):
    STUDENT = "student"
    SECTION = "section"
    ACADEMIC_YEAR = "academicYear"
    FEE_TEMPLATE = "feeTemplate"
    CUSTOM_REMARK = "customRemark"


class YearAction(str, Enum):
    END = "end"
    ACTIVATE = "activate"

from app.core.models.academic_year import AcademicYear
from app.core.models.section_model import Section
from app.core.models.student import Student
from app.core.models.enrollment import Enrollment
from app.core.models.fee_template import FeeBreakdown, FeeTemplate
from app.core.models.optional_fee import OptionalFee, OptionalFeeVariation, StudentOptionalFee
from app.core.models.payment import Payment, PaymentLineItem, Refund
from app.core.models.payment_adjustment import PaymentAdjustment
from app.core.models.student_fee_status import StudentFeeStatus
from app.core.models.notification import Notification
from app.core.models.recycle_bin import RecycleBin
from app.core.models.custom_remark import CustomRemark

__all__ = [
    "AcademicYear",
    "Section",
    "Student",
    "Enrollment",
    "FeeTemplate",
    "FeeBreakdown",
    "OptionalFee",
    "OptionalFeeVariation",
    "StudentOptionalFee",
    "Payment",
    "PaymentLineItem",
    "Refund",
    "PaymentAdjustment",
    "StudentFeeStatus",
    "Notification",
    "RecycleBin",
    "CustomRemark",
]

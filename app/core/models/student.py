import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, String, Text, Uuid

from app.db.session import Base


class Student(Base):
    """
    Learner record shared across academic years. Per-year placement lives in Enrollment;
    grade_level, section_id and enrollment_status here mirror the latest enrollment.
    """

    __tablename__ = "students"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # Learner Reference Number (DepEd, 12 digits); optional for kinder entrants
    lrn = Column(String(20), nullable=True, unique=True)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False)
    full_name = Column(String(320), nullable=False, index=True)
    gender = Column(String(10), nullable=False)
    contact_number = Column(String(20), nullable=False)
    date_of_birth = Column(Date, nullable=False)

    house_number = Column(String(50), nullable=True)
    street = Column(String(255), nullable=True)
    subdivision = Column(String(255), nullable=True)
    barangay = Column(String(255), nullable=True)
    city = Column(String(255), nullable=True)
    province = Column(String(255), nullable=True)
    zip_code = Column(String(10), nullable=True)

    parent_guardian = Column(String(255), nullable=False)
    father_name = Column(String(255), nullable=True)
    father_occupation = Column(String(255), nullable=True)
    mother_name = Column(String(255), nullable=True)
    mother_occupation = Column(String(255), nullable=True)
    guardian_relationship = Column(String(100), nullable=True)
    emergency_contact_name = Column(String(255), nullable=True)
    emergency_contact_number = Column(String(20), nullable=True)

    grade_level = Column(String(30), nullable=False)
    section_id = Column(Uuid, ForeignKey("sections.id", ondelete="SET NULL"), nullable=True)
    enrollment_status = Column(String(20), nullable=False, default="PENDING")
    is_transferee = Column(Boolean, nullable=False, default=False)
    previous_school = Column(String(255), nullable=True)
    # "custom text|Label A,Label B", see app.api.v1.students.remarks
    remarks = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

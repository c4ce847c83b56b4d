"""Admin notification inbox, plus the enrollment notifications raised by the student workflow."""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import NotificationType
from app.core.exceptions import ServiceError
from app.core.models import Notification

from .schemas import NotificationCreate, NotificationResponse

logger = logging.getLogger(__name__)


def _to_response(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        admin_id=n.admin_id,
        type=n.type,
        title=n.title,
        message=n.message,
        is_read=n.is_read,
        student_id=n.student_id,
        enrollment_id=n.enrollment_id,
        created_at=n.created_at,
    )


async def list_notifications(
    db: AsyncSession,
    admin_id: UUID,
    type_filter: Optional[NotificationType] = None,
    read: Optional[bool] = None,
) -> List[NotificationResponse]:
    stmt = select(Notification).where(Notification.admin_id == admin_id)
    if type_filter is not None:
        stmt = stmt.where(Notification.type == type_filter.value)
    if read is not None:
        stmt = stmt.where(Notification.is_read.is_(read))
    stmt = stmt.order_by(Notification.created_at.desc())
    result = await db.execute(stmt)
    return [_to_response(n) for n in result.scalars().all()]


async def create_notification(
    db: AsyncSession,
    admin_id: UUID,
    payload: NotificationCreate,
) -> NotificationResponse:
    n = Notification(
        admin_id=admin_id,
        type=payload.type.value,
        title=payload.title.strip(),
        message=payload.message.strip(),
        student_id=payload.student_id,
        enrollment_id=payload.enrollment_id,
        is_read=False,
    )
    db.add(n)
    await db.commit()
    return _to_response(n)


async def _get_own(db: AsyncSession, admin_id: UUID, notification_id: UUID) -> Notification:
    n = await db.get(Notification, notification_id)
    if not n or n.admin_id != admin_id:
        raise ServiceError("Notification not found", status.HTTP_404_NOT_FOUND)
    return n


async def set_read(
    db: AsyncSession,
    admin_id: UUID,
    notification_id: UUID,
    is_read: bool,
) -> NotificationResponse:
    n = await _get_own(db, admin_id, notification_id)
    n.is_read = is_read
    await db.commit()
    return _to_response(n)


async def delete_notification(db: AsyncSession, admin_id: UUID, notification_id: UUID) -> None:
    n = await _get_own(db, admin_id, notification_id)
    await db.delete(n)
    await db.commit()


async def mark_all_read(
    db: AsyncSession,
    admin_id: UUID,
    type_filter: Optional[NotificationType] = None,
) -> int:
    stmt = update(Notification).where(Notification.admin_id == admin_id, Notification.is_read.is_(False))
    if type_filter is not None:
        stmt = stmt.where(Notification.type == type_filter.value)
    result = await db.execute(stmt.values(is_read=True))
    await db.commit()
    return result.rowcount or 0


# --- Enrollment workflow hooks ---
async def notify_pending_enrollment(
    db: AsyncSession,
    admin_id: UUID,
    student_id: UUID,
    enrollment_id: Optional[UUID],
    full_name: str,
    grade_level: str,
    is_reenrollment: bool,
) -> None:
    """
    Raise an ENROLLMENT notification for a student awaiting approval. Runs after the
    enrollment is committed; a failure here is logged and never undoes the enrollment.
    """
    title = "Re-enrollment Pending" if is_reenrollment else "New Pending Enrollment"
    verb = "re-enrolled" if is_reenrollment else "enrolled"
    try:
        db.add(
            Notification(
                admin_id=admin_id,
                type=NotificationType.ENROLLMENT.value,
                title=title,
                message=f"{full_name} has been {verb} in {grade_level} and is awaiting approval.",
                student_id=student_id,
                enrollment_id=enrollment_id,
                is_read=False,
            )
        )
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Failed to create enrollment notification for student %s", student_id)


async def clear_enrollment_notifications(db: AsyncSession, student_id: UUID) -> None:
    """Staged: the student is approved, pending-enrollment notices are obsolete."""
    await db.execute(
        delete(Notification).where(
            Notification.student_id == student_id,
            Notification.type == NotificationType.ENROLLMENT.value,
        )
    )


async def mark_enrollment_dropped(db: AsyncSession, student_id: UUID, full_name: str) -> None:
    """Staged: rewrite the student's enrollment notifications in place."""
    await db.execute(
        update(Notification)
        .where(
            Notification.student_id == student_id,
            Notification.type == NotificationType.ENROLLMENT.value,
        )
        .values(
            title="Enrollment Dropped",
            message=f"{full_name}'s enrollment has been dropped.",
        )
    )

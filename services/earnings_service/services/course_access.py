"""Course ownership: access checks, grants and progress tracking.

Owning a course means a ``course_purchases`` row exists for (user, course).
Every grant path (reconciliation, order approval, unlock, admin grant) goes
through ``grant_course_access`` so they all meet the same unique constraint.
"""

import uuid
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.errors import ConflictError, NotFoundError
from libs.common.logging import get_logger
from libs.db.session import insert_and_catch_conflict
from services.earnings_service.models import (
    ChapterProgress,
    Course,
    CourseOrder,
    CoursePurchase,
    LessonProgress,
    OrderStatus,
    Profile,
)
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

SYSTEM_ACTOR = "system"


async def has_access(db: AsyncSession, user_id: str, course_id: uuid.UUID) -> bool:
    is_admin = await db.scalar(select(Profile.is_admin).where(Profile.id == user_id))
    if is_admin:
        return True
    purchase_id = await db.scalar(
        select(CoursePurchase.id).where(
            CoursePurchase.user_id == user_id,
            CoursePurchase.course_id == course_id,
        )
    )
    return purchase_id is not None


async def grant_course_access(
    db: AsyncSession,
    *,
    user_id: str,
    course_id: uuid.UUID,
    amount_paid_units: int = 0,
    transaction_ref: Optional[str] = None,
) -> bool:
    """Insert the purchase row. Commits.

    Returns True if access was granted now, False if the user already owned
    the course. Raises NotFoundError for an unknown course.
    """
    exists = await db.scalar(select(Course.id).where(Course.id == course_id))
    if exists is None:
        raise NotFoundError("Course not found")

    granted = await insert_and_catch_conflict(
        db,
        CoursePurchase(
            user_id=user_id,
            course_id=course_id,
            amount_paid_units=amount_paid_units,
            transaction_ref=transaction_ref,
        ),
    )
    if granted:
        logger.info(
            "Granted course %s to %s",
            course_id,
            user_id,
            extra={"extra_fields": {"transaction_ref": transaction_ref}},
        )
    return granted


async def approve_pending_orders(
    db: AsyncSession,
    *,
    user_id: str,
    course_id: uuid.UUID,
    approved_by: str = SYSTEM_ACTOR,
) -> int:
    """Mark the user's pending orders for the course approved (no commit)."""
    result = await db.execute(
        update(CourseOrder)
        .where(
            CourseOrder.user_id == user_id,
            CourseOrder.course_id == course_id,
            CourseOrder.status == OrderStatus.PENDING,
        )
        .values(
            status=OrderStatus.APPROVED,
            approved_at=utc_now(),
            approved_by=approved_by,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


# ---------------------------------------------------------------------------
# Progress (last write wins)
# ---------------------------------------------------------------------------


async def record_lesson_progress(
    db: AsyncSession,
    *,
    user_id: str,
    lesson_id: uuid.UUID,
    completed: bool,
    watched_seconds: int,
) -> None:
    values = {
        "completed": completed,
        "watched_seconds": watched_seconds,
        "updated_at": utc_now(),
    }
    stmt = (
        update(LessonProgress)
        .where(LessonProgress.user_id == user_id, LessonProgress.lesson_id == lesson_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if (await db.execute(stmt)).rowcount:
        await db.commit()
        return

    inserted = await insert_and_catch_conflict(
        db, LessonProgress(user_id=user_id, lesson_id=lesson_id, **values)
    )
    if not inserted:
        # Lost an insert race; the row exists now.
        await db.execute(stmt)
        await db.commit()


async def record_chapter_progress(
    db: AsyncSession,
    *,
    user_id: str,
    course_id: uuid.UUID,
    chapter_id: uuid.UUID,
    completed: bool = False,
) -> ChapterProgress:
    """Store the last viewed chapter, optionally marking it completed."""
    for _ in range(2):
        progress = await db.scalar(
            select(ChapterProgress)
            .where(
                ChapterProgress.user_id == user_id,
                ChapterProgress.course_id == course_id,
            )
            .execution_options(populate_existing=True)
        )
        if progress is not None:
            progress.last_chapter_id = chapter_id
            if completed and str(chapter_id) not in progress.completed_chapters:
                progress.completed_chapters = [
                    *progress.completed_chapters,
                    str(chapter_id),
                ]
            progress.updated_at = utc_now()
            await db.commit()
            return progress

        progress = ChapterProgress(
            user_id=user_id,
            course_id=course_id,
            last_chapter_id=chapter_id,
            completed_chapters=[str(chapter_id)] if completed else [],
        )
        if await insert_and_catch_conflict(db, progress):
            return progress
    raise ConflictError("Progress changed concurrently, please retry")

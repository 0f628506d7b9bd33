"""Unit tests for course ownership and learner progress."""

import uuid

import pytest
from libs.common.errors import NotFoundError
from services.earnings_service.models import (
    ChapterProgress,
    CourseOrder,
    CoursePurchase,
    Lesson,
    LessonProgress,
    OrderStatus,
)
from services.earnings_service.services.course_access import (
    approve_pending_orders,
    grant_course_access,
    has_access,
    record_chapter_progress,
    record_lesson_progress,
)
from sqlalchemy import func, select
from tests.factories import make_course, make_profile


@pytest.mark.asyncio
@pytest.mark.unit
async def test_admin_has_access_to_every_course(db_session):
    admin = await make_profile(db_session, is_admin=True)
    course = await make_course(db_session)

    assert await has_access(db_session, admin.id, course.id) is True


@pytest.mark.asyncio
@pytest.mark.unit
async def test_access_requires_purchase(db_session):
    user = await make_profile(db_session, is_paid=True)
    course = await make_course(db_session)

    assert await has_access(db_session, user.id, course.id) is False
    assert await grant_course_access(db_session, user_id=user.id, course_id=course.id)
    assert await has_access(db_session, user.id, course.id) is True


@pytest.mark.asyncio
@pytest.mark.unit
async def test_second_grant_is_a_benign_duplicate(db_session):
    user = await make_profile(db_session)
    course = await make_course(db_session)
    user_id, course_id = user.id, course.id

    first = await grant_course_access(
        db_session, user_id=user_id, course_id=course_id, transaction_ref="A"
    )
    second = await grant_course_access(
        db_session, user_id=user_id, course_id=course_id, transaction_ref="B"
    )

    assert (first, second) == (True, False)
    purchases = (
        await db_session.execute(
            select(CoursePurchase.transaction_ref).where(
                CoursePurchase.user_id == user_id
            )
        )
    ).scalars().all()
    assert purchases == ["A"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_duplicate_grant_keeps_loaded_objects_usable(db_session):
    user = await make_profile(db_session, is_paid=True)
    course = await make_course(db_session, price_units=50000)
    await grant_course_access(db_session, user_id=user.id, course_id=course.id)

    again = await grant_course_access(db_session, user_id=user.id, course_id=course.id)

    assert again is False
    # Read without a refresh; a full rollback would have expired these.
    assert user.is_paid is True
    assert course.price_units == 50000


@pytest.mark.asyncio
@pytest.mark.unit
async def test_grant_unknown_course_is_not_found(db_session):
    user = await make_profile(db_session)

    with pytest.raises(NotFoundError):
        await grant_course_access(db_session, user_id=user.id, course_id=uuid.uuid4())


@pytest.mark.asyncio
@pytest.mark.unit
async def test_approve_pending_orders_only_touches_pending(db_session):
    user = await make_profile(db_session)
    course = await make_course(db_session)
    db_session.add_all(
        [
            CourseOrder(user_id=user.id, course_id=course.id, status=OrderStatus.PENDING),
            CourseOrder(
                user_id=user.id, course_id=course.id, status=OrderStatus.REJECTED
            ),
        ]
    )
    await db_session.commit()

    approved = await approve_pending_orders(db_session, user_id=user.id, course_id=course.id)
    await db_session.commit()

    assert approved == 1
    statuses = (
        await db_session.execute(
            select(CourseOrder.status).where(CourseOrder.user_id == user.id)
        )
    ).scalars().all()
    assert sorted(s.value for s in statuses) == ["approved", "rejected"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_lesson_progress_upserts(db_session):
    user = await make_profile(db_session)
    course = await make_course(db_session, lessons=1)
    lesson_id = await db_session.scalar(
        select(Lesson.id).where(Lesson.course_id == course.id)
    )

    await record_lesson_progress(
        db_session, user_id=user.id, lesson_id=lesson_id, completed=False, watched_seconds=30
    )
    await record_lesson_progress(
        db_session, user_id=user.id, lesson_id=lesson_id, completed=True, watched_seconds=90
    )

    rows = (
        await db_session.execute(
            select(LessonProgress.completed, LessonProgress.watched_seconds).where(
                LessonProgress.user_id == user.id
            )
        )
    ).all()
    assert rows == [(True, 90)]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_chapter_progress_tracks_last_and_completed(db_session):
    user = await make_profile(db_session)
    course = await make_course(db_session)
    first, second = uuid.uuid4(), uuid.uuid4()

    await record_chapter_progress(
        db_session, user_id=user.id, course_id=course.id, chapter_id=first, completed=True
    )
    await record_chapter_progress(
        db_session, user_id=user.id, course_id=course.id, chapter_id=second
    )
    progress = await record_chapter_progress(
        db_session, user_id=user.id, course_id=course.id, chapter_id=first, completed=True
    )

    assert progress.last_chapter_id == first
    assert progress.completed_chapters == [str(first)]
    assert await db_session.scalar(
        select(func.count(ChapterProgress.id)).where(ChapterProgress.user_id == user.id)
    ) == 1

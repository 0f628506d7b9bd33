"""Admin course management: catalog, content, orders and manual grants."""

import uuid

from fastapi import APIRouter, Depends
from libs.common.currency import kes_to_units
from libs.common.datetime_utils import utc_now
from libs.common.errors import NotFoundError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.earnings_service.dependencies import require_admin
from services.earnings_service.models import (
    Chapter,
    Course,
    CourseOrder,
    CoursePurchase,
    CourseResource,
    Lesson,
    OrderStatus,
    Profile,
    ReviewAction,
)
from services.earnings_service.routers.courses import course_fields, lesson_counts
from services.earnings_service.schemas import (
    AdminCourseOrderResponse,
    AdminCourseResponse,
    ChapterCreate,
    ChapterCreatedResponse,
    ChapterReorderRequest,
    ChapterResponse,
    ChapterUpdate,
    CourseCreate,
    CourseCreatedResponse,
    CourseResponse,
    CourseUpdate,
    GrantCourseAccessRequest,
    LessonCreate,
    LessonCreatedResponse,
    LessonUpdate,
    PublishRequest,
    ResourceCreate,
    ResourceCreatedResponse,
    ResourceResponse,
    ReviewActionRequest,
    SuccessResponse,
)
from services.earnings_service.services.course_access import grant_course_access
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["admin-courses"])


async def _get_or_404(db: AsyncSession, model, obj_id: uuid.UUID, label: str):
    obj = await db.get(model, obj_id)
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj


# ============================================================================
# COURSES
# ============================================================================


@router.get("/courses", response_model=list[AdminCourseResponse])
async def admin_list_courses(
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    courses = (
        await db.execute(select(Course).order_by(Course.created_at.desc()))
    ).scalars().all()
    course_ids = [c.id for c in courses]
    lessons = await lesson_counts(db, course_ids)
    purchases = dict(
        (
            await db.execute(
                select(CoursePurchase.course_id, func.count(CoursePurchase.id))
                .where(CoursePurchase.course_id.in_(course_ids))
                .group_by(CoursePurchase.course_id)
            )
        ).all()
    ) if course_ids else {}
    return [
        AdminCourseResponse(
            **course_fields(c),
            created_by=c.created_by,
            lesson_count=lessons.get(c.id, 0),
            purchase_count=purchases.get(c.id, 0),
        )
        for c in courses
    ]


@router.post("/courses", response_model=CourseCreatedResponse)
async def admin_create_course(
    payload: CourseCreate,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    course = Course(
        title=payload.title,
        short_description=payload.short_description,
        description=payload.description,
        thumbnail_url=payload.thumbnail_url,
        price_units=kes_to_units(payload.price),
        category=payload.category,
        duration_hours=payload.duration_hours,
        is_published=False,
        created_by=admin.id,
    )
    db.add(course)
    await db.commit()
    await db.refresh(course)
    logger.info("Course %s created by %s", course.id, admin.id)
    return CourseCreatedResponse(course=CourseResponse.model_validate(course))


@router.put("/courses/{course_id}", response_model=SuccessResponse)
async def admin_update_course(
    course_id: uuid.UUID,
    payload: CourseUpdate,
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    course = await _get_or_404(db, Course, course_id, "Course")
    updates = payload.model_dump(exclude_unset=True)
    if "price" in updates:
        price = updates.pop("price")
        if price is not None:
            course.price_units = kes_to_units(price)
    for field, value in updates.items():
        setattr(course, field, value)
    await db.commit()
    return SuccessResponse()


@router.delete("/courses/{course_id}", response_model=SuccessResponse)
async def admin_delete_course(
    course_id: uuid.UUID,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    course = await _get_or_404(db, Course, course_id, "Course")
    await db.delete(course)
    await db.commit()
    logger.info("Course %s deleted by %s", course_id, admin.id)
    return SuccessResponse()


@router.put("/courses/{course_id}/publish", response_model=SuccessResponse)
async def admin_publish_course(
    course_id: uuid.UUID,
    payload: PublishRequest,
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    course = await _get_or_404(db, Course, course_id, "Course")
    course.is_published = payload.is_published
    await db.commit()
    return SuccessResponse()


# ============================================================================
# LESSONS
# ============================================================================


@router.post("/courses/{course_id}/lessons", response_model=LessonCreatedResponse)
async def admin_create_lesson(
    course_id: uuid.UUID,
    payload: LessonCreate,
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await _get_or_404(db, Course, course_id, "Course")
    lesson = Lesson(course_id=course_id, **payload.model_dump())
    db.add(lesson)
    await db.commit()
    return LessonCreatedResponse(lesson_id=lesson.id)


@router.put("/lessons/{lesson_id}", response_model=SuccessResponse)
async def admin_update_lesson(
    lesson_id: uuid.UUID,
    payload: LessonUpdate,
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    lesson = await _get_or_404(db, Lesson, lesson_id, "Lesson")
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(lesson, field, value)
    await db.commit()
    return SuccessResponse()


@router.delete("/lessons/{lesson_id}", response_model=SuccessResponse)
async def admin_delete_lesson(
    lesson_id: uuid.UUID,
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    lesson = await _get_or_404(db, Lesson, lesson_id, "Lesson")
    await db.delete(lesson)
    await db.commit()
    return SuccessResponse()


# ============================================================================
# CHAPTERS
# ============================================================================


@router.post("/courses/{course_id}/chapters", response_model=ChapterCreatedResponse)
async def admin_create_chapter(
    course_id: uuid.UUID,
    payload: ChapterCreate,
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await _get_or_404(db, Course, course_id, "Course")
    order_num = payload.order_num
    if order_num is None:
        current_max = await db.scalar(
            select(func.max(Chapter.order_num)).where(Chapter.course_id == course_id)
        )
        order_num = (current_max or 0) + 1

    chapter = Chapter(
        course_id=course_id,
        title=payload.title,
        category=payload.category,
        content_html=payload.content_html,
        order_num=order_num,
    )
    db.add(chapter)
    await db.commit()
    await db.refresh(chapter)
    return ChapterCreatedResponse(chapter=ChapterResponse.model_validate(chapter))


@router.put("/chapters/{chapter_id}", response_model=SuccessResponse)
async def admin_update_chapter(
    chapter_id: uuid.UUID,
    payload: ChapterUpdate,
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    chapter = await _get_or_404(db, Chapter, chapter_id, "Chapter")
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(chapter, field, value)
    chapter.updated_at = utc_now()
    await db.commit()
    return SuccessResponse()


@router.delete("/chapters/{chapter_id}", response_model=SuccessResponse)
async def admin_delete_chapter(
    chapter_id: uuid.UUID,
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    chapter = await _get_or_404(db, Chapter, chapter_id, "Chapter")
    await db.delete(chapter)
    await db.commit()
    return SuccessResponse()


@router.put("/courses/{course_id}/chapters/reorder", response_model=SuccessResponse)
async def admin_reorder_chapters(
    course_id: uuid.UUID,
    payload: ChapterReorderRequest,
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    for item in payload.order:
        await db.execute(
            update(Chapter)
            .where(Chapter.id == item.id, Chapter.course_id == course_id)
            .values(order_num=item.order_num, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
    await db.commit()
    return SuccessResponse()


# ============================================================================
# RESOURCES
# ============================================================================


@router.post("/resources", response_model=ResourceCreatedResponse)
async def admin_create_resource(
    payload: ResourceCreate,
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await _get_or_404(db, Course, payload.course_id, "Course")
    current_max = await db.scalar(
        select(func.max(CourseResource.order_index)).where(
            CourseResource.course_id == payload.course_id
        )
    )
    resource = CourseResource(
        course_id=payload.course_id,
        type=payload.type,
        title=payload.title,
        url=payload.url,
        order_index=0 if current_max is None else current_max + 1,
    )
    db.add(resource)
    await db.commit()
    return ResourceCreatedResponse(resource=ResourceResponse.model_validate(resource))


@router.delete("/resources/{resource_id}", response_model=SuccessResponse)
async def admin_delete_resource(
    resource_id: uuid.UUID,
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    resource = await _get_or_404(db, CourseResource, resource_id, "Resource")
    await db.delete(resource)
    await db.commit()
    return SuccessResponse()


# ============================================================================
# ORDERS & GRANTS
# ============================================================================


@router.get("/course-orders", response_model=list[AdminCourseOrderResponse])
async def admin_list_course_orders(
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    rows = await db.execute(
        select(CourseOrder, Profile.email)
        .outerjoin(Profile, Profile.id == CourseOrder.user_id)
        .order_by(CourseOrder.created_at.desc())
    )
    return [
        AdminCourseOrderResponse(
            id=order.id,
            user_id=order.user_id,
            course_id=order.course_id,
            amount_paid_units=order.amount_paid_units,
            transaction_ref=order.transaction_ref,
            status=order.status,
            created_at=order.created_at,
            email=email or "Unknown",
            course_title=order.course.title if order.course else "Unknown",
        )
        for order, email in rows.all()
    ]


@router.post("/course-orders/{order_id}/action", response_model=SuccessResponse)
async def admin_course_order_action(
    order_id: uuid.UUID,
    payload: ReviewActionRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Approve (grants the course) or reject a pending order."""
    order = await db.get(CourseOrder, order_id, populate_existing=True)
    if order is None:
        raise NotFoundError("Order not found")
    if order.status != OrderStatus.PENDING:
        return SuccessResponse(message="Order already processed")

    admin_id = admin.id
    user_id, course_id = order.user_id, order.course_id
    if payload.action == ReviewAction.APPROVE:
        values = {
            "status": OrderStatus.APPROVED,
            "approved_at": utc_now(),
            "approved_by": admin_id,
        }
        message = "Order approved, course unlocked for user"
    else:
        values = {"status": OrderStatus.REJECTED}
        message = "Order rejected"

    # The status flip decides the winner; the grant commits together with it.
    result = await db.execute(
        update(CourseOrder)
        .where(CourseOrder.id == order_id, CourseOrder.status == OrderStatus.PENDING)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return SuccessResponse(message="Order already processed")

    if payload.action == ReviewAction.APPROVE:
        await grant_course_access(
            db,
            user_id=user_id,
            course_id=course_id,
            amount_paid_units=order.amount_paid_units,
            transaction_ref=order.transaction_ref,
        )
    else:
        await db.commit()
    logger.info("Course order %s %s by %s", order_id, payload.action.value, admin_id)
    return SuccessResponse(message=message)


@router.post("/grant-course-access", response_model=SuccessResponse)
async def admin_grant_course_access(
    payload: GrantCourseAccessRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    if await db.get(Profile, payload.user_id) is None:
        raise NotFoundError("User not found")
    await grant_course_access(
        db,
        user_id=payload.user_id,
        course_id=payload.course_id,
        transaction_ref=f"ADMIN_GRANT_{admin.id}_{payload.course_id}",
    )
    return SuccessResponse(message="Course access granted")

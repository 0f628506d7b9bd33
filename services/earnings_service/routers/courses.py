"""Course catalog, purchase, access and progress endpoints."""

import time
import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from libs.common.config import Settings, get_settings
from libs.common.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.earnings_service.dependencies import (
    get_current_profile,
    get_paystack_client,
)
from services.earnings_service.models import (
    Chapter,
    ChapterProgress,
    Course,
    CourseOrder,
    CoursePurchase,
    CourseResource,
    Lesson,
    LessonProgress,
    OrderStatus,
    Profile,
    Transaction,
    TransactionPurpose,
    TransactionStatus,
)
from services.earnings_service.paystack_client import PaystackClient
from services.earnings_service.routers.payments import verify_with_gateway
from services.earnings_service.schemas import (
    ChapterProgressRequest,
    ChapterResponse,
    ChapterSummary,
    CourseAccessResponse,
    CourseCheckoutResponse,
    CourseDetailResponse,
    CourseListItem,
    CoursePaymentResponse,
    CourseProgressResponse,
    CourseResponse,
    LessonProgressRequest,
    LessonSummary,
    MyCourseResponse,
    MyOrderResponse,
    OrderResponse,
    OwnedCourse,
    PaymentClaimRequest,
    ResourceResponse,
    SuccessResponse,
    UnlockResponse,
    VerifyCoursePaymentRequest,
)
from services.earnings_service.services.course_access import (
    has_access,
    record_chapter_progress,
    record_lesson_progress,
)
from services.earnings_service.services.reconciliation import (
    PaymentSource,
    get_transaction,
    reconcile_payment,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(tags=["courses"])


def course_fields(course: Course) -> dict:
    """Column values of a course as accepted by the CourseResponse family."""
    return CourseResponse.model_validate(course).model_dump()


async def lesson_counts(db: AsyncSession, course_ids: list[uuid.UUID]) -> dict:
    if not course_ids:
        return {}
    rows = await db.execute(
        select(Lesson.course_id, func.count(Lesson.id))
        .where(Lesson.course_id.in_(course_ids))
        .group_by(Lesson.course_id)
    )
    return dict(rows.all())


async def _owned_purchase_id(
    db: AsyncSession, user_id: str, course_id: uuid.UUID
) -> Optional[uuid.UUID]:
    return await db.scalar(
        select(CoursePurchase.id).where(
            CoursePurchase.user_id == user_id,
            CoursePurchase.course_id == course_id,
        )
    )


async def _get_course(
    db: AsyncSession, course_id: uuid.UUID, *, published_only: bool = False
) -> Course:
    course = await db.get(Course, course_id)
    if course is None or (published_only and not course.is_published):
        raise NotFoundError("Course not found")
    return course


def _course_transaction_for(
    tx: Optional[Transaction], *, user_id: str, course_id: uuid.UUID
) -> Transaction:
    """Check that ``tx`` is this user's checkout for this course."""
    if tx is None or tx.purpose != TransactionPurpose.COURSE_PURCHASE:
        raise NotFoundError("Transaction not found")
    if tx.user_id != user_id:
        raise ForbiddenError("Transaction belongs to another user")
    if str((tx.txn_metadata or {}).get("course_id")) != str(course_id):
        raise ValidationError("Transaction is for a different course")
    return tx


# ============================================================================
# CATALOG
# ============================================================================


@router.get("/courses", response_model=list[CourseListItem])
async def list_courses(db: AsyncSession = Depends(get_async_db)):
    courses = (
        await db.execute(
            select(Course)
            .where(Course.is_published.is_(True))
            .order_by(Course.created_at.desc())
        )
    ).scalars().all()
    counts = await lesson_counts(db, [c.id for c in courses])
    return [
        CourseListItem(**course_fields(c), lesson_count=counts.get(c.id, 0))
        for c in courses
    ]


# Declared before /courses/{course_id} so "owned" is not parsed as an id.
@router.get("/courses/owned", response_model=list[OwnedCourse])
async def owned_courses(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
):
    """Course ids the caller can open. Admins own everything."""
    if profile.is_admin:
        ids = (await db.execute(select(Course.id))).scalars().all()
    else:
        ids = (
            await db.execute(
                select(CoursePurchase.course_id).where(
                    CoursePurchase.user_id == profile.id
                )
            )
        ).scalars().all()
    return [OwnedCourse(course_id=course_id) for course_id in ids]


@router.post("/courses/verify-payment", response_model=CoursePaymentResponse)
async def verify_course_payment(
    payload: VerifyCoursePaymentRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
    paystack: PaystackClient = Depends(get_paystack_client),
    settings: Settings = Depends(get_settings),
):
    tx = await get_transaction(db, payload.reference)
    if tx is None:
        raise NotFoundError("Transaction not found")
    if tx.purpose != TransactionPurpose.COURSE_PURCHASE:
        raise ValidationError("Invalid transaction type")
    if tx.user_id != profile.id:
        raise ForbiddenError("Transaction belongs to another user")
    raw_course_id = (tx.txn_metadata or {}).get("course_id")
    if not raw_course_id:
        raise ValidationError("Invalid transaction type")
    course_id = uuid.UUID(str(raw_course_id))

    if not await verify_with_gateway(paystack, tx.reference, tx.amount_units):
        return CoursePaymentResponse(
            success=False, message="Payment verification failed"
        )

    await reconcile_payment(
        db, payload.reference, source=PaymentSource.VERIFY, settings=settings
    )
    return CoursePaymentResponse(
        success=True, message="Course purchased successfully!", course_id=course_id
    )


@router.get("/courses/{course_id}", response_model=CourseDetailResponse)
async def get_course(course_id: uuid.UUID, db: AsyncSession = Depends(get_async_db)):
    course = await _get_course(db, course_id, published_only=True)
    lessons = (
        await db.execute(
            select(Lesson)
            .where(Lesson.course_id == course_id)
            .order_by(Lesson.order_index)
        )
    ).scalars().all()
    return CourseDetailResponse(
        **course_fields(course),
        lessons=[LessonSummary.model_validate(lesson) for lesson in lessons],
    )


@router.get("/courses/{course_id}/access", response_model=CourseAccessResponse)
async def course_access(
    course_id: uuid.UUID,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
):
    return CourseAccessResponse(has_access=await has_access(db, profile.id, course_id))


# ============================================================================
# PURCHASE PATHS
# ============================================================================


@router.post("/courses/{course_id}/purchase", response_model=CourseCheckoutResponse)
async def purchase_course(
    course_id: uuid.UUID,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
    settings: Settings = Depends(get_settings),
):
    """Create a pending course checkout."""
    if await _owned_purchase_id(db, profile.id, course_id):
        raise ConflictError("Course already purchased")
    course = await _get_course(db, course_id, published_only=True)

    reference = f"COURSE_{course_id}_{int(time.time() * 1000)}_{profile.id}"
    db.add(
        Transaction(
            reference=reference,
            user_id=profile.id,
            amount_units=course.price_units,
            currency=settings.CURRENCY,
            status=TransactionStatus.PENDING,
            purpose=TransactionPurpose.COURSE_PURCHASE,
            txn_metadata={"type": "course_purchase", "course_id": str(course_id)},
        )
    )
    await db.commit()
    logger.info("Initiated course checkout %s for %s", reference, profile.id)
    return CourseCheckoutResponse(
        reference=reference,
        amount=course.price_units,
        key=settings.PAYSTACK_PUBLIC_KEY,
        course_title=course.title,
    )


@router.post("/courses/{course_id}/order", response_model=OrderResponse)
async def create_course_order(
    course_id: uuid.UUID,
    payload: PaymentClaimRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
):
    """Record a client-reported payment for manual review."""
    # A rejected order does not block a new submission.
    existing = await db.scalar(
        select(CourseOrder)
        .where(
            CourseOrder.user_id == profile.id,
            CourseOrder.course_id == course_id,
            CourseOrder.status.in_((OrderStatus.PENDING, OrderStatus.APPROVED)),
        )
        .order_by(CourseOrder.created_at.desc())
        .limit(1)
    )
    if existing is not None:
        return OrderResponse(
            success=True,
            message="Order already submitted",
            order_id=existing.id,
            status=existing.status.value,
        )
    if await _owned_purchase_id(db, profile.id, course_id):
        return OrderResponse(success=True, message="Course already owned")

    await _get_course(db, course_id)
    order = CourseOrder(
        user_id=profile.id,
        course_id=course_id,
        amount_paid_units=payload.amount or 0,
        transaction_ref=payload.claimed_reference,
        status=OrderStatus.PENDING,
    )
    db.add(order)
    await db.commit()
    logger.info("Course order %s submitted by %s", order.id, profile.id)
    return OrderResponse(
        success=True, message="Order submitted for verification", order_id=order.id
    )


@router.post("/courses/{course_id}/unlock", response_model=UnlockResponse)
async def unlock_course(
    course_id: uuid.UUID,
    payload: PaymentClaimRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
    paystack: PaystackClient = Depends(get_paystack_client),
    settings: Settings = Depends(get_settings),
):
    """
    Client reports a finished checkout and asks for immediate access.

    The claim is checked with Paystack (unless client claims are trusted by
    config) and then reconciled exactly like the webhook would.
    """
    user_id = profile.id
    purchase_id = await _owned_purchase_id(db, user_id, course_id)
    if purchase_id:
        return UnlockResponse(
            success=True, message="Course already owned", purchase_id=purchase_id
        )
    if not payload.reference and not payload.paystack_ref:
        raise ValidationError("Payment reference required")

    tx = await get_transaction(db, payload.reference or payload.paystack_ref)
    tx = _course_transaction_for(tx, user_id=user_id, course_id=course_id)
    reference = tx.reference

    if not settings.TRUST_CLIENT_PAYMENT_CLAIMS and not await verify_with_gateway(
        paystack, reference, tx.amount_units
    ):
        raise ValidationError("Payment not verified")

    await reconcile_payment(
        db, reference, source=PaymentSource.CLIENT_CLAIM, settings=settings
    )
    return UnlockResponse(
        success=True,
        message="Course unlocked!",
        purchase_id=await _owned_purchase_id(db, user_id, course_id),
    )


# ============================================================================
# CONTENT & PROGRESS
# ============================================================================


@router.get("/courses/{course_id}/chapters", response_model=list[ChapterSummary])
async def list_chapters(course_id: uuid.UUID, db: AsyncSession = Depends(get_async_db)):
    chapters = (
        await db.execute(
            select(Chapter)
            .where(Chapter.course_id == course_id)
            .order_by(Chapter.order_num)
        )
    ).scalars().all()
    return chapters


@router.get("/courses/{course_id}/resources", response_model=list[ResourceResponse])
async def list_resources(course_id: uuid.UUID, db: AsyncSession = Depends(get_async_db)):
    resources = (
        await db.execute(
            select(CourseResource)
            .where(CourseResource.course_id == course_id)
            .order_by(CourseResource.order_index)
        )
    ).scalars().all()
    return resources


@router.get("/courses/{course_id}/progress", response_model=CourseProgressResponse)
async def course_progress(
    course_id: uuid.UUID,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
):
    progress = await db.scalar(
        select(ChapterProgress).where(
            ChapterProgress.user_id == profile.id,
            ChapterProgress.course_id == course_id,
        )
    )
    if progress is None:
        return CourseProgressResponse()
    return progress


async def _get_chapter(db: AsyncSession, chapter_id: uuid.UUID) -> Chapter:
    chapter = await db.get(Chapter, chapter_id)
    if chapter is None:
        raise NotFoundError("Chapter not found")
    return chapter


@router.get("/chapters/{chapter_id}", response_model=ChapterResponse)
async def get_chapter(
    chapter_id: uuid.UUID,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
):
    chapter = await _get_chapter(db, chapter_id)
    if not await has_access(db, profile.id, chapter.course_id):
        raise ForbiddenError("Purchase required")
    return chapter


@router.post("/chapters/{chapter_id}/progress", response_model=SuccessResponse)
async def update_chapter_progress(
    chapter_id: uuid.UUID,
    payload: Optional[ChapterProgressRequest] = None,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
):
    chapter = await _get_chapter(db, chapter_id)
    course_id = chapter.course_id
    if not await has_access(db, profile.id, course_id):
        raise ForbiddenError("Purchase required")
    await record_chapter_progress(
        db,
        user_id=profile.id,
        course_id=course_id,
        chapter_id=chapter_id,
        completed=payload.completed if payload else False,
    )
    return SuccessResponse()


@router.post("/lessons/{lesson_id}/progress", response_model=SuccessResponse)
async def update_lesson_progress(
    lesson_id: uuid.UUID,
    payload: LessonProgressRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
):
    course_id = await db.scalar(select(Lesson.course_id).where(Lesson.id == lesson_id))
    if course_id is None:
        raise NotFoundError("Lesson not found")
    if not await has_access(db, profile.id, course_id):
        raise ForbiddenError("Access denied")
    await record_lesson_progress(
        db,
        user_id=profile.id,
        lesson_id=lesson_id,
        completed=payload.completed,
        watched_seconds=payload.watched_seconds,
    )
    return SuccessResponse()


# ============================================================================
# MEMBER VIEWS
# ============================================================================


@router.get("/my-courses", response_model=list[MyCourseResponse])
async def my_courses(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
):
    purchases = (
        await db.execute(
            select(CoursePurchase)
            .where(CoursePurchase.user_id == profile.id)
            .order_by(CoursePurchase.purchased_at.desc())
        )
    ).scalars().all()
    if not purchases:
        return []

    course_ids = [p.course_id for p in purchases]
    totals = await lesson_counts(db, course_ids)
    completed_rows = await db.execute(
        select(Lesson.course_id, func.count(LessonProgress.id))
        .join(LessonProgress, LessonProgress.lesson_id == Lesson.id)
        .where(
            Lesson.course_id.in_(course_ids),
            LessonProgress.user_id == profile.id,
            LessonProgress.completed.is_(True),
        )
        .group_by(Lesson.course_id)
    )
    completed = dict(completed_rows.all())

    result = []
    for purchase in purchases:
        total = totals.get(purchase.course_id, 0)
        done = completed.get(purchase.course_id, 0)
        result.append(
            MyCourseResponse(
                **course_fields(purchase.course),
                purchased_at=purchase.purchased_at,
                total_lessons=total,
                completed_lessons=done,
                progress=round(done / total * 100) if total else 0,
            )
        )
    return result


@router.get("/my-orders", response_model=list[MyOrderResponse])
async def my_orders(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
):
    orders = (
        await db.execute(
            select(CourseOrder)
            .where(CourseOrder.user_id == profile.id)
            .order_by(CourseOrder.created_at.desc())
        )
    ).scalars().all()
    return [
        MyOrderResponse(
            id=o.id,
            course_id=o.course_id,
            amount_paid_units=o.amount_paid_units,
            transaction_ref=o.transaction_ref,
            status=o.status,
            created_at=o.created_at,
            course_title=o.course.title if o.course else "Course",
        )
        for o in orders
    ]

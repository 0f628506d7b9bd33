"""Course catalog, ownership and progress schemas."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.currency import units_to_kes
from pydantic import BaseModel, ConfigDict, Field, computed_field
from services.earnings_service.models.enums import OrderStatus

# ============================================================================
# CATALOG
# ============================================================================


class LessonSummary(BaseModel):
    id: uuid.UUID
    title: str
    duration_minutes: int
    order_index: int

    model_config = ConfigDict(from_attributes=True)


class LessonResponse(LessonSummary):
    course_id: uuid.UUID
    video_url: str


class CourseResponse(BaseModel):
    id: uuid.UUID
    title: str
    short_description: str
    description: str
    thumbnail_url: Optional[str] = None
    price_units: int
    category: str
    duration_hours: Optional[int] = None
    is_published: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field(alias="priceKES")
    @property
    def price_kes(self) -> float:
        return units_to_kes(self.price_units)


class CourseListItem(CourseResponse):
    lesson_count: int = 0


class CourseDetailResponse(CourseResponse):
    lessons: list[LessonSummary] = []


class AdminCourseResponse(CourseListItem):
    purchase_count: int = 0
    created_by: Optional[str] = None


class OwnedCourse(BaseModel):
    course_id: uuid.UUID


class CourseAccessResponse(BaseModel):
    has_access: bool = Field(..., alias="hasAccess")

    model_config = ConfigDict(populate_by_name=True)


class MyCourseResponse(CourseResponse):
    purchased_at: datetime
    total_lessons: int
    completed_lessons: int
    progress: int


class MyOrderResponse(BaseModel):
    id: uuid.UUID
    course_id: uuid.UUID
    amount_paid_units: int
    transaction_ref: Optional[str] = None
    status: OrderStatus
    created_at: datetime
    course_title: str = Field(..., alias="courseTitle")

    model_config = ConfigDict(populate_by_name=True)


# ============================================================================
# CHAPTERS, RESOURCES & PROGRESS
# ============================================================================


class ChapterSummary(BaseModel):
    id: uuid.UUID
    title: str
    category: Optional[str] = None
    order_num: int

    model_config = ConfigDict(from_attributes=True)


class ChapterResponse(ChapterSummary):
    course_id: uuid.UUID
    content_html: str
    created_at: datetime
    updated_at: datetime


class ResourceResponse(BaseModel):
    id: uuid.UUID
    course_id: uuid.UUID
    type: str
    title: str
    url: str
    order_index: int

    model_config = ConfigDict(from_attributes=True)


class LessonProgressRequest(BaseModel):
    completed: bool = False
    watched_seconds: int = Field(default=0, ge=0)


class ChapterProgressRequest(BaseModel):
    completed: bool = False


class CourseProgressResponse(BaseModel):
    last_chapter_id: Optional[uuid.UUID] = None
    completed_chapters: list[str] = []

    model_config = ConfigDict(from_attributes=True)

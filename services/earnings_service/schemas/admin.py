"""Admin request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.earnings_service.models.enums import OrderStatus, ReviewAction
from services.earnings_service.schemas.courses import (
    ChapterResponse,
    CourseResponse,
    ResourceResponse,
)

# ============================================================================
# COURSES
# ============================================================================


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1)
    short_description: str = ""
    description: str = ""
    thumbnail_url: Optional[str] = None
    price: int = Field(..., gt=0, description="Price in KES")
    category: str = "other"
    duration_hours: Optional[int] = None


class CourseUpdate(BaseModel):
    title: Optional[str] = None
    short_description: Optional[str] = None
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    price: Optional[int] = Field(default=None, gt=0, description="Price in KES")
    category: Optional[str] = None
    duration_hours: Optional[int] = None


class CourseCreatedResponse(BaseModel):
    success: bool = True
    course: CourseResponse


class PublishRequest(BaseModel):
    is_published: bool


class LessonCreate(BaseModel):
    title: str = Field(..., min_length=1)
    video_url: str = ""
    order_index: int = 0
    duration_minutes: int = 0


class LessonUpdate(BaseModel):
    title: Optional[str] = None
    video_url: Optional[str] = None
    order_index: Optional[int] = None
    duration_minutes: Optional[int] = None


class LessonCreatedResponse(BaseModel):
    success: bool = True
    lesson_id: uuid.UUID = Field(..., alias="lessonId")

    model_config = ConfigDict(populate_by_name=True)


class ChapterCreate(BaseModel):
    title: str = Field(..., min_length=1)
    category: Optional[str] = None
    content_html: str = ""
    order_num: Optional[int] = None


class ChapterUpdate(BaseModel):
    title: Optional[str] = None
    category: Optional[str] = None
    content_html: Optional[str] = None
    order_num: Optional[int] = None


class ChapterCreatedResponse(BaseModel):
    success: bool = True
    chapter: ChapterResponse


class ChapterOrderItem(BaseModel):
    id: uuid.UUID
    order_num: int


class ChapterReorderRequest(BaseModel):
    order: list[ChapterOrderItem]


class ResourceCreate(BaseModel):
    course_id: uuid.UUID
    type: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)


class ResourceCreatedResponse(BaseModel):
    success: bool = True
    resource: ResourceResponse


# ============================================================================
# ORDERS, GRANTS & WITHDRAWALS
# ============================================================================


class AdminCourseOrderResponse(BaseModel):
    id: uuid.UUID
    user_id: str
    course_id: uuid.UUID
    amount_paid_units: int
    transaction_ref: Optional[str] = None
    status: OrderStatus
    created_at: datetime
    email: str
    course_title: str = Field(..., alias="courseTitle")

    model_config = ConfigDict(populate_by_name=True)


class ReviewActionRequest(BaseModel):
    action: ReviewAction


class GrantCourseAccessRequest(BaseModel):
    user_id: str = Field(..., alias="userId", min_length=1)
    course_id: uuid.UUID = Field(..., alias="courseId")

    model_config = ConfigDict(populate_by_name=True)


# ============================================================================
# OVERVIEW
# ============================================================================


class AdminUser(BaseModel):
    id: str
    email: str
    is_paid: bool
    referral_code: str

    model_config = ConfigDict(from_attributes=True)


class AdminWithdrawal(BaseModel):
    id: uuid.UUID
    user_id: str
    amount: float
    phone: str
    status: str
    created_at: datetime
    email: Optional[str] = None


class AdminDataResponse(BaseModel):
    users: list[AdminUser]
    withdrawals: list[AdminWithdrawal]


class AdminStatsResponse(BaseModel):
    total_users: int = Field(..., alias="totalUsers")
    paid_users: int = Field(..., alias="paidUsers")
    pending_withdrawals: int = Field(..., alias="pendingWithdrawals")
    total_courses: int = Field(..., alias="totalCourses")
    total_tasks: int = Field(..., alias="totalTasks")
    total_revenue_kes: float = Field(..., alias="totalRevenueKES")

    model_config = ConfigDict(populate_by_name=True)


class ImageUploadRequest(BaseModel):
    image_data: str = Field(..., alias="imageData", min_length=1)
    file_name: str = Field(..., alias="fileName", min_length=1)
    folder: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class ImageUploadResponse(BaseModel):
    success: bool = True
    path: str
    url: str

"""Earnings Service schemas package.

Re-exports all schemas so that:
  - ``from services.earnings_service.schemas import CourseResponse`` works
  - Router files import from one place

IMPORTANT: Every schema class must be listed here.
When adding a new schema, add its import and __all__ entry.
"""

from services.earnings_service.schemas.admin import (  # noqa: F401
    AdminCourseOrderResponse,
    AdminDataResponse,
    AdminStatsResponse,
    AdminUser,
    AdminWithdrawal,
    ChapterCreate,
    ChapterCreatedResponse,
    ChapterOrderItem,
    ChapterReorderRequest,
    ChapterUpdate,
    CourseCreate,
    CourseCreatedResponse,
    CourseUpdate,
    GrantCourseAccessRequest,
    ImageUploadRequest,
    ImageUploadResponse,
    LessonCreate,
    LessonCreatedResponse,
    LessonUpdate,
    PublishRequest,
    ResourceCreate,
    ResourceCreatedResponse,
    ReviewActionRequest,
)
from services.earnings_service.schemas.auth import (  # noqa: F401
    LoginRequest,
    LoginResponse,
    SignupRequest,
    SignupResponse,
    SignupUser,
    UpdatePasswordRequest,
)
from services.earnings_service.schemas.common import SuccessResponse  # noqa: F401
from services.earnings_service.schemas.courses import (  # noqa: F401
    AdminCourseResponse,
    ChapterProgressRequest,
    ChapterResponse,
    ChapterSummary,
    CourseAccessResponse,
    CourseDetailResponse,
    CourseListItem,
    CourseProgressResponse,
    CourseResponse,
    LessonProgressRequest,
    LessonResponse,
    LessonSummary,
    MyCourseResponse,
    MyOrderResponse,
    OwnedCourse,
    ResourceResponse,
)
from services.earnings_service.schemas.payments import (  # noqa: F401
    CheckoutResponse,
    CourseCheckoutResponse,
    CoursePaymentResponse,
    MarkPaidRequest,
    MarkPaidResponse,
    OrderResponse,
    PaymentClaimRequest,
    UnlockResponse,
    VerifyCoursePaymentRequest,
    VerifyResponse,
)
from services.earnings_service.schemas.tasks import (  # noqa: F401
    AdminTaskSubmissionResponse,
    AvailableTaskResponse,
    TaskCompleteRequest,
    TaskCreate,
    TaskCreatedResponse,
    TaskResponse,
    TaskSubmissionResponse,
    TaskUpdate,
)
from services.earnings_service.schemas.wallet import (  # noqa: F401
    DashboardResponse,
    DashboardUser,
    DashboardWallet,
    ReferralResponse,
    WithdrawRequest,
)

__all__ = [
    # Common
    "SuccessResponse",
    # Auth
    "SignupRequest",
    "SignupResponse",
    "SignupUser",
    "LoginRequest",
    "LoginResponse",
    "UpdatePasswordRequest",
    # Payments
    "CheckoutResponse",
    "CourseCheckoutResponse",
    "CoursePaymentResponse",
    "MarkPaidRequest",
    "MarkPaidResponse",
    "OrderResponse",
    "PaymentClaimRequest",
    "UnlockResponse",
    "VerifyCoursePaymentRequest",
    "VerifyResponse",
    # Wallet
    "DashboardResponse",
    "DashboardUser",
    "DashboardWallet",
    "ReferralResponse",
    "WithdrawRequest",
    # Tasks
    "AdminTaskSubmissionResponse",
    "AvailableTaskResponse",
    "TaskCompleteRequest",
    "TaskCreate",
    "TaskCreatedResponse",
    "TaskResponse",
    "TaskSubmissionResponse",
    "TaskUpdate",
    # Courses
    "AdminCourseResponse",
    "ChapterProgressRequest",
    "ChapterResponse",
    "ChapterSummary",
    "CourseAccessResponse",
    "CourseDetailResponse",
    "CourseListItem",
    "CourseProgressResponse",
    "CourseResponse",
    "LessonProgressRequest",
    "LessonResponse",
    "LessonSummary",
    "MyCourseResponse",
    "MyOrderResponse",
    "OwnedCourse",
    "ResourceResponse",
    # Admin
    "AdminCourseOrderResponse",
    "AdminDataResponse",
    "AdminStatsResponse",
    "AdminUser",
    "AdminWithdrawal",
    "ChapterCreate",
    "ChapterCreatedResponse",
    "ChapterOrderItem",
    "ChapterReorderRequest",
    "ChapterUpdate",
    "CourseCreate",
    "CourseCreatedResponse",
    "CourseUpdate",
    "GrantCourseAccessRequest",
    "ImageUploadRequest",
    "ImageUploadResponse",
    "LessonCreate",
    "LessonCreatedResponse",
    "LessonUpdate",
    "PublishRequest",
    "ResourceCreate",
    "ResourceCreatedResponse",
    "ReviewActionRequest",
]

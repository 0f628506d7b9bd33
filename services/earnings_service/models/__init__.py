"""Earnings Service models package.

Re-exports all models and enums so that:
  - ``from services.earnings_service.models import Wallet`` works
  - SQLAlchemy's mapper registry sees every model class on import

IMPORTANT: Every model class AND enum must be listed here.
When adding a new model, add both its import and its __all__ entry.
"""

from services.earnings_service.models.course import (  # noqa: F401
    Chapter,
    ChapterProgress,
    Course,
    CourseOrder,
    CoursePurchase,
    CourseResource,
    Lesson,
    LessonProgress,
)
from services.earnings_service.models.enums import (  # noqa: F401
    OrderStatus,
    ReferralStatus,
    ReviewAction,
    SubmissionStatus,
    TransactionPurpose,
    TransactionStatus,
    WithdrawalStatus,
)
from services.earnings_service.models.profile import Profile  # noqa: F401
from services.earnings_service.models.task import (  # noqa: F401
    TaskDefinition,
    TaskSubmission,
)
from services.earnings_service.models.wallet import (  # noqa: F401
    Referral,
    Transaction,
    Wallet,
    Withdrawal,
)

__all__ = [
    # Enums
    "OrderStatus",
    "ReferralStatus",
    "ReviewAction",
    "SubmissionStatus",
    "TransactionPurpose",
    "TransactionStatus",
    "WithdrawalStatus",
    # Accounts & ledger
    "Profile",
    "Wallet",
    "Transaction",
    "Referral",
    "Withdrawal",
    # Tasks
    "TaskDefinition",
    "TaskSubmission",
    # Courses
    "Course",
    "Lesson",
    "Chapter",
    "CourseResource",
    "CoursePurchase",
    "CourseOrder",
    "LessonProgress",
    "ChapterProgress",
]

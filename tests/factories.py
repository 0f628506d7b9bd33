"""
Model factories and service fakes for tests.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs. The ``make_*`` coroutines insert and commit.

Usage:
    profile = ProfileFactory.create(is_paid=True)
    db_session.add(profile)
    await db_session.commit()
"""

import uuid
from typing import Optional

from jose import jwt

from libs.common.config import get_settings
from libs.common.errors import ValidationError
from libs.common.supabase import AuthSession
from services.earnings_service.paystack_client import (
    PaystackError,
    VerifiedTransaction,
    verify_signature,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex[:8]}@test.com"


def make_token(user_id: str, email: Optional[str] = None) -> str:
    """Mint an access token signed like the identity provider's."""
    return jwt.encode(
        {"sub": user_id, "email": email, "role": "authenticated"},
        get_settings().SUPABASE_JWT_SECRET,
        algorithm="HS256",
    )


def auth_headers_for(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


# ---------------------------------------------------------------------------
# Fakes for the identity provider, payment gateway and blob store
# ---------------------------------------------------------------------------


class FakeIdentityGateway:
    """In-memory stand-in for the Supabase account API."""

    def __init__(self):
        self.accounts: dict[str, tuple[str, str]] = {}  # email -> (id, password)
        self.deleted: list[str] = []

    async def create_user(self, email: str, password: str) -> str:
        if email in self.accounts:
            raise ValidationError("Email already registered. Please log in instead.")
        user_id = str(uuid.uuid4())
        self.accounts[email] = (user_id, password)
        return user_id

    async def delete_user(self, user_id: str) -> None:
        self.deleted.append(user_id)
        self.accounts = {
            email: acct for email, acct in self.accounts.items() if acct[0] != user_id
        }

    async def sign_in(self, email: str, password: str) -> Optional[AuthSession]:
        account = self.accounts.get(email)
        if account is None or account[1] != password:
            return None
        return AuthSession(
            user_id=account[0], email=email, access_token=make_token(account[0], email)
        )

    async def update_password(self, user_id: str, new_password: str) -> None:
        for email, (acct_id, _) in list(self.accounts.items()):
            if acct_id == user_id:
                self.accounts[email] = (acct_id, new_password)


class FakePaystack:
    """Paystack double: signatures are real, lookups come from ``payments``."""

    def __init__(self, secret_key: str):
        self.secret_key = secret_key
        self.payments: dict[str, VerifiedTransaction] = {}
        self.verify_calls: list[str] = []

    def set_status(
        self, reference: str, amount: int, status: str = "success", currency: str = "KES"
    ) -> None:
        self.payments[reference] = VerifiedTransaction(
            reference=reference,
            status=status,
            amount=amount,
            currency=currency,
            data={"reference": reference, "status": status, "amount": amount},
        )

    def verify_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        return verify_signature(self.secret_key, raw_body, signature)

    async def verify_transaction(self, reference: str) -> VerifiedTransaction:
        self.verify_calls.append(reference)
        if reference not in self.payments:
            raise PaystackError("Transaction reference not found", status_code=400)
        return self.payments[reference]


class FakeStorage:
    def __init__(self):
        self.objects: dict[str, tuple[bytes, str]] = {}

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        self.objects[path] = (data, content_type)
        return f"https://storage.test/images/{path}"


# ---------------------------------------------------------------------------
# Accounts & wallet
# ---------------------------------------------------------------------------


class ProfileFactory:
    @staticmethod
    def create(**overrides):
        from services.earnings_service.models import Profile

        defaults = {
            "id": str(_uuid()),
            "email": _unique_email(),
            "referral_code": f"USER{uuid.uuid4().hex[:8].upper()}",
            "referred_by": None,
            "is_paid": False,
            "is_admin": False,
        }
        defaults.update(overrides)
        return Profile(**defaults)


class TransactionFactory:
    @staticmethod
    def create(user_id: str, **overrides):
        from services.earnings_service.models import (
            Transaction,
            TransactionPurpose,
            TransactionStatus,
        )

        defaults = {
            "reference": f"REF_{uuid.uuid4().hex}",
            "user_id": user_id,
            "amount_units": 10000,
            "currency": "KES",
            "status": TransactionStatus.PENDING,
            "purpose": TransactionPurpose.SIGNUP,
            "txn_metadata": {"type": "signup"},
        }
        defaults.update(overrides)
        return Transaction(**defaults)


async def make_profile(db, *, balance_units: int = 0, **overrides):
    """Insert a profile with its wallet."""
    from services.earnings_service.models import Wallet

    profile = ProfileFactory.create(**overrides)
    db.add(profile)
    await db.flush()
    db.add(Wallet(user_id=profile.id, balance_units=balance_units))
    await db.commit()
    return profile


async def make_transaction(db, user_id: str, **overrides):
    tx = TransactionFactory.create(user_id, **overrides)
    db.add(tx)
    await db.commit()
    return tx


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TaskFactory:
    @staticmethod
    def create(**overrides):
        from services.earnings_service.models import TaskDefinition

        defaults = {
            "id": _uuid(),
            "title": "Follow us on X",
            "description": "Follow the account and submit your handle",
            "reward_kes": 20,
            "task_type": "social",
            "url": "https://x.com/earnio",
            "daily_limit": 1,
            "is_active": True,
        }
        defaults.update(overrides)
        return TaskDefinition(**defaults)


async def make_task(db, **overrides):
    task = TaskFactory.create(**overrides)
    db.add(task)
    await db.commit()
    return task


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


class CourseFactory:
    @staticmethod
    def create(**overrides):
        from services.earnings_service.models import Course

        defaults = {
            "id": _uuid(),
            "title": "Affiliate Marketing 101",
            "short_description": "Start earning online",
            "description": "A practical course",
            "price_units": 50000,
            "category": "marketing",
            "is_published": True,
        }
        defaults.update(overrides)
        return Course(**defaults)


async def make_course(db, *, lessons: int = 0, chapters: int = 0, **overrides):
    from services.earnings_service.models import Chapter, Lesson

    course = CourseFactory.create(**overrides)
    db.add(course)
    await db.flush()
    for i in range(lessons):
        db.add(
            Lesson(
                course_id=course.id,
                title=f"Lesson {i + 1}",
                video_url=f"https://videos.test/{i + 1}",
                order_index=i,
                duration_minutes=10,
            )
        )
    for i in range(chapters):
        db.add(
            Chapter(
                course_id=course.id,
                title=f"Chapter {i + 1}",
                content_html=f"<p>Chapter {i + 1}</p>",
                order_num=i + 1,
            )
        )
    await db.commit()
    return course

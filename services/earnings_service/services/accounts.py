"""Account signup and login on top of the identity gateway."""

import secrets
from dataclasses import dataclass
from typing import Optional

from libs.common.errors import UpstreamError, ValidationError
from libs.common.logging import get_logger
from libs.common.supabase import IdentityGateway
from services.earnings_service.models import Profile, Wallet
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass
class SignupResult:
    user_id: str
    email: str
    referral_code: str
    token: str
    needs_payment: bool


def generate_referral_code() -> str:
    return "USER" + secrets.token_hex(4).upper()


async def _resolve_referrer(db: AsyncSession, referral_code: Optional[str]) -> Optional[str]:
    if not referral_code:
        return None
    referrer_id = await db.scalar(
        select(Profile.id).where(Profile.referral_code == referral_code.strip())
    )
    if referrer_id is None:
        logger.info("Signup with unknown referral code %s", referral_code)
    return referrer_id


async def register_account(
    db: AsyncSession,
    identity: IdentityGateway,
    *,
    email: str,
    password: str,
    referral_code: Optional[str] = None,
) -> SignupResult:
    """
    Create the identity account, then the profile and wallet.

    The very first profile becomes an admin and skips the signup fee. If the
    profile cannot be stored, the identity account is deleted again.
    """
    user_id = await identity.create_user(email, password)

    code = generate_referral_code()
    try:
        referrer_id = await _resolve_referrer(db, referral_code)
        is_first = (await db.scalar(select(func.count(Profile.id)))) == 0

        db.add(
            Profile(
                id=user_id,
                email=email,
                referral_code=code,
                referred_by=referrer_id,
                is_admin=is_first,
                is_paid=is_first,
            )
        )
        await db.flush()
        db.add(Wallet(user_id=user_id, balance_units=0))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        await identity.delete_user(user_id)
        raise UpstreamError(f"Profile creation failed for {user_id}", cause=e)

    logger.info(
        "Registered %s (admin=%s, referred_by=%s)",
        user_id,
        is_first,
        referrer_id,
    )

    session = await identity.sign_in(email, password)
    if session is None:
        raise UpstreamError(f"Account {user_id} created but sign-in failed")

    return SignupResult(
        user_id=user_id,
        email=email,
        referral_code=code,
        token=session.access_token,
        needs_payment=not is_first,
    )


async def login(
    db: AsyncSession, identity: IdentityGateway, *, email: str, password: str
) -> tuple[str, bool]:
    """Return ``(token, needs_payment)``."""
    session = await identity.sign_in(email, password)
    if session is None:
        raise ValidationError("Invalid credentials")
    is_paid = await db.scalar(select(Profile.is_paid).where(Profile.id == session.user_id))
    return session.access_token, not is_paid


async def update_password(
    identity: IdentityGateway, *, user_id: str, new_password: str
) -> None:
    if not new_password or len(new_password) < 6:
        raise ValidationError("Password must be at least 6 characters")
    await identity.update_password(user_id, new_password)

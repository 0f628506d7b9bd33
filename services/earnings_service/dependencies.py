"""FastAPI dependencies for the Earnings Service.

External clients live on ``app.state`` (built by the lifespan in
``app/main.py``); tests replace them through ``app.dependency_overrides``.
"""

from fastapi import Depends, Request
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.errors import ForbiddenError, NotFoundError
from libs.common.supabase import IdentityGateway, StorageService
from libs.db.session import get_async_db
from services.earnings_service.models import Profile
from services.earnings_service.paystack_client import PaystackClient
from sqlalchemy.ext.asyncio import AsyncSession


def get_identity_gateway(request: Request) -> IdentityGateway:
    return request.app.state.identity


def get_paystack_client(request: Request) -> PaystackClient:
    return request.app.state.paystack


def get_storage(request: Request) -> StorageService:
    return request.app.state.storage


async def get_current_profile(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
) -> Profile:
    """Profile row for the bearer token's subject."""
    profile = await db.get(Profile, current_user.user_id)
    if profile is None:
        raise NotFoundError("Profile not found")
    return profile


async def require_admin(
    profile: Profile = Depends(get_current_profile),
) -> Profile:
    if not profile.is_admin:
        raise ForbiddenError()
    return profile

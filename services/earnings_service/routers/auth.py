"""Signup, login and password endpoints."""

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.supabase import IdentityGateway
from libs.db.session import get_async_db
from services.earnings_service.dependencies import get_identity_gateway
from services.earnings_service.schemas import (
    LoginRequest,
    LoginResponse,
    SignupRequest,
    SignupResponse,
    SignupUser,
    SuccessResponse,
    UpdatePasswordRequest,
)
from services.earnings_service.services import accounts
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED
)
async def signup(
    payload: SignupRequest,
    db: AsyncSession = Depends(get_async_db),
    identity: IdentityGateway = Depends(get_identity_gateway),
):
    result = await accounts.register_account(
        db,
        identity,
        email=payload.email,
        password=payload.password,
        referral_code=payload.referral_code,
    )
    return SignupResponse(
        token=result.token,
        needs_payment=result.needs_payment,
        user=SignupUser(
            id=result.user_id, email=result.email, referral_code=result.referral_code
        ),
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_async_db),
    identity: IdentityGateway = Depends(get_identity_gateway),
):
    token, needs_payment = await accounts.login(
        db, identity, email=payload.email, password=payload.password
    )
    return LoginResponse(token=token, needs_payment=needs_payment)


@router.post("/update-password", response_model=SuccessResponse)
async def update_password(
    payload: UpdatePasswordRequest,
    current_user: AuthUser = Depends(get_current_user),
    identity: IdentityGateway = Depends(get_identity_gateway),
):
    await accounts.update_password(
        identity, user_id=current_user.user_id, new_password=payload.new_password
    )
    return SuccessResponse(message="Password updated successfully")

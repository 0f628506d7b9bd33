"""Member dashboard and withdrawal endpoints."""

from fastapi import APIRouter, Depends
from libs.common.config import Settings, get_settings
from libs.common.currency import units_to_kes
from libs.db.session import get_async_db
from services.earnings_service.dependencies import get_current_profile
from services.earnings_service.models import (
    Profile,
    Referral,
    SubmissionStatus,
    TaskDefinition,
    TaskSubmission,
)
from services.earnings_service.schemas import (
    DashboardResponse,
    DashboardUser,
    DashboardWallet,
    ReferralResponse,
    SuccessResponse,
    WithdrawRequest,
)
from services.earnings_service.services.wallet_ops import (
    get_balance_units,
    request_withdrawal,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["wallet"])


@router.get("/dashboard/data", response_model=DashboardResponse)
async def dashboard_data(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
):
    balance_units = await get_balance_units(db, profile.id)

    pending_kes = await db.scalar(
        select(func.coalesce(func.sum(TaskDefinition.reward_kes), 0))
        .select_from(TaskSubmission)
        .join(TaskDefinition, TaskDefinition.id == TaskSubmission.task_id)
        .where(
            TaskSubmission.user_id == profile.id,
            TaskSubmission.status == SubmissionStatus.PENDING,
        )
    )

    referrals = (
        await db.execute(
            select(Referral)
            .where(Referral.referrer_id == profile.id)
            .order_by(Referral.created_at.desc())
        )
    ).scalars().all()

    return DashboardResponse(
        user=DashboardUser(
            email=profile.email,
            referral_code=profile.referral_code,
            is_paid=profile.is_paid,
            is_admin=profile.is_admin,
        ),
        wallet=DashboardWallet(
            balance_kes=units_to_kes(balance_units),
            pending_combined=float(pending_kes or 0),
        ),
        referrals=[ReferralResponse.model_validate(r) for r in referrals],
    )


@router.post("/withdraw", response_model=SuccessResponse)
async def withdraw(
    payload: WithdrawRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
    settings: Settings = Depends(get_settings),
):
    await request_withdrawal(
        db,
        user_id=profile.id,
        amount_kes=payload.amount,
        phone=payload.phone,
        settings=settings,
    )
    return SuccessResponse(message="Withdrawal requested")

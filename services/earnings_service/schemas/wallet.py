"""Dashboard and withdrawal schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.earnings_service.models.enums import ReferralStatus


class DashboardUser(BaseModel):
    email: str
    referral_code: str = Field(..., alias="referralCode")
    is_paid: bool = Field(..., alias="isPaid")
    is_admin: bool = Field(..., alias="isAdmin")

    model_config = ConfigDict(populate_by_name=True)


class DashboardWallet(BaseModel):
    balance_kes: float = Field(..., alias="balanceKES")
    # Sum of rewards for submissions still awaiting review.
    pending_combined: float = Field(..., alias="pendingCombined")

    model_config = ConfigDict(populate_by_name=True)


class ReferralResponse(BaseModel):
    id: uuid.UUID
    referrer_id: str
    referred_user_id: str
    reward_units: int
    status: ReferralStatus
    awarded_tx_id: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DashboardResponse(BaseModel):
    user: DashboardUser
    wallet: DashboardWallet
    referrals: list[ReferralResponse]


class WithdrawRequest(BaseModel):
    amount: int = Field(..., description="Amount in KES")
    phone: str = Field(..., min_length=1)


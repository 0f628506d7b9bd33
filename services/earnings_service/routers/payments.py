"""Signup fee checkout and confirmation endpoints."""

import time

from fastapi import APIRouter, Depends
from libs.common.config import Settings, get_settings
from libs.common.currency import kes_to_units
from libs.common.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.earnings_service.dependencies import (
    get_current_profile,
    get_paystack_client,
)
from services.earnings_service.models import (
    Profile,
    Transaction,
    TransactionPurpose,
    TransactionStatus,
)
from services.earnings_service.paystack_client import PaystackClient, PaystackError
from services.earnings_service.schemas import (
    CheckoutResponse,
    MarkPaidRequest,
    MarkPaidResponse,
    VerifyResponse,
)
from services.earnings_service.services.reconciliation import (
    PaymentSource,
    ReconcileOutcome,
    check_gateway_confirmation,
    get_transaction,
    reconcile_payment,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(tags=["payments"])


def _now_ms() -> int:
    return int(time.time() * 1000)


async def verify_with_gateway(
    paystack: PaystackClient, reference: str, expected_units: int
) -> bool:
    """Ask Paystack whether ``reference`` was paid in full."""
    try:
        verified = await paystack.verify_transaction(reference)
    except PaystackError as e:
        raise UpstreamError(f"Paystack verify failed for {reference}", cause=e)
    return check_gateway_confirmation(verified, expected_units)


@router.post("/pay/initiate", response_model=CheckoutResponse)
async def initiate_signup_payment(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
    settings: Settings = Depends(get_settings),
):
    """Create a pending signup-fee transaction for the checkout widget."""
    if profile.is_paid:
        raise ConflictError("Signup fee already paid")

    amount_units = kes_to_units(settings.SIGNUP_FEE_KES)
    reference = f"REF_{_now_ms()}_{profile.id}"
    db.add(
        Transaction(
            reference=reference,
            user_id=profile.id,
            amount_units=amount_units,
            currency=settings.CURRENCY,
            status=TransactionStatus.PENDING,
            purpose=TransactionPurpose.SIGNUP,
            txn_metadata={"type": "signup"},
        )
    )
    await db.commit()
    logger.info("Initiated signup payment %s for %s", reference, profile.id)
    return CheckoutResponse(
        reference=reference, amount=amount_units, key=settings.PAYSTACK_PUBLIC_KEY
    )


@router.post("/pay/mark-paid", response_model=MarkPaidResponse)
async def mark_paid(
    payload: MarkPaidRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
    paystack: PaystackClient = Depends(get_paystack_client),
    settings: Settings = Depends(get_settings),
):
    """
    Client reports that checkout succeeded.

    Runs the same reconciliation as the webhook, but only after Paystack
    confirms the reference (unless client claims are trusted by config).
    """
    user_id = profile.id
    if profile.is_paid:
        return MarkPaidResponse(success=True, user_id=user_id, message="Already paid")
    if not payload.reference:
        raise ValidationError("Payment reference required")

    tx = await get_transaction(db, payload.reference)
    if tx is None or tx.purpose != TransactionPurpose.SIGNUP:
        raise NotFoundError("Transaction not found")
    if tx.user_id != user_id:
        raise ForbiddenError("Transaction belongs to another user")

    if not settings.TRUST_CLIENT_PAYMENT_CLAIMS and not await verify_with_gateway(
        paystack, tx.reference, tx.amount_units
    ):
        raise ValidationError("Payment not successful")

    outcome = await reconcile_payment(
        db, tx.reference, source=PaymentSource.CLIENT_CLAIM, settings=settings
    )
    message = "Already paid" if outcome == ReconcileOutcome.ALREADY_PROCESSED else None
    return MarkPaidResponse(success=True, user_id=user_id, message=message)


@router.get("/verify/{reference}", response_model=VerifyResponse)
async def verify_payment(
    reference: str,
    db: AsyncSession = Depends(get_async_db),
    paystack: PaystackClient = Depends(get_paystack_client),
    settings: Settings = Depends(get_settings),
):
    """Poll Paystack for a reference and reconcile it on success."""
    tx = await get_transaction(db, reference)
    expected_units = tx.amount_units if tx is not None else None
    try:
        verified = await paystack.verify_transaction(reference)
    except PaystackError as e:
        raise UpstreamError(f"Paystack verify failed for {reference}", cause=e)

    if not check_gateway_confirmation(verified, expected_units):
        return VerifyResponse(verified=False, message="Payment not successful")

    outcome = await reconcile_payment(
        db, reference, source=PaymentSource.VERIFY, settings=settings
    )
    if outcome == ReconcileOutcome.NOT_FOUND:
        raise NotFoundError("Transaction not found")
    return VerifyResponse(verified=True, data=verified.data)

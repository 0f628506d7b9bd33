"""Payment reconciliation: confirm a reference and apply its effect once.

Every confirmation path (signed webhook, poll-and-verify, client claims)
calls ``reconcile_payment``. Effects are applied before the transaction is
marked successful, so a crash in between leaves it pending and a retry
finishes the job. Each effect is idempotent on its own:

- signup: ``is_paid`` is a plain flag; the referral bonus is guarded by the
  unique (referrer, referred) pair and the deterministic bonus reference.
- course purchase: guarded by the unique (user, course) purchase row.

The final ``pending -> success`` flip is a conditional UPDATE; whoever
changes the row reports ``applied``, everybody else ``already_processed``.
"""

import enum
import uuid
from typing import Optional

from libs.common.config import Settings
from libs.common.currency import kes_to_units
from libs.common.datetime_utils import utc_now
from libs.common.errors import ConflictError, UpstreamError
from libs.common.logging import get_logger
from services.earnings_service.models import (
    Profile,
    Referral,
    ReferralStatus,
    Transaction,
    TransactionPurpose,
    TransactionStatus,
)
from services.earnings_service.paystack_client import VerifiedTransaction
from services.earnings_service.services.course_access import (
    approve_pending_orders,
    grant_course_access,
)
from services.earnings_service.services.wallet_ops import credit_wallet
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class PaymentSource(str, enum.Enum):
    WEBHOOK = "webhook"
    VERIFY = "verify"
    # Caller asserts the payment succeeded; lowest trust.
    CLIENT_CLAIM = "client_claim"


class ReconcileOutcome(str, enum.Enum):
    APPLIED = "applied"
    ALREADY_PROCESSED = "already_processed"
    NOT_FOUND = "not_found"


def referral_bonus_reference(referred_user_id: str) -> str:
    return f"REF_BONUS_{referred_user_id}"


def check_gateway_confirmation(
    verified: VerifiedTransaction, expected_units: Optional[int] = None
) -> bool:
    """True when the gateway reports success for at least the expected amount."""
    if not verified.is_success:
        return False
    if expected_units is not None and verified.amount < expected_units:
        logger.warning(
            "Paystack amount %d below expected %d for %s",
            verified.amount,
            expected_units,
            verified.reference,
        )
        raise ConflictError("Paid amount does not match the transaction")
    return True


async def get_transaction(db: AsyncSession, reference: str) -> Optional[Transaction]:
    return await db.scalar(
        select(Transaction)
        .where(Transaction.reference == reference)
        .execution_options(populate_existing=True)
    )


# ---------------------------------------------------------------------------
# Referral bonus
# ---------------------------------------------------------------------------


async def _referral_exists(
    db: AsyncSession, referrer_id: str, referred_user_id: str
) -> bool:
    referral_id = await db.scalar(
        select(Referral.id).where(
            Referral.referrer_id == referrer_id,
            Referral.referred_user_id == referred_user_id,
        )
    )
    return referral_id is not None


async def pay_referral_bonus(
    db: AsyncSession,
    *,
    referrer_id: str,
    referred_user_id: str,
    settings: Settings,
) -> bool:
    """Credit the referrer once per referred user. Commits when paid.

    The existence check is only a fast path. Under a race both callers can
    pass it; the unique constraints then reject the loser's inserts and the
    whole bonus (ledger row, referral row and wallet credit) rolls back to
    its savepoint.
    Returns True if this call paid the bonus.
    """
    if await _referral_exists(db, referrer_id, referred_user_id):
        return False

    reward_units = kes_to_units(settings.REFERRAL_REWARD_KES)
    bonus_tx = Transaction(
        reference=referral_bonus_reference(referred_user_id),
        user_id=referrer_id,
        amount_units=reward_units,
        currency=settings.CURRENCY,
        status=TransactionStatus.SUCCESS,
        purpose=TransactionPurpose.REFERRAL_BONUS,
        txn_metadata={"type": "referral_bonus", "source": referred_user_id},
    )
    try:
        async with db.begin_nested():
            db.add(bonus_tx)
            await db.flush()
            db.add(
                Referral(
                    referrer_id=referrer_id,
                    referred_user_id=referred_user_id,
                    reward_units=reward_units,
                    status=ReferralStatus.PAID,
                    awarded_tx_id=bonus_tx.id,
                )
            )
            await db.flush()
            await credit_wallet(db, referrer_id, reward_units)
    except IntegrityError:
        logger.info(
            "Referral bonus for %s already paid to %s", referred_user_id, referrer_id
        )
        return False
    await db.commit()

    logger.info(
        "Paid referral bonus of %d units to %s for %s",
        reward_units,
        referrer_id,
        referred_user_id,
    )
    return True


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------


async def _apply_signup(db: AsyncSession, user_id: str, settings: Settings) -> None:
    await db.execute(
        update(Profile)
        .where(Profile.id == user_id)
        .values(is_paid=True, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    referred_by = await db.scalar(
        select(Profile.referred_by).where(Profile.id == user_id)
    )
    if referred_by:
        await pay_referral_bonus(
            db,
            referrer_id=referred_by,
            referred_user_id=user_id,
            settings=settings,
        )


async def _apply_course_purchase(
    db: AsyncSession,
    *,
    user_id: str,
    metadata: dict,
    amount_units: int,
    reference: str,
) -> None:
    raw_course_id = metadata.get("course_id")
    if not raw_course_id:
        raise UpstreamError(f"Course transaction {reference} has no course_id")
    course_id = uuid.UUID(str(raw_course_id))
    await grant_course_access(
        db,
        user_id=user_id,
        course_id=course_id,
        amount_paid_units=amount_units,
        transaction_ref=reference,
    )
    await approve_pending_orders(db, user_id=user_id, course_id=course_id)
    await db.commit()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def reconcile_payment(
    db: AsyncSession,
    reference: str,
    *,
    source: PaymentSource,
    settings: Settings,
) -> ReconcileOutcome:
    """Confirm ``reference`` and apply its purpose effect exactly once."""
    log_fields = {"reference": reference, "source": source.value}

    tx = await get_transaction(db, reference)
    if tx is None:
        logger.warning(
            "Reconcile: unknown reference %s",
            reference,
            extra={"extra_fields": log_fields},
        )
        return ReconcileOutcome.NOT_FOUND
    if tx.status == TransactionStatus.SUCCESS:
        return ReconcileOutcome.ALREADY_PROCESSED

    # Effects commit and may roll back to a savepoint; read ``tx`` up front.
    user_id = tx.user_id
    purpose = tx.purpose
    metadata = dict(tx.txn_metadata or {})
    amount_units = tx.amount_units

    if purpose == TransactionPurpose.SIGNUP:
        await _apply_signup(db, user_id, settings)
    elif purpose == TransactionPurpose.COURSE_PURCHASE:
        await _apply_course_purchase(
            db,
            user_id=user_id,
            metadata=metadata,
            amount_units=amount_units,
            reference=reference,
        )
    else:
        logger.warning(
            "Reconcile: nothing to apply for %s transaction %s",
            purpose.value,
            reference,
            extra={"extra_fields": log_fields},
        )

    result = await db.execute(
        update(Transaction)
        .where(
            Transaction.reference == reference,
            Transaction.status == TransactionStatus.PENDING,
        )
        .values(status=TransactionStatus.SUCCESS, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    if result.rowcount == 0:
        logger.info(
            "Reconcile: %s completed concurrently",
            reference,
            extra={"extra_fields": log_fields},
        )
        return ReconcileOutcome.ALREADY_PROCESSED

    logger.info(
        "Reconciled %s payment %s",
        purpose.value,
        reference,
        extra={"extra_fields": {**log_fields, "user_id": user_id}},
    )
    return ReconcileOutcome.APPLIED

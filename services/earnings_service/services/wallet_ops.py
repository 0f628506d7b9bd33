"""Core wallet operations: atomic credit/debit and withdrawals.

Balance changes are single ``UPDATE ... SET balance_units = balance_units + x``
statements so concurrent requests never overwrite each other's result. None
of the helpers below commit unless stated; callers own the transaction.
"""

import uuid
from typing import Optional

from libs.common.config import Settings
from libs.common.currency import kes_to_units
from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    ConflictError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from libs.common.logging import get_logger
from services.earnings_service.models import (
    ReviewAction,
    Wallet,
    Withdrawal,
    WithdrawalStatus,
)
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Balance primitives
# ---------------------------------------------------------------------------


async def get_balance_units(db: AsyncSession, user_id: str) -> int:
    balance = await db.scalar(
        select(Wallet.balance_units).where(Wallet.user_id == user_id)
    )
    return balance or 0


async def credit_wallet(db: AsyncSession, user_id: str, amount_units: int) -> None:
    """Add ``amount_units`` to the user's wallet (no commit)."""
    result = await db.execute(
        update(Wallet)
        .where(Wallet.user_id == user_id)
        .values(
            balance_units=Wallet.balance_units + amount_units,
            updated_at=utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("Wallet not found")
    logger.info("Credited wallet of %s with %d units", user_id, amount_units)


async def debit_wallet(db: AsyncSession, user_id: str, amount_units: int) -> bool:
    """Subtract ``amount_units`` only if the balance covers it (no commit).

    Returns False, changing nothing, when the balance is insufficient.
    """
    result = await db.execute(
        update(Wallet)
        .where(
            Wallet.user_id == user_id,
            Wallet.balance_units >= amount_units,
        )
        .values(
            balance_units=Wallet.balance_units - amount_units,
            updated_at=utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


# ---------------------------------------------------------------------------
# Withdrawals
# ---------------------------------------------------------------------------


async def request_withdrawal(
    db: AsyncSession,
    *,
    user_id: str,
    amount_kes: int,
    phone: str,
    settings: Settings,
) -> Withdrawal:
    """Debit the wallet, then record the payout request.

    If the withdrawal row cannot be written the debit is reversed with a
    compensating credit.
    """
    if amount_kes < settings.MIN_WITHDRAWAL_KES:
        raise ValidationError(f"Minimum {settings.MIN_WITHDRAWAL_KES} KES")
    amount_units = kes_to_units(amount_kes)

    if not await debit_wallet(db, user_id, amount_units):
        await db.rollback()
        raise ValidationError("Insufficient balance")
    await db.commit()

    withdrawal = Withdrawal(
        user_id=user_id,
        amount_units=amount_units,
        phone=phone,
        status=WithdrawalStatus.PENDING,
    )
    db.add(withdrawal)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        await credit_wallet(db, user_id, amount_units)
        await db.commit()
        raise UpstreamError(f"Withdrawal insert failed for {user_id}", cause=e)

    logger.info(
        "Withdrawal %s requested by %s (%d units)",
        withdrawal.id,
        user_id,
        amount_units,
    )
    return withdrawal


async def process_withdrawal(
    db: AsyncSession,
    withdrawal_id: uuid.UUID,
    *,
    action: ReviewAction,
    admin_id: str,
) -> Withdrawal:
    """Approve or reject a pending withdrawal. Rejection refunds the wallet."""
    withdrawal: Optional[Withdrawal] = await db.get(
        Withdrawal, withdrawal_id, populate_existing=True
    )
    if withdrawal is None:
        raise NotFoundError("Withdrawal not found")

    new_status = (
        WithdrawalStatus.APPROVED
        if action == ReviewAction.APPROVE
        else WithdrawalStatus.REJECTED
    )
    result = await db.execute(
        update(Withdrawal)
        .where(
            Withdrawal.id == withdrawal_id,
            Withdrawal.status == WithdrawalStatus.PENDING,
        )
        .values(status=new_status, processed_at=utc_now(), processed_by=admin_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise ConflictError("Withdrawal already processed")

    if new_status == WithdrawalStatus.REJECTED:
        await credit_wallet(db, withdrawal.user_id, withdrawal.amount_units)

    await db.commit()
    await db.refresh(withdrawal)
    logger.info(
        "Withdrawal %s %s by %s", withdrawal_id, new_status.value, admin_id
    )
    return withdrawal

"""Wallet, ledger, referral and withdrawal models."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.earnings_service.models.enums import (
    ReferralStatus,
    TransactionPurpose,
    TransactionStatus,
    WithdrawalStatus,
    enum_values,
)
from sqlalchemy import JSON, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Wallet(Base):
    """One wallet per profile, created at signup."""

    __tablename__ = "wallets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, index=True
    )
    balance_units: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("balance_units >= 0", name="ck_wallet_balance_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Wallet {self.user_id} balance_units={self.balance_units}>"


class Transaction(Base):
    """Payment/settlement ledger row, keyed by a unique reference."""

    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    reference: Mapped[str] = mapped_column(
        String, unique=True, index=True, nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    amount_units: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="KES", nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(
            TransactionStatus,
            name="transaction_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=TransactionStatus.PENDING,
        nullable=False,
    )
    purpose: Mapped[TransactionPurpose] = mapped_column(
        SAEnum(
            TransactionPurpose,
            name="transaction_purpose_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    txn_metadata: Mapped[Optional[dict]] = mapped_column(
        "txn_metadata", JSON, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("amount_units >= 0", name="ck_transaction_amount_non_negative"),
        Index("ix_transactions_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Transaction {self.reference} {self.purpose.value} {self.status.value}>"


class Referral(Base):
    """A paid referral bonus. The (referrer, referred) pair is unique."""

    __tablename__ = "referrals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    referrer_id: Mapped[str] = mapped_column(
        String, ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    referred_user_id: Mapped[str] = mapped_column(
        String, ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    reward_units: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ReferralStatus] = mapped_column(
        SAEnum(
            ReferralStatus,
            name="referral_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=ReferralStatus.PAID,
        nullable=False,
    )
    awarded_tx_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("transactions.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "referrer_id", "referred_user_id", name="uq_referrals_referrer_referred"
        ),
    )


class Withdrawal(Base):
    """Payout request, created after the wallet has been debited."""

    __tablename__ = "withdrawals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    amount_units: Mapped[int] = mapped_column(Integer, nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[WithdrawalStatus] = mapped_column(
        SAEnum(
            WithdrawalStatus,
            name="withdrawal_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=WithdrawalStatus.PENDING,
        nullable=False,
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    processed_by: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("amount_units > 0", name="ck_withdrawal_amount_positive"),
    )

"""Profile model, one per identity account."""

from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column


class Profile(Base):
    """Platform profile keyed by the identity provider's user id."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    referral_code: Mapped[str] = mapped_column(
        String(20), unique=True, index=True, nullable=False
    )
    referred_by: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Profile {self.id} paid={self.is_paid} admin={self.is_admin}>"

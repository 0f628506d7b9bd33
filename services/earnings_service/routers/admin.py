"""Admin overview, withdrawal processing and image uploads."""

import base64
import binascii
import mimetypes
import posixpath
import time
import uuid

from fastapi import APIRouter, Depends
from libs.common.currency import units_to_kes
from libs.common.errors import ValidationError
from libs.common.logging import get_logger
from libs.common.supabase import StorageService
from libs.db.session import get_async_db
from services.earnings_service.dependencies import get_storage, require_admin
from services.earnings_service.models import (
    Course,
    Profile,
    ReviewAction,
    TaskDefinition,
    Transaction,
    TransactionPurpose,
    TransactionStatus,
    Withdrawal,
    WithdrawalStatus,
)
from services.earnings_service.schemas import (
    AdminDataResponse,
    AdminStatsResponse,
    AdminUser,
    AdminWithdrawal,
    ImageUploadRequest,
    ImageUploadResponse,
    ReviewActionRequest,
    SuccessResponse,
)
from services.earnings_service.services.wallet_ops import process_withdrawal
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])

DEFAULT_IMAGE_FOLDER = "thumbnails"
REVENUE_PURPOSES = (TransactionPurpose.SIGNUP, TransactionPurpose.COURSE_PURCHASE)


@router.get("/data", response_model=AdminDataResponse)
async def admin_data(
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    users = (
        await db.execute(select(Profile).order_by(Profile.created_at.desc()))
    ).scalars().all()
    rows = await db.execute(
        select(Withdrawal, Profile.email)
        .outerjoin(Profile, Profile.id == Withdrawal.user_id)
        .order_by(Withdrawal.created_at.desc())
    )
    withdrawals = [
        AdminWithdrawal(
            id=w.id,
            user_id=w.user_id,
            amount=units_to_kes(w.amount_units),
            phone=w.phone,
            status=w.status.value,
            created_at=w.created_at,
            email=email,
        )
        for w, email in rows.all()
    ]
    return AdminDataResponse(
        users=[AdminUser.model_validate(u) for u in users],
        withdrawals=withdrawals,
    )


@router.get("/stats", response_model=AdminStatsResponse)
async def admin_stats(
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    total_users = await db.scalar(select(func.count(Profile.id)))
    paid_users = await db.scalar(
        select(func.count(Profile.id)).where(Profile.is_paid.is_(True))
    )
    pending_withdrawals = await db.scalar(
        select(func.count(Withdrawal.id)).where(
            Withdrawal.status == WithdrawalStatus.PENDING
        )
    )
    total_courses = await db.scalar(select(func.count(Course.id)))
    total_tasks = await db.scalar(
        select(func.count(TaskDefinition.id)).where(TaskDefinition.is_active.is_(True))
    )
    revenue_units = await db.scalar(
        select(func.coalesce(func.sum(Transaction.amount_units), 0)).where(
            Transaction.status == TransactionStatus.SUCCESS,
            Transaction.purpose.in_(REVENUE_PURPOSES),
        )
    )
    return AdminStatsResponse(
        total_users=total_users or 0,
        paid_users=paid_users or 0,
        pending_withdrawals=pending_withdrawals or 0,
        total_courses=total_courses or 0,
        total_tasks=total_tasks or 0,
        total_revenue_kes=units_to_kes(revenue_units or 0),
    )


@router.post("/withdraw/{withdrawal_id}/action", response_model=SuccessResponse)
async def admin_withdrawal_action(
    withdrawal_id: uuid.UUID,
    payload: ReviewActionRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    withdrawal = await process_withdrawal(
        db, withdrawal_id, action=payload.action, admin_id=admin.id
    )
    if payload.action == ReviewAction.REJECT:
        return SuccessResponse(message="Withdrawal rejected and refunded")
    return SuccessResponse(message=f"Withdrawal {withdrawal.status.value}")


def decode_image_payload(image_data: str, file_name: str) -> tuple[bytes, str]:
    """
    Decode a base64 image, with or without a ``data:<mime>;base64,`` prefix.

    Returns the raw bytes and the content type (from the prefix when present,
    otherwise guessed from the file name).
    """
    content_type = None
    if image_data.startswith("data:"):
        header, sep, image_data = image_data.partition(",")
        if not sep:
            raise ValidationError("Invalid image data")
        content_type = header[len("data:"):].split(";")[0] or None

    try:
        data = base64.b64decode(image_data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Invalid image data") from e
    if not data:
        raise ValidationError("Invalid image data")

    if content_type is None:
        content_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"
    return data, content_type


def safe_file_name(file_name: str) -> str:
    """Reduce a client-supplied name to its last path segment."""
    name = posixpath.basename(file_name.replace("\\", "/")).strip()
    if name in ("", ".", ".."):
        raise ValidationError("Invalid file name")
    return name


@router.post("/upload-image", response_model=ImageUploadResponse)
async def admin_upload_image(
    payload: ImageUploadRequest,
    admin: Profile = Depends(require_admin),
    storage: StorageService = Depends(get_storage),
):
    file_name = safe_file_name(payload.file_name)
    data, content_type = decode_image_payload(payload.image_data, file_name)
    segments = (payload.folder or "").replace("\\", "/").split("/")
    folder = "/".join(s for s in segments if s not in ("", ".", "..")) or DEFAULT_IMAGE_FOLDER
    path = f"{folder}/{int(time.time() * 1000)}_{file_name}"

    url = await storage.upload(path, data, content_type)
    logger.info("Uploaded %s (%d bytes) for %s", path, len(data), admin.id)
    return ImageUploadResponse(path=path, url=url)

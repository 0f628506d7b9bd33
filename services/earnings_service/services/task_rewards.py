"""Micro-task submissions and their review.

A submission starts pending. Approval credits ``reward_kes`` (converted to
units) to the submitter's wallet exactly once: the status flip is conditional
and the reward transaction's reference ``TASK_<submission_id>`` is unique.
"""

import uuid
from typing import Optional

from libs.common.config import Settings
from libs.common.currency import kes_to_units
from libs.common.datetime_utils import local_day_start, utc_now
from libs.common.errors import ConflictError, NotFoundError
from libs.common.logging import get_logger
from services.earnings_service.models import (
    SubmissionStatus,
    TaskDefinition,
    TaskSubmission,
    Transaction,
    TransactionPurpose,
    TransactionStatus,
)
from services.earnings_service.services.wallet_ops import credit_wallet
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def task_reward_reference(submission_id: uuid.UUID) -> str:
    return f"TASK_{submission_id}"


async def count_submissions_today(
    db: AsyncSession, *, user_id: str, task_id: uuid.UUID, settings: Settings
) -> int:
    """Non-rejected submissions for user+task since local midnight."""
    since = local_day_start(settings.TIMEZONE)
    return await db.scalar(
        select(func.count(TaskSubmission.id)).where(
            TaskSubmission.user_id == user_id,
            TaskSubmission.task_id == task_id,
            TaskSubmission.created_at >= since,
            TaskSubmission.status != SubmissionStatus.REJECTED,
        )
    )


async def submit_task(
    db: AsyncSession,
    *,
    user_id: str,
    task_id: uuid.UUID,
    proof: Optional[str],
    settings: Settings,
) -> TaskSubmission:
    task = await db.get(TaskDefinition, task_id)
    if task is None or not task.is_active:
        raise NotFoundError("Task not found or inactive")

    submitted = await count_submissions_today(
        db, user_id=user_id, task_id=task_id, settings=settings
    )
    if submitted >= task.daily_limit:
        raise ConflictError("Daily limit reached for this task")

    submission = TaskSubmission(
        user_id=user_id,
        task_id=task_id,
        status=SubmissionStatus.PENDING,
        proof_data=proof,
    )
    db.add(submission)
    await db.commit()
    logger.info("Task %s submitted by %s", task_id, user_id)
    return submission


async def _get_submission(db: AsyncSession, submission_id: uuid.UUID) -> TaskSubmission:
    submission = await db.get(TaskSubmission, submission_id, populate_existing=True)
    if submission is None:
        raise NotFoundError("Submission not found")
    return submission


async def approve_submission(
    db: AsyncSession, submission_id: uuid.UUID, *, reviewer_id: str
) -> None:
    """Approve and pay out in a single commit."""
    submission = await _get_submission(db, submission_id)
    if submission.status == SubmissionStatus.APPROVED:
        raise ConflictError("Already approved")

    user_id = submission.user_id
    task_id = submission.task_id
    reward_units = kes_to_units(submission.task.reward_kes)

    result = await db.execute(
        update(TaskSubmission)
        .where(
            TaskSubmission.id == submission_id,
            TaskSubmission.status != SubmissionStatus.APPROVED,
        )
        .values(
            status=SubmissionStatus.APPROVED,
            reviewed_by=reviewer_id,
            reviewed_at=utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise ConflictError("Already approved")

    await credit_wallet(db, user_id, reward_units)
    db.add(
        Transaction(
            reference=task_reward_reference(submission_id),
            user_id=user_id,
            amount_units=reward_units,
            status=TransactionStatus.SUCCESS,
            purpose=TransactionPurpose.TASK_REWARD,
            txn_metadata={"type": "task_reward", "task_id": str(task_id)},
        )
    )
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Already approved") from e

    logger.info(
        "Approved submission %s: credited %d units to %s",
        submission_id,
        reward_units,
        user_id,
        extra={"extra_fields": {"reviewer_id": reviewer_id}},
    )


async def reject_submission(
    db: AsyncSession, submission_id: uuid.UUID, *, reviewer_id: str
) -> None:
    submission = await _get_submission(db, submission_id)
    if submission.status == SubmissionStatus.APPROVED:
        raise ConflictError("Cannot reject an approved submission")

    result = await db.execute(
        update(TaskSubmission)
        .where(
            TaskSubmission.id == submission_id,
            TaskSubmission.status != SubmissionStatus.APPROVED,
        )
        .values(
            status=SubmissionStatus.REJECTED,
            reviewed_by=reviewer_id,
            reviewed_at=utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise ConflictError("Cannot reject an approved submission")
    await db.commit()
    logger.info("Rejected submission %s", submission_id)

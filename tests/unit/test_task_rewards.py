"""Unit tests for task submission and review."""

import uuid
from datetime import timedelta

import pytest
from libs.common.datetime_utils import utc_now
from libs.common.errors import ConflictError, NotFoundError
from services.earnings_service.models import (
    SubmissionStatus,
    TaskSubmission,
    Transaction,
    TransactionPurpose,
)
from services.earnings_service.services.task_rewards import (
    approve_submission,
    count_submissions_today,
    reject_submission,
    submit_task,
    task_reward_reference,
)
from services.earnings_service.services.wallet_ops import get_balance_units
from sqlalchemy import func, select
from tests.factories import make_profile, make_task


async def _status(db, submission_id):
    return await db.scalar(
        select(TaskSubmission.status).where(TaskSubmission.id == submission_id)
    )


# ---------------------------------------------------------------------------
# submit_task
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_submit_creates_pending_submission(db_session, settings):
    user = await make_profile(db_session, is_paid=True)
    task = await make_task(db_session)

    submission = await submit_task(
        db_session, user_id=user.id, task_id=task.id, proof="@me", settings=settings
    )

    assert submission.status == SubmissionStatus.PENDING
    assert submission.proof_data == "@me"
    # Nothing is credited until review.
    assert await get_balance_units(db_session, user.id) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_submit_inactive_task_is_not_found(db_session, settings):
    user = await make_profile(db_session)
    task = await make_task(db_session, is_active=False)

    with pytest.raises(NotFoundError):
        await submit_task(
            db_session, user_id=user.id, task_id=task.id, proof=None, settings=settings
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_daily_limit_is_enforced(db_session, settings):
    user = await make_profile(db_session)
    task = await make_task(db_session, daily_limit=2)

    for _ in range(2):
        await submit_task(
            db_session, user_id=user.id, task_id=task.id, proof=None, settings=settings
        )

    with pytest.raises(ConflictError) as exc_info:
        await submit_task(
            db_session, user_id=user.id, task_id=task.id, proof=None, settings=settings
        )
    assert exc_info.value.detail == "Daily limit reached for this task"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_rejected_and_old_submissions_do_not_count(db_session, settings):
    user = await make_profile(db_session)
    task = await make_task(db_session)
    db_session.add_all(
        [
            TaskSubmission(
                user_id=user.id, task_id=task.id, status=SubmissionStatus.REJECTED
            ),
            TaskSubmission(
                user_id=user.id,
                task_id=task.id,
                status=SubmissionStatus.APPROVED,
                created_at=utc_now() - timedelta(days=2),
            ),
        ]
    )
    await db_session.commit()

    assert await count_submissions_today(
        db_session, user_id=user.id, task_id=task.id, settings=settings
    ) == 0
    await submit_task(
        db_session, user_id=user.id, task_id=task.id, proof=None, settings=settings
    )


# ---------------------------------------------------------------------------
# approve / reject
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_approve_credits_reward_once(db_session, settings):
    admin = await make_profile(db_session, is_admin=True)
    user = await make_profile(db_session, balance_units=100)
    task = await make_task(db_session, reward_kes=20)
    submission = await submit_task(
        db_session, user_id=user.id, task_id=task.id, proof=None, settings=settings
    )

    await approve_submission(db_session, submission.id, reviewer_id=admin.id)

    assert await _status(db_session, submission.id) == SubmissionStatus.APPROVED
    assert await get_balance_units(db_session, user.id) == 2100
    reward = await db_session.scalar(
        select(Transaction).where(
            Transaction.reference == task_reward_reference(submission.id)
        )
    )
    assert reward.purpose == TransactionPurpose.TASK_REWARD
    assert reward.amount_units == 2000

    with pytest.raises(ConflictError):
        await approve_submission(db_session, submission.id, reviewer_id=admin.id)
    assert await get_balance_units(db_session, user.id) == 2100
    assert await db_session.scalar(
        select(func.count(Transaction.id)).where(
            Transaction.purpose == TransactionPurpose.TASK_REWARD
        )
    ) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reject_leaves_balance_alone(db_session, settings):
    admin = await make_profile(db_session, is_admin=True)
    user = await make_profile(db_session)
    task = await make_task(db_session)
    submission = await submit_task(
        db_session, user_id=user.id, task_id=task.id, proof=None, settings=settings
    )

    await reject_submission(db_session, submission.id, reviewer_id=admin.id)

    assert await _status(db_session, submission.id) == SubmissionStatus.REJECTED
    assert await get_balance_units(db_session, user.id) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_approved_submission_cannot_be_rejected(db_session, settings):
    admin = await make_profile(db_session, is_admin=True)
    user = await make_profile(db_session)
    task = await make_task(db_session)
    submission = await submit_task(
        db_session, user_id=user.id, task_id=task.id, proof=None, settings=settings
    )
    await approve_submission(db_session, submission.id, reviewer_id=admin.id)

    with pytest.raises(ConflictError):
        await reject_submission(db_session, submission.id, reviewer_id=admin.id)
    assert await _status(db_session, submission.id) == SubmissionStatus.APPROVED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_rejected_submission_can_still_be_approved(db_session, settings):
    admin = await make_profile(db_session, is_admin=True)
    user = await make_profile(db_session)
    task = await make_task(db_session, reward_kes=10)
    submission = await submit_task(
        db_session, user_id=user.id, task_id=task.id, proof=None, settings=settings
    )
    await reject_submission(db_session, submission.id, reviewer_id=admin.id)

    await approve_submission(db_session, submission.id, reviewer_id=admin.id)

    assert await get_balance_units(db_session, user.id) == 1000


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_submission_is_not_found(db_session):
    with pytest.raises(NotFoundError):
        await approve_submission(db_session, uuid.uuid4(), reviewer_id="admin")

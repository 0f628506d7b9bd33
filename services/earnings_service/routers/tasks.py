"""Member-facing task endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from libs.common.config import Settings, get_settings
from libs.db.session import get_async_db
from services.earnings_service.dependencies import get_current_profile
from services.earnings_service.models import (
    Profile,
    SubmissionStatus,
    TaskDefinition,
    TaskSubmission,
)
from services.earnings_service.schemas import (
    AvailableTaskResponse,
    SuccessResponse,
    TaskCompleteRequest,
    TaskResponse,
)
from services.earnings_service.services.task_rewards import submit_task
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("/available", response_model=list[AvailableTaskResponse])
async def available_tasks(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
):
    """Active tasks, each annotated with the caller's latest submission status."""
    tasks = (
        await db.execute(
            select(TaskDefinition)
            .where(TaskDefinition.is_active.is_(True))
            .order_by(TaskDefinition.created_at.desc())
        )
    ).scalars().all()

    rows = await db.execute(
        select(TaskSubmission.task_id, TaskSubmission.status)
        .where(TaskSubmission.user_id == profile.id)
        .order_by(TaskSubmission.created_at)
    )
    latest_status = {task_id: sub_status for task_id, sub_status in rows.all()}

    result = []
    for task in tasks:
        sub_status = latest_status.get(task.id)
        result.append(
            AvailableTaskResponse(
                **TaskResponse.model_validate(task).model_dump(),
                reward=task.reward_kes,
                action_url=task.url,
                status=sub_status,
                completed=sub_status
                in (SubmissionStatus.APPROVED, SubmissionStatus.PENDING),
            )
        )
    return result


@router.post("/{task_id}/complete", response_model=SuccessResponse)
async def complete_task(
    task_id: uuid.UUID,
    payload: Optional[TaskCompleteRequest] = None,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_async_db),
    settings: Settings = Depends(get_settings),
):
    """Submit proof for review. Earnings are credited on approval."""
    await submit_task(
        db,
        user_id=profile.id,
        task_id=task_id,
        proof=payload.proof if payload else None,
        settings=settings,
    )
    return SuccessResponse(
        message="Task submitted for review. Earnings will be credited after approval."
    )

"""Admin task catalog and submission review."""

import uuid

from fastapi import APIRouter, Depends
from libs.common.errors import NotFoundError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.earnings_service.dependencies import require_admin
from services.earnings_service.models import Profile, TaskDefinition, TaskSubmission
from services.earnings_service.schemas import (
    AdminTaskSubmissionResponse,
    SuccessResponse,
    TaskCreate,
    TaskCreatedResponse,
    TaskResponse,
    TaskSubmissionResponse,
    TaskUpdate,
)
from services.earnings_service.services.task_rewards import (
    approve_submission,
    reject_submission,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["admin-tasks"])


async def _get_task(db: AsyncSession, task_id: uuid.UUID) -> TaskDefinition:
    task = await db.get(TaskDefinition, task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


@router.get("/tasks", response_model=list[TaskResponse])
async def admin_list_tasks(
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    tasks = await db.execute(
        select(TaskDefinition).order_by(TaskDefinition.created_at.desc())
    )
    return tasks.scalars().all()


@router.post("/tasks", response_model=TaskCreatedResponse)
async def admin_create_task(
    payload: TaskCreate,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    task = TaskDefinition(**payload.model_dump(), is_active=True)
    db.add(task)
    await db.commit()
    await db.refresh(task)
    logger.info("Task %s created by %s", task.id, admin.id)
    return TaskCreatedResponse(task=TaskResponse.model_validate(task))


@router.put("/tasks/{task_id}", response_model=SuccessResponse)
async def admin_update_task(
    task_id: uuid.UUID,
    payload: TaskUpdate,
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    task = await _get_task(db, task_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(task, field, value)
    await db.commit()
    return SuccessResponse()


@router.delete("/tasks/{task_id}", response_model=SuccessResponse)
async def admin_delete_task(
    task_id: uuid.UUID,
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    task = await _get_task(db, task_id)
    await db.delete(task)
    await db.commit()
    return SuccessResponse()


@router.get("/task-submissions", response_model=list[AdminTaskSubmissionResponse])
async def admin_list_submissions(
    _: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """All submissions, newest first, with submitter email and task details."""
    rows = await db.execute(
        select(TaskSubmission, Profile.email)
        .outerjoin(Profile, Profile.id == TaskSubmission.user_id)
        .order_by(TaskSubmission.created_at.desc())
    )
    return [
        AdminTaskSubmissionResponse(
            **TaskSubmissionResponse.model_validate(sub).model_dump(),
            email=email,
            task_title=sub.task.title if sub.task else None,
            reward_kes=sub.task.reward_kes if sub.task else None,
        )
        for sub, email in rows.unique().all()
    ]


@router.post("/task-submissions/{submission_id}/approve", response_model=SuccessResponse)
async def admin_approve_submission(
    submission_id: uuid.UUID,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await approve_submission(db, submission_id, reviewer_id=admin.id)
    return SuccessResponse(message="Task approved and wallet credited")


@router.post("/task-submissions/{submission_id}/reject", response_model=SuccessResponse)
async def admin_reject_submission(
    submission_id: uuid.UUID,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await reject_submission(db, submission_id, reviewer_id=admin.id)
    return SuccessResponse(message="Task rejected")

"""Task catalog and submission schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.earnings_service.models.enums import SubmissionStatus


class TaskResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    reward_kes: int
    task_type: str
    url: Optional[str] = None
    daily_limit: int
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AvailableTaskResponse(TaskResponse):
    reward: int
    action_url: Optional[str] = None
    status: Optional[SubmissionStatus] = None
    # Pending counts as completed so the UI does not offer a resubmit.
    completed: bool = False


class TaskCompleteRequest(BaseModel):
    proof: Optional[str] = None


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    reward_kes: int = Field(..., gt=0)
    task_type: str = "general"
    url: Optional[str] = None
    daily_limit: int = Field(default=1, ge=1)


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    reward_kes: Optional[int] = Field(default=None, gt=0)
    task_type: Optional[str] = None
    url: Optional[str] = None
    daily_limit: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None


class TaskCreatedResponse(BaseModel):
    success: bool = True
    task: TaskResponse


class TaskSubmissionResponse(BaseModel):
    id: uuid.UUID
    user_id: str
    task_id: uuid.UUID
    status: SubmissionStatus
    proof_data: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdminTaskSubmissionResponse(TaskSubmissionResponse):
    email: Optional[str] = None
    task_title: Optional[str] = None
    reward_kes: Optional[int] = None

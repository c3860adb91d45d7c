"""Pydantic schemas for tasks."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from taskhub.db.enums import PRIORITY_MAX, PRIORITY_MIN, TaskStatus


class TaskUpdate(BaseModel):
    """Request to update a task (partial)."""
    title: str | None = Field(None, min_length=1, max_length=255)
    status: TaskStatus | None = None
    priority_bucket: int | None = Field(None, ge=PRIORITY_MIN, le=PRIORITY_MAX)
    description: str | None = None
    notes: str | None = None
    deadline: datetime | None = None
    project_id: int | None = None
    recurrence_interval: int | None = Field(None, ge=0)
    recurrence_date: date | None = None
    is_archived: bool | None = None
    logged_time: int | None = Field(None, ge=0)


class UserIdentity(BaseModel):
    """Minimal identity exposed for rendering names."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str
    last_name: str

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

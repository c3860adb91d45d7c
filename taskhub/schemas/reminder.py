"""Pydantic schemas for the deadline reminder sweep and daily digest."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from taskhub.db.enums import ReminderBucket


class _CamelModel(BaseModel):
    """Serialises with camelCase keys (`emailsSent`, `taskId`)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EmailSentRecord(_CamelModel):
    task_id: int
    task_title: str
    assignee_id: UUID
    assignee_email: str
    reminder_type: ReminderBucket
    sent_at: datetime


class EmailFailureRecord(_CamelModel):
    task_id: int
    assignee_id: UUID
    reminder_type: ReminderBucket
    error: str


class ReminderSweepResult(_CamelModel):
    """
    Outcome of one reminder run.

    success reflects whether the batch completed, not whether every send did.
    """
    success: bool = True
    sent: int = 0
    emails_sent: list[EmailSentRecord] = Field(default_factory=list)
    failures: list[EmailFailureRecord] = Field(default_factory=list)


class DigestSentRecord(_CamelModel):
    user_id: UUID
    user_email: str
    sent_at: datetime


class DigestFailureRecord(_CamelModel):
    user_id: UUID
    error: str


class DailyDigestResult(_CamelModel):
    """Outcome of one daily digest run; `sent` counts accepted digests."""
    success: bool = True
    sent: int = 0
    digests_sent: list[DigestSentRecord] = Field(default_factory=list)
    failures: list[DigestFailureRecord] = Field(default_factory=list)

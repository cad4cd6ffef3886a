"""Time entry domain models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from utils.timezone import to_utc


class TimerStart(BaseModel):
    """Start a timer on a task."""

    task_id: UUID
    notes: str | None = Field(None, max_length=2000)
    billable: bool = True


class TimerStop(BaseModel):
    """Stop a running timer."""

    time_entry_id: UUID


class TimeEntryCreate(BaseModel):
    """Manually logged interval (no timer)."""

    task_id: UUID
    started_at: datetime
    ended_at: datetime
    notes: str | None = Field(None, max_length=2000)
    billable: bool = True

    @field_validator("started_at", "ended_at")
    @classmethod
    def normalize_to_utc(cls, value: datetime) -> datetime:
        return to_utc(value)

    @model_validator(mode="after")
    def check_interval(self) -> "TimeEntryCreate":
        """End time must come after start time."""
        if self.ended_at <= self.started_at:
            raise ValueError("End time must be after start time")
        return self


class TimeEntryUpdate(BaseModel):
    """Data that can be updated on a time entry. All fields optional."""

    started_at: datetime | None = None
    ended_at: datetime | None = None
    notes: str | None = Field(None, max_length=2000)
    billable: bool | None = None

    @field_validator("started_at", "ended_at")
    @classmethod
    def normalize_to_utc(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None

    @field_validator("started_at", "billable")
    @classmethod
    def reject_null(cls, value):
        """May be omitted, but not cleared. Only ended_at accepts null (reopens the timer)."""
        if value is None:
            raise ValueError("Field may be omitted but not set to null")
        return value


class TimeEntryFilter(BaseModel):
    """Query filters for listing time entries."""

    task_id: UUID | None = None
    project_id: UUID | None = None
    user_id: UUID | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    billable: bool | None = None


class TimeEntry(BaseModel):
    """Full time entry entity as stored."""

    id: UUID
    task_id: UUID
    user_id: UUID
    started_at: datetime
    ended_at: datetime | None
    minutes: int | None
    billable: bool
    note: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def is_running(self) -> bool:
        """Whether the timer is still running."""
        return self.ended_at is None

    @property
    def hours(self) -> float:
        """Logged hours rounded to two places for display."""
        return round((self.minutes or 0) / 60, 2)


class TimeEntryList(BaseModel):
    """Filtered time entries with minute and hour totals."""

    entries: list[TimeEntry]
    total_minutes: int
    billable_minutes: int

    @property
    def total_hours(self) -> float:
        return round(self.total_minutes / 60, 2)

    @property
    def billable_hours(self) -> float:
        return round(self.billable_minutes / 60, 2)

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from dayflow.utils.time import ensure_utc


class StrictModel(BaseModel):
    """Base class enforcing consistent validation rules."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


def _check_end_after_start(value: datetime, info: ValidationInfo) -> datetime:
    start = info.data.get("start") if isinstance(info.data, dict) else None
    if isinstance(start, datetime) and ensure_utc(value) <= ensure_utc(start):
        raise ValueError("end must be after start")
    return value


class EventDraft(StrictModel):
    """Event fields supplied by the client on save."""

    title: str = Field(min_length=1)
    start: datetime
    end: datetime
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title is required")
        return value

    @field_validator("end")
    @classmethod
    def _end_after_start(cls, value: datetime, info: ValidationInfo) -> datetime:
        return _check_end_after_start(value, info)


class CalendarEvent(EventDraft):
    id: str
    user_id: Optional[str] = None


# --------------------------------------------------------------- oracle schemas
class ScheduleEntry(StrictModel):
    """Compact view of an existing event sent to the oracle."""

    title: str
    start: str
    end: str


class SmartScheduleInput(StrictModel):
    schedule: str = Field(
        description="The user existing schedule in JSON format."
    )
    event_duration: int = Field(
        alias="eventDuration",
        gt=0,
        description="The duration of the new event in minutes.",
    )
    event_description: str = Field(
        alias="eventDescription",
        description="The description of the event to schedule.",
    )


class TimeSlotSuggestion(StrictModel):
    start_time: str = Field(
        alias="startTime",
        description="Suggested start time for the event (ISO format).",
    )
    end_time: str = Field(
        alias="endTime",
        description="Suggested end time for the event (ISO format).",
    )
    reason: str = Field(description="Reason why this time slot is optimal.")


class SmartScheduleOutput(StrictModel):
    """Structured oracle response with suggested slots."""

    suggested_times: list[TimeSlotSuggestion] = Field(
        alias="suggestedTimes",
        description="A list of suggested time slots for the new event.",
    )


class SuggestionError(StrictModel):
    error: str = Field(min_length=1)


# ------------------------------------------------------------------ HTTP layer
class SuggestRequest(StrictModel):
    title: str = ""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    description: Optional[str] = None


class SuggestResponse(StrictModel):
    suggestions: list[TimeSlotSuggestion] = Field(default_factory=list)
    notice: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)


class CalendarDay(StrictModel):
    date: str
    in_current_period: bool = True
    events: list[CalendarEvent] = Field(default_factory=list)


class CalendarViewResponse(StrictModel):
    view: Literal["month", "week", "day"]
    current: str
    range_start: str
    range_end: str
    prev: str
    next: str
    days: list[CalendarDay]

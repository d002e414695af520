from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Sequence

from dayflow.models import (
    CalendarEvent,
    ScheduleEntry,
    SmartScheduleInput,
    SuggestionError,
    TimeSlotSuggestion,
)
from dayflow.services.llm_client import ScheduleOracle, build_oracle, dump_input
from dayflow.utils.time import ensure_utc, parse_iso, to_iso_instant

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Failed to get smart suggestions. Please try again."
EMPTY_NOTICE = (
    "AI could not find any optimal time slots. Try adjusting the duration."
)


class SuggestionValidationError(ValueError):
    """Input rejected before any oracle call is made."""

    def __init__(self, title: str, detail: str) -> None:
        super().__init__(f"{title}: {detail}")
        self.title = title
        self.detail = detail


def serialize_schedule(events: Iterable[CalendarEvent]) -> str:
    entries = [
        ScheduleEntry(
            title=event.title,
            start=to_iso_instant(event.start),
            end=to_iso_instant(event.end),
        ).model_dump()
        for event in events
    ]
    return json.dumps(entries, ensure_ascii=False, separators=(",", ":"))


def build_schedule_input(
    events: Iterable[CalendarEvent], duration: int, description: str
) -> SmartScheduleInput:
    return SmartScheduleInput(
        schedule=serialize_schedule(events),
        event_duration=duration,
        event_description=description,
    )


async def get_smart_suggestions(
    events: Sequence[CalendarEvent],
    duration: int,
    description: str,
    *,
    oracle: ScheduleOracle,
) -> list[TimeSlotSuggestion] | SuggestionError:
    """Ask the oracle for slots; every failure comes back as ``SuggestionError``."""

    try:
        payload = build_schedule_input(events, duration, description)
        logger.debug("Smart schedule request: %s", dump_input(payload))
        result = await oracle.suggest_optimal_time(payload)
        return list(result.suggested_times)
    except Exception:
        logger.exception("Error getting smart suggestions")
        return SuggestionError(error=FAILURE_MESSAGE)


def duration_in_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, truncated toward zero."""
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    return int(seconds / 60)


def check_suggestion(suggestion: TimeSlotSuggestion, duration: int) -> str | None:
    """Describe how a slot breaks the requested shape, or ``None`` if it fits."""

    try:
        start = parse_iso(suggestion.start_time)
        end = parse_iso(suggestion.end_time)
    except ValueError:
        return (
            f"Suggested slot {suggestion.start_time} - {suggestion.end_time} "
            "has an unreadable time"
        )
    if end <= start:
        return (
            f"Suggested slot {suggestion.start_time} - {suggestion.end_time} "
            "ends before it starts"
        )
    actual = duration_in_minutes(start, end)
    if actual != duration:
        return (
            f"Suggested slot {suggestion.start_time} - {suggestion.end_time} "
            f"lasts {actual} minutes instead of {duration}"
        )
    return None


@dataclass
class SuggestionOutcome:
    suggestions: list[TimeSlotSuggestion] = field(default_factory=list)
    error: str | None = None
    notice: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


class SmartScheduler:
    """Validates a draft event and turns oracle results into an outcome."""

    def __init__(self, *, oracle: ScheduleOracle | None = None) -> None:
        self.oracle = oracle or build_oracle()

    def validate(
        self,
        title: str | None,
        start: datetime | None,
        end: datetime | None,
    ) -> int:
        if not title or not title.strip():
            raise SuggestionValidationError(
                "Title Required",
                "Please enter an event title to get suggestions.",
            )
        if start is None or end is None:
            raise SuggestionValidationError(
                "Dates Required",
                "Please set a start and end date for the event to determine its duration.",
            )
        duration = duration_in_minutes(start, end)
        if duration <= 0:
            raise SuggestionValidationError(
                "Invalid Duration", "End time must be after start time."
            )
        return duration

    async def suggest(
        self,
        events: Sequence[CalendarEvent],
        title: str | None,
        start: datetime | None,
        end: datetime | None,
        description: str | None = None,
    ) -> SuggestionOutcome:
        duration = self.validate(title, start, end)
        text = title.strip()
        if description and description.strip():
            text = f"{text}. {description.strip()}"

        result = await get_smart_suggestions(
            events, duration, text, oracle=self.oracle
        )
        if isinstance(result, SuggestionError):
            return SuggestionOutcome(error=result.error)

        warnings = [
            problem
            for problem in (check_suggestion(item, duration) for item in result)
            if problem is not None
        ]
        for problem in warnings:
            logger.warning("Oracle contract violation: %s", problem)

        outcome = SuggestionOutcome(suggestions=result, warnings=warnings)
        if not result:
            outcome.notice = EMPTY_NOTICE
        return outcome

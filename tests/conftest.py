from __future__ import annotations

from datetime import datetime

import pytest

from dayflow.models import CalendarEvent, SmartScheduleInput, SmartScheduleOutput


class StubOracle:
    """Records every request and replays a fixed payload or error."""

    name = "stub"

    def __init__(
        self,
        payload: SmartScheduleOutput | None = None,
        error: Exception | None = None,
    ) -> None:
        self.payload = payload or SmartScheduleOutput(suggested_times=[])
        self.error = error
        self.calls: list[SmartScheduleInput] = []

    async def suggest_optimal_time(
        self, payload: SmartScheduleInput
    ) -> SmartScheduleOutput:
        self.calls.append(payload)
        if self.error is not None:
            raise self.error
        return self.payload


def make_event(
    title: str = "Team Meeting",
    start: str = "2024-01-01T10:00:00Z",
    end: str = "2024-01-01T11:00:00Z",
    **extra,
) -> CalendarEvent:
    return CalendarEvent(
        id=extra.pop("id", title.lower().replace(" ", "-")),
        title=title,
        start=datetime.fromisoformat(start.replace("Z", "+00:00")),
        end=datetime.fromisoformat(end.replace("Z", "+00:00")),
        **extra,
    )


@pytest.fixture
def team_meeting() -> CalendarEvent:
    return make_event()


@pytest.fixture
def three_slots() -> SmartScheduleOutput:
    return SmartScheduleOutput.model_validate(
        {
            "suggestedTimes": [
                {
                    "startTime": "2024-01-01T09:00:00Z",
                    "endTime": "2024-01-01T09:30:00Z",
                    "reason": "Before the team meeting",
                },
                {
                    "startTime": "2024-01-01T11:30:00Z",
                    "endTime": "2024-01-01T12:00:00Z",
                    "reason": "Right after the meeting wraps up",
                },
                {
                    "startTime": "2024-01-01T15:00:00Z",
                    "endTime": "2024-01-01T15:30:00Z",
                    "reason": "Afternoon is free",
                },
            ]
        }
    )

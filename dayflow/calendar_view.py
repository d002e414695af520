from __future__ import annotations

import calendar
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable, Literal

from dayflow.models import CalendarDay, CalendarEvent, CalendarViewResponse
from dayflow.utils.time import ensure_utc, get_tz

ViewName = Literal["month", "week", "day"]


def start_of_week(day: date) -> date:
    # weeks run Sunday..Saturday
    return day - timedelta(days=(day.weekday() + 1) % 7)


def add_months(day: date, months: int) -> date:
    """Shift by whole months, clamping to the last day of the target month."""
    index = day.month - 1 + months
    year, month = day.year + index // 12, index % 12 + 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def visible_range(view: ViewName, current: date) -> tuple[date, date]:
    """First and last day (inclusive) shown by a layout."""

    if view == "month":
        first = current.replace(day=1)
        last = first.replace(day=calendar.monthrange(first.year, first.month)[1])
        return start_of_week(first), start_of_week(last) + timedelta(days=6)
    if view == "week":
        first = start_of_week(current)
        return first, first + timedelta(days=6)
    if view == "day":
        return current, current
    raise ValueError(f"unknown view: {view}")


def shift(view: ViewName, current: date, step: int) -> date:
    if view == "month":
        return add_months(current, step)
    if view == "week":
        return current + timedelta(weeks=step)
    if view == "day":
        return current + timedelta(days=step)
    raise ValueError(f"unknown view: {view}")


def _local_day(value: datetime, tz_name: str) -> date:
    return ensure_utc(value).astimezone(get_tz(tz_name)).date()


def build_view(
    view: ViewName,
    current: date,
    events: Iterable[CalendarEvent],
    tz_name: str = "UTC",
) -> CalendarViewResponse:
    """Lay out events by the local day on which they start."""

    first, last = visible_range(view, current)
    by_day: dict[date, list[CalendarEvent]] = defaultdict(list)
    for event in events:
        by_day[_local_day(event.start, tz_name)].append(event)

    days: list[CalendarDay] = []
    cursor = first
    while cursor <= last:
        in_period = cursor.month == current.month if view == "month" else True
        days.append(
            CalendarDay(
                date=cursor.isoformat(),
                in_current_period=in_period,
                events=sorted(by_day.get(cursor, []), key=lambda ev: ensure_utc(ev.start)),
            )
        )
        cursor += timedelta(days=1)

    return CalendarViewResponse(
        view=view,
        current=current.isoformat(),
        range_start=first.isoformat(),
        range_end=last.isoformat(),
        prev=shift(view, current, -1).isoformat(),
        next=shift(view, current, 1).isoformat(),
        days=days,
    )

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Literal, Optional

from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.responses import JSONResponse

from dayflow.auth import AuthenticatedUser, get_current_user
from dayflow.calendar_view import build_view, visible_range
from dayflow.config import settings
from dayflow.deps import get_scheduler, get_store
from dayflow.logging_conf import setup_logging
from dayflow.models import (
    CalendarEvent,
    CalendarViewResponse,
    EventDraft,
    SuggestionError,
    SuggestRequest,
    SuggestResponse,
)
from dayflow.services.event_store import EventNotFoundError, EventStore
from dayflow.suggestions import SmartScheduler, SuggestionValidationError
from dayflow.utils.time import get_tz, now_in_tz

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="DayFlow Calendar", version="0.1.0")


@app.exception_handler(EventNotFoundError)
async def _event_not_found(request: Request, exc: EventNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": f"Event {exc} not found"},
    )


@app.exception_handler(SuggestionValidationError)
async def _suggestion_invalid(
    request: Request, exc: SuggestionValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"title": exc.title, "detail": exc.detail},
    )


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


# ------------------------------------------------------------------ events CRUD
@app.get("/events", response_model=list[CalendarEvent])
def list_events(
    user: AuthenticatedUser = Depends(get_current_user),
    store: EventStore = Depends(get_store),
):
    return store.list_for_user(user.uid)


@app.post("/events", response_model=CalendarEvent, status_code=status.HTTP_201_CREATED)
def create_event(
    draft: EventDraft,
    user: AuthenticatedUser = Depends(get_current_user),
    store: EventStore = Depends(get_store),
):
    return store.create(user.uid, draft)


@app.get("/events/{event_id}", response_model=CalendarEvent)
def get_event(
    event_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    store: EventStore = Depends(get_store),
):
    return store.get(user.uid, event_id)


@app.put("/events/{event_id}", response_model=CalendarEvent)
def update_event(
    event_id: str,
    draft: EventDraft,
    user: AuthenticatedUser = Depends(get_current_user),
    store: EventStore = Depends(get_store),
):
    return store.update(user.uid, event_id, draft)


@app.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    store: EventStore = Depends(get_store),
) -> Response:
    store.delete(user.uid, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --------------------------------------------------------------------- layouts
@app.get("/calendar", response_model=CalendarViewResponse)
def calendar_layout(
    view: Literal["month", "week", "day"] = "month",
    current: Optional[date] = Query(default=None, alias="date"),
    user: AuthenticatedUser = Depends(get_current_user),
    store: EventStore = Depends(get_store),
):
    tz = get_tz(settings.project_timezone)
    current = current or now_in_tz(settings.project_timezone).date()
    first, last = visible_range(view, current)
    window_start = datetime.combine(first, time.min, tzinfo=tz)
    window_end = datetime.combine(last + timedelta(days=1), time.min, tzinfo=tz)
    events = store.list_between(user.uid, window_start, window_end)
    return build_view(view, current, events, settings.project_timezone)


# ----------------------------------------------------------------- suggestions
@app.post(
    "/events/suggest",
    response_model=SuggestResponse,
    responses={502: {"model": SuggestionError}, 422: {"description": "Invalid draft"}},
)
async def events_suggest(
    req: SuggestRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: EventStore = Depends(get_store),
    scheduler: SmartScheduler = Depends(get_scheduler),
):
    events = store.list_for_user(user.uid)
    outcome = await scheduler.suggest(
        events, req.title, req.start, req.end, req.description
    )
    if not outcome.ok:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=SuggestionError(error=outcome.error).model_dump(),
        )
    return SuggestResponse(
        suggestions=outcome.suggestions,
        notice=outcome.notice,
        warnings=outcome.warnings,
    )

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from dayflow.models import CalendarEvent, EventDraft
from dayflow.utils.time import ensure_utc

logger = logging.getLogger(__name__)


class EventNotFoundError(LookupError):
    """Raised when an event id is unknown for the requesting user."""


def _ensure_parent(path: Path) -> None:
    if not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)


def _timestamp(value: datetime) -> float:
    return ensure_utc(value).timestamp()


class EventStore:
    """SQLite persistence for user-owned calendar events."""

    def __init__(self, db_path: str) -> None:
        self.path = Path(db_path)
        if db_path != ":memory:":
            _ensure_parent(self.path)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._ensure_schema()

    # ------------------------------------------------------------------ writes
    def create(self, user_id: str, draft: EventDraft) -> CalendarEvent:
        event = CalendarEvent(
            id=uuid4().hex, user_id=user_id, **draft.model_dump()
        )
        self._persist(event)
        logger.info("Created event %s for user %s", event.id, user_id)
        return event

    def update(self, user_id: str, event_id: str, draft: EventDraft) -> CalendarEvent:
        self.get(user_id, event_id)
        event = CalendarEvent(id=event_id, user_id=user_id, **draft.model_dump())
        self._persist(event)
        logger.info("Updated event %s for user %s", event_id, user_id)
        return event

    def delete(self, user_id: str, event_id: str) -> None:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "DELETE FROM events WHERE event_id = ? AND user_id = ?",
                (event_id, user_id),
            )
        if cur.rowcount == 0:
            raise EventNotFoundError(event_id)
        logger.info("Deleted event %s for user %s", event_id, user_id)

    # ------------------------------------------------------------------- reads
    def get(self, user_id: str, event_id: str) -> CalendarEvent:
        with self._lock:
            row = self._conn.execute(
                "SELECT payload_json FROM events WHERE event_id = ? AND user_id = ?",
                (event_id, user_id),
            ).fetchone()
        if row is None:
            raise EventNotFoundError(event_id)
        return self._load(row)

    def list_for_user(self, user_id: str) -> list[CalendarEvent]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT payload_json FROM events WHERE user_id = ? ORDER BY start_ts",
                (user_id,),
            ).fetchall()
        return [self._load(row) for row in rows]

    def list_between(
        self, user_id: str, time_min: datetime, time_max: datetime
    ) -> list[CalendarEvent]:
        """Events overlapping the half-open window ``[time_min, time_max)``."""

        with self._lock:
            rows = self._conn.execute(
                (
                    "SELECT payload_json FROM events "
                    "WHERE user_id = ? AND start_ts < ? AND end_ts > ? "
                    "ORDER BY start_ts"
                ),
                (user_id, _timestamp(time_max), _timestamp(time_min)),
            ).fetchall()
        return [self._load(row) for row in rows]

    # -------------------------------------------------------------------- utils
    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _ensure_schema(self) -> None:
        with self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS events (
                    event_id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    start_ts REAL NOT NULL,
                    end_ts REAL NOT NULL,
                    payload_json TEXT NOT NULL,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS ix_events_user_start "
                "ON events(user_id, start_ts)"
            )

    @staticmethod
    def _load(row: sqlite3.Row) -> CalendarEvent:
        payload: dict[str, Any] = json.loads(row["payload_json"])
        return CalendarEvent.model_validate(payload)

    def _persist(self, event: CalendarEvent) -> None:
        payload = event.model_dump(mode="json")
        with self._lock, self._conn:
            self._conn.execute(
                (
                    "INSERT INTO events(event_id, user_id, title, start_ts, end_ts, payload_json, updated_at) "
                    "VALUES(?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP) "
                    "ON CONFLICT(event_id) DO UPDATE SET "
                    "title=excluded.title, start_ts=excluded.start_ts, end_ts=excluded.end_ts, "
                    "payload_json=excluded.payload_json, updated_at=CURRENT_TIMESTAMP"
                ),
                (
                    event.id,
                    event.user_id,
                    event.title,
                    _timestamp(event.start),
                    _timestamp(event.end),
                    json.dumps(payload),
                ),
            )

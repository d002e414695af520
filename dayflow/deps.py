from dayflow.config import settings
from dayflow.services.event_store import EventStore
from dayflow.suggestions import SmartScheduler

_store: EventStore | None = None
_scheduler: SmartScheduler | None = None


def get_store() -> EventStore:
    global _store
    if _store is None:
        _store = EventStore(settings.sqlite_db_path)
    return _store


def get_scheduler() -> SmartScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = SmartScheduler()
    return _scheduler

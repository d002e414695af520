from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import StubOracle
from dayflow.auth import AuthError, Authenticator, get_authenticator
from dayflow.deps import get_scheduler, get_store
from dayflow.main import app
from dayflow.services.event_store import EventStore
from dayflow.suggestions import EMPTY_NOTICE, FAILURE_MESSAGE, SmartScheduler

TOKENS = {"token-alice": "alice", "token-bob": "bob"}


def _verify(token: str) -> dict:
    if token not in TOKENS:
        raise AuthError("unknown token")
    return {"sub": TOKENS[token]}


def _headers(user: str = "alice") -> dict[str, str]:
    return {"Authorization": f"Bearer token-{user}"}


def _event_body(title: str = "Team Meeting", start: str = "2024-01-01T10:00:00Z",
                end: str = "2024-01-01T11:00:00Z") -> dict:
    return {"title": title, "start": start, "end": end, "description": "Weekly sync-up"}


@pytest.fixture
def oracle() -> StubOracle:
    return StubOracle()


@pytest.fixture
def client(tmp_path, oracle):
    store = EventStore(str(tmp_path / "api.db"))
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_scheduler] = lambda: SmartScheduler(oracle=oracle)
    app.dependency_overrides[get_authenticator] = lambda: Authenticator(
        verifier=_verify, allow_anonymous=False
    )
    yield TestClient(app)
    app.dependency_overrides.clear()
    store.close()


def test_health(client) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_requests_need_a_token(client) -> None:
    assert client.get("/events").status_code == 401
    assert client.get("/events", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_event_crud_roundtrip(client) -> None:
    created = client.post("/events", json=_event_body(), headers=_headers())
    assert created.status_code == 201
    event = created.json()
    assert event["user_id"] == "alice"

    listing = client.get("/events", headers=_headers()).json()
    assert [item["id"] for item in listing] == [event["id"]]

    body = _event_body(title="Team Meeting (moved)", start="2024-01-01T13:00:00Z",
                       end="2024-01-01T14:00:00Z")
    updated = client.put(f"/events/{event['id']}", json=body, headers=_headers())
    assert updated.status_code == 200
    assert client.get(f"/events/{event['id']}", headers=_headers()).json()["title"] == (
        "Team Meeting (moved)"
    )

    deleted = client.delete(f"/events/{event['id']}", headers=_headers())
    assert deleted.status_code == 204
    assert client.get(f"/events/{event['id']}", headers=_headers()).status_code == 404


def test_invalid_event_is_rejected(client) -> None:
    body = _event_body(end="2024-01-01T10:00:00Z")
    assert client.post("/events", json=body, headers=_headers()).status_code == 422
    assert client.post("/events", json=_event_body(title=""), headers=_headers()).status_code == 422


def test_users_cannot_see_each_other(client) -> None:
    event = client.post("/events", json=_event_body(), headers=_headers("alice")).json()

    assert client.get("/events", headers=_headers("bob")).json() == []
    assert client.get(f"/events/{event['id']}", headers=_headers("bob")).status_code == 404
    assert client.delete(f"/events/{event['id']}", headers=_headers("bob")).status_code == 404


def test_calendar_month_layout(client) -> None:
    client.post("/events", json=_event_body(), headers=_headers())

    r = client.get("/calendar", params={"view": "month", "date": "2024-01-15"}, headers=_headers())

    assert r.status_code == 200
    layout = r.json()
    assert layout["range_start"] == "2023-12-31"
    assert layout["prev"] == "2023-12-15"
    assert layout["next"] == "2024-02-15"
    day = next(d for d in layout["days"] if d["date"] == "2024-01-01")
    assert [ev["title"] for ev in day["events"]] == ["Team Meeting"]


def test_suggest_returns_slots(client, oracle, three_slots) -> None:
    oracle.payload = three_slots
    client.post("/events", json=_event_body(), headers=_headers())

    r = client.post(
        "/events/suggest",
        json={"title": "Quick sync", "start": "2024-01-01T14:00:00Z", "end": "2024-01-01T14:30:00Z"},
        headers=_headers(),
    )

    assert r.status_code == 200
    body = r.json()
    assert body["suggestions"][0] == {
        "startTime": "2024-01-01T09:00:00Z",
        "endTime": "2024-01-01T09:30:00Z",
        "reason": "Before the team meeting",
    }
    assert len(body["suggestions"]) == 3
    assert body["notice"] is None
    assert body["warnings"] == []
    assert oracle.calls[0].event_duration == 30
    assert "Team Meeting" in oracle.calls[0].schedule


def test_suggest_empty_result_has_notice(client) -> None:
    r = client.post(
        "/events/suggest",
        json={"title": "Quick sync", "start": "2024-01-01T14:00:00Z", "end": "2024-01-01T14:30:00Z"},
        headers=_headers(),
    )
    assert r.status_code == 200
    assert r.json()["suggestions"] == []
    assert r.json()["notice"] == EMPTY_NOTICE


def test_suggest_validation_skips_oracle(client, oracle) -> None:
    r = client.post(
        "/events/suggest",
        json={"title": "Quick sync", "start": "2024-01-01T14:00:00Z", "end": "2024-01-01T14:00:00Z"},
        headers=_headers(),
    )
    assert r.status_code == 422
    assert r.json()["title"] == "Invalid Duration"
    assert oracle.calls == []


def test_suggest_oracle_failure_is_reported(client, oracle) -> None:
    oracle.error = RuntimeError("upstream exploded")

    r = client.post(
        "/events/suggest",
        json={"title": "Quick sync", "start": "2024-01-01T14:00:00Z", "end": "2024-01-01T14:30:00Z"},
        headers=_headers(),
    )

    assert r.status_code == 502
    assert r.json() == {"error": FAILURE_MESSAGE}


def test_event_with_mixed_offsets(client) -> None:
    ok = client.post("/events", json=_event_body(end="2024-01-01T11:00:00"), headers=_headers())
    assert ok.status_code == 201

    backwards = client.put(
        f"/events/{ok.json()['id']}",
        json=_event_body(end="2024-01-01T09:00:00"),
        headers=_headers(),
    )
    assert backwards.status_code == 422

"""API tests for the notifications service.

The repository is bound to an in-memory SQLite engine through a FastAPI
dependency override; the app's lifespan (which waits for Postgres) only runs
in the startup test, with the database calls replaced.
"""
import asyncio
import uuid
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from services.notifications import main
from services.notifications.main import app, get_repo
from services.notifications.repo import NotificationsRepo, init_db


@pytest.fixture
def repo():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(engine)
    repo = NotificationsRepo(engine)
    app.dependency_overrides[get_repo] = lambda: repo
    yield repo
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def client(repo):
    return TestClient(app)


@pytest.fixture
def admins(client):
    for uid in ("admin-1", "admin-2"):
        assert client.post("/recipients", json={"user_id": uid, "role": "admin"}).status_code == 200
    client.post("/recipients", json={"user_id": "cust-1", "role": "customer"})
    client.post("/tokens", json={"user_id": "admin-1", "token": "tok-a1"})
    return ["admin-1", "admin-2"]


ORDER_NOTE = {"title": "New Order", "body": "Order #1700000000000 - 145.00 EGP from Mona"}


def test_health(client):
    r = client.get("/health", headers={"X-Request-ID": "rid-1"})
    assert r.status_code == 200
    assert r.json() == {"ok": True}
    assert r.headers["X-Request-ID"] == "rid-1"


def test_send_to_admins_stores_one_notification_per_admin(client, admins):
    r = client.post("/send-to-admins", json=ORDER_NOTE)
    assert r.status_code == 200
    assert r.json() == {"success": True, "sent": 2, "devices": 1}

    inbox = client.get("/notifications", params={"user_id": "admin-2"}).json()
    assert [n["title"] for n in inbox] == ["New Order"]
    assert inbox[0]["read"] is False
    assert client.get("/notifications", params={"user_id": "cust-1"}).json() == []


def test_send_to_admins_without_admins_returns_400(client):
    r = client.post("/send-to-admins", json=ORDER_NOTE)
    assert r.status_code == 400
    assert r.json()["detail"] == "No admin users found"


def test_send_to_admins_is_idempotent(client, admins, repo):
    headers = {"Idempotency-Key": "notify-abc"}
    r1 = client.post("/send-to-admins", json=ORDER_NOTE, headers=headers)
    r2 = client.post("/send-to-admins", json=ORDER_NOTE, headers=headers)
    assert r1.status_code == r2.status_code == 200
    assert r2.json()["sent"] == 2
    assert len(repo.list_for_user("admin-1")) == 1


def test_send_to_admins_conflicting_key_returns_409(client, admins):
    headers = {"Idempotency-Key": "notify-conflict"}
    assert client.post("/send-to-admins", json=ORDER_NOTE, headers=headers).status_code == 200
    other = {**ORDER_NOTE, "body": "Order #2 - 10.00 EGP"}
    r = client.post("/send-to-admins", json=other, headers=headers)
    assert r.status_code == 409
    assert r.json()["detail"] == "IDEMPOTENCY_CONFLICT"


def test_send_limits_recipients(client, repo):
    user_ids = [f"user-{i}" for i in range(12)] + ["user-0"]
    r = client.post("/send", json={"user_ids": user_ids, **ORDER_NOTE})
    assert r.status_code == 200
    assert r.json()["sent"] == 10
    assert repo.list_for_user("user-9") and not repo.list_for_user("user-10")


def test_send_validates_payload(client):
    assert client.post("/send", json={"user_ids": [], **ORDER_NOTE}).status_code == 422
    assert client.post("/send", json={"user_ids": ["u"], "title": "", "body": "x"}).status_code == 422
    assert client.post("/recipients", json={"user_id": "u", "role": "root"}).status_code == 422


def test_mark_read(client, admins):
    client.post("/send-to-admins", json=ORDER_NOTE)
    nid = client.get("/notifications", params={"user_id": "admin-1"}).json()[0]["id"]

    assert client.post(f"/notifications/{nid}/read").status_code == 200
    assert client.get("/notifications", params={"user_id": "admin-1"}).json()[0]["read"] is True
    assert client.post(f"/notifications/{uuid.uuid4()}/read").status_code == 404


def test_token_moves_between_users(client, repo):
    client.post("/tokens", json={"user_id": "a", "token": "shared"})
    client.post("/tokens", json={"user_id": "b", "token": "shared"})
    assert repo.device_count(["a"]) == 0
    assert repo.device_count(["b"]) == 1


def test_recipient_role_can_change(client, repo):
    client.post("/recipients", json={"user_id": "u1", "role": "customer"})
    client.post("/recipients", json={"user_id": "u1", "role": "admin"})
    assert repo.admin_ids() == ["u1"]


def test_startup_waits_for_database_without_blocking(monkeypatch, repo):
    attempts = {"n": 0}
    slept = []

    def flaky_ping(engine):
        attempts["n"] += 1
        if attempts["n"] < 3:
            raise ConnectionError("database starting")

    async def fake_sleep(secs):
        slept.append(secs)

    monkeypatch.setattr(main, "ping", flaky_ping)
    monkeypatch.setattr(main, "init_db", lambda engine: None)
    monkeypatch.setattr(main, "asyncio", SimpleNamespace(sleep=fake_sleep, to_thread=asyncio.to_thread))

    with TestClient(app) as c:
        assert c.get("/health").status_code == 200
    assert attempts["n"] == 3
    assert slept == [main.DB_RETRY_INTERVAL_SECS] * 2

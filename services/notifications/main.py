"""Notifications service API built with FastAPI.

This service receives admin notifications from the storefront (for
example "New Order" after a checkout), stores them in each recipient's
inbox and exposes the inbox to the admin screens. Validation is performed
with Pydantic models, while persistence is delegated to the
SQLAlchemy-backed ``NotificationsRepo``.

``/send-to-admins`` accepts an optional ``Idempotency-Key`` header: a
retry with the same key and payload stores nothing new and returns the
original count; the same key with a different payload is rejected with
HTTP 409.
"""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Annotated, Literal, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from pydantic import BaseModel, Field
from pythonjsonlogger import jsonlogger

from .repo import IdempotencyConflict, NotificationsRepo, canonical_hash, init_db, make_engine, ping

# Firestore "in" queries take at most 10 values; /send keeps that limit
MAX_RECIPIENTS_PER_SEND = 10
DB_STARTUP_TIMEOUT_SECS = 30
DB_RETRY_INTERVAL_SECS = 1

logger = logging.getLogger("notifications")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(logging.INFO)

engine = make_engine()
_repo = NotificationsRepo(engine)


def get_repo() -> NotificationsRepo:
    return _repo


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Bounded wait until the database accepts connections, off the event loop
    deadline = time.monotonic() + DB_STARTUP_TIMEOUT_SECS
    while True:
        try:
            await asyncio.to_thread(ping, engine)
            break
        except Exception:
            if time.monotonic() > deadline:
                raise
            await asyncio.sleep(DB_RETRY_INTERVAL_SECS)
    await asyncio.to_thread(init_db, engine)
    logger.info("notifications service ready", extra={"request_id": "-"})
    yield
    engine.dispose()


app = FastAPI(title="Notifications Service", lifespan=lifespan)

Repo = Annotated[NotificationsRepo, Depends(get_repo)]


class RecipientIn(BaseModel):
    user_id: str = Field(min_length=1, max_length=64)
    role: Literal["admin", "customer", "delivery"] = "customer"


class TokenIn(BaseModel):
    user_id: str = Field(min_length=1, max_length=64)
    token: str = Field(min_length=1, max_length=512)


class NotificationPayload(BaseModel):
    """Content of a notification.

    Attributes:
        title: Short title, e.g. "New Order".
        body: Notification text.
        icon: Optional icon URL for web push.
        badge: Optional badge URL for web push.
    """

    title: str = Field(min_length=1, max_length=200)
    body: str = Field(min_length=1, max_length=2000)
    icon: Optional[str] = None
    badge: Optional[str] = None


class SendRequest(NotificationPayload):
    user_ids: list[str] = Field(min_length=1)


class SendResponse(BaseModel):
    """Result of a send.

    Attributes:
        success: Always True when the request was accepted.
        sent: Number of inbox entries stored.
        devices: Number of registered devices among the recipients.
    """

    success: bool = True
    sent: int
    devices: int = 0


class NotificationOut(BaseModel):
    id: uuid.UUID
    title: str
    body: str
    icon: Optional[str] = None
    badge: Optional[str] = None
    read: bool
    created_at: datetime


@app.get("/health")
def health():
    """Liveness/health probe endpoint."""
    return {"ok": True}


@app.post("/recipients", response_model=RecipientIn)
def upsert_recipient(req: RecipientIn, repo: Repo):
    repo.upsert_recipient(req.user_id, req.role)
    return req


@app.post("/tokens")
def register_token(req: TokenIn, repo: Repo):
    repo.register_token(req.user_id, req.token)
    return {"ok": True}


@app.post("/send", response_model=SendResponse)
def send(req: SendRequest, repo: Repo):
    """Notify the first ``MAX_RECIPIENTS_PER_SEND`` users of ``user_ids``."""
    user_ids = list(dict.fromkeys(req.user_ids))[:MAX_RECIPIENTS_PER_SEND]
    sent, _ = repo.send(user_ids, req.title, req.body, req.icon, req.badge)
    return SendResponse(sent=sent, devices=repo.device_count(user_ids))


@app.post("/send-to-admins", response_model=SendResponse)
def send_to_admins(
    req: NotificationPayload,
    repo: Repo,
    idempotency_key: Annotated[Optional[str], Header(alias="Idempotency-Key")] = None,
):
    """Notify every admin recipient.

    Raises:
        HTTPException: 400 when no admin is registered; 409 when the
            idempotency key is reused with a different payload.
    """
    admin_ids = repo.admin_ids()
    if not admin_ids:
        raise HTTPException(status_code=400, detail="No admin users found")

    try:
        sent, replayed = repo.send(
            admin_ids,
            req.title,
            req.body,
            req.icon,
            req.badge,
            idempotency_key=idempotency_key,
            request_hash=canonical_hash(req.model_dump()) if idempotency_key else None,
        )
    except IdempotencyConflict:
        raise HTTPException(status_code=409, detail="IDEMPOTENCY_CONFLICT")

    if replayed:
        logger.info("send-to-admins replayed", extra={"request_id": "-", "idempotency_key": idempotency_key})
    return SendResponse(sent=sent, devices=repo.device_count(admin_ids))


@app.get("/notifications", response_model=list[NotificationOut])
def list_notifications(
    repo: Repo,
    user_id: str = Query(min_length=1),
    limit: int = Query(default=50, ge=1, le=200),
):
    return [
        NotificationOut(
            id=n.id,
            title=n.title,
            body=n.body,
            icon=n.icon,
            badge=n.badge,
            read=n.read,
            created_at=n.created_at,
        )
        for n in repo.list_for_user(user_id, limit)
    ]


@app.post("/notifications/{notification_id}/read")
def mark_read(notification_id: uuid.UUID, repo: Repo):
    if not repo.mark_read(notification_id):
        raise HTTPException(status_code=404, detail="NOT_FOUND")
    return {"ok": True}


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    try:
        response = await call_next(request)
    finally:
        logger.info("request handled", extra={"request_id": rid, "path": request.url.path, "method": request.method})
    response.headers["X-Request-ID"] = rid
    return response

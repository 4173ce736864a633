"""HTTP notifier client with retries, a circuit breaker and context headers.

This module implements ``NotifierPort`` against the notifications service
using ``httpx``. It adds:

- Request correlation: propagates ``X-Request-ID`` from the ContextVar set
  by the gateway middleware.
- A circuit breaker to avoid hammering an unhealthy notifications service,
  with HALF_OPEN probing after a timeout.
- A retry policy with exponential backoff for transport errors and 5xx.
- Idempotency: every notification carries an ``Idempotency-Key`` derived
  from its content, so a retried request is stored only once downstream.
"""

import hashlib
import logging
import threading
import time
from typing import Optional

import httpx
from django.conf import settings

from gateway.middleware import REQUEST_ID_CTX

from .domain import NotifierPort

logger = logging.getLogger(__name__)


# ---------------- Circuit Breaker ---------------- #

class CircuitOpenError(RuntimeError):
    pass


class CircuitBreaker:
    """Minimal circuit breaker with CLOSED/OPEN/HALF_OPEN states.

    Transitions:
    - CLOSED -> OPEN when consecutive failures reach ``fail_threshold``.
    - OPEN -> HALF_OPEN after ``reset_timeout`` seconds.
    - HALF_OPEN -> CLOSED on a successful probe; only one probe may be in
      flight; a failed probe opens the circuit again.

    Thread-safe via an internal lock.
    """

    def __init__(self, name: str, fail_threshold: int, reset_timeout: float):
        self.name = name
        self.fail_threshold = fail_threshold
        self.reset_timeout = reset_timeout
        self._lock = threading.RLock()
        self._failures = 0
        self._state = "CLOSED"  # CLOSED | OPEN | HALF_OPEN
        self._opened_at = 0.0
        self._probe_in_flight = False

    @property
    def state(self) -> str:
        with self._lock:
            if self._state == "OPEN" and (time.monotonic() - self._opened_at) >= self.reset_timeout:
                self._state = "HALF_OPEN"
                self._probe_in_flight = False
            return self._state

    def before_call(self) -> str:
        """Check the breaker before a protected call.

        Returns:
            str: The state at call time.

        Raises:
            CircuitOpenError: If the circuit is OPEN or a HALF_OPEN probe is
                already running.
        """
        with self._lock:
            st = self.state
            if st == "OPEN":
                raise CircuitOpenError(f"CIRCUIT_OPEN:{self.name}")
            if st == "HALF_OPEN":
                if self._probe_in_flight:
                    raise CircuitOpenError(f"CIRCUIT_HALF_OPEN_BUSY:{self.name}")
                self._probe_in_flight = True
            return st

    def on_success(self):
        with self._lock:
            self._failures = 0
            self._state = "CLOSED"
            self._probe_in_flight = False

    def on_failure(self):
        with self._lock:
            self._failures += 1
            if self._state == "HALF_OPEN" or (
                self._failures >= self.fail_threshold and self._state != "OPEN"
            ):
                self._state = "OPEN"
                self._opened_at = time.monotonic()
                logger.warning("Circuit %s opened after %d failures", self.name, self._failures)
            self._probe_in_flight = False


def breaker_from_settings(name: str) -> CircuitBreaker:
    return CircuitBreaker(
        name,
        getattr(settings, "HTTP_CIRCUIT_FAIL_THRESHOLD", 5),
        getattr(settings, "HTTP_CIRCUIT_RESET_TIMEOUT", 30.0),
    )


# ---------------- Helpers ---------------- #

def _request_headers(extra: Optional[dict] = None) -> dict:
    """Build outgoing headers: ``X-Request-ID`` when known, plus extras."""
    headers: dict[str, str] = {}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


def _retry_policy():
    """Return retry configuration as (max_retries, backoff_base, max_sleep)."""
    return (
        getattr(settings, "HTTP_RETRY_MAX", 3),
        getattr(settings, "HTTP_RETRY_BACKOFF_BASE", 0.15),
        getattr(settings, "HTTP_RETRY_MAX_SLEEP", 0.5),
    )


def _should_retry(resp: Optional[httpx.Response], exc: Optional[Exception]) -> bool:
    """Retry only on transport errors or HTTP 5xx."""
    if exc is not None:
        return True
    return resp is not None and 500 <= resp.status_code < 600


def notification_key(title: str, body: str) -> str:
    """Stable idempotency key for one notification."""
    digest = hashlib.sha256(f"{title}\n{body}".encode("utf-8")).hexdigest()
    return f"notify-{digest[:32]}"


# ---------------- Notifier Adapter ---------------- #

class HttpNotifier(NotifierPort):
    """Send admin notifications through the notifications service.

    Args:
        base_url: Notifications service URL, defaults to
            ``settings.NOTIFICATIONS_BASE_URL``.
        timeout: Per-request timeout in seconds.
        breaker: Circuit breaker shared by the notifiers of this process.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        breaker: CircuitBreaker | None = None,
    ):
        self.base_url = base_url or settings.NOTIFICATIONS_BASE_URL
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS
        self.breaker = breaker or breaker_from_settings("notifications")

    def notify(self, title: str, body: str) -> None:
        """Send a notification to every admin.

        Business outcomes (2xx, and 400 when no admin is registered) are
        not counted as circuit failures.

        Raises:
            CircuitOpenError: If the circuit is open.
            httpx.RequestError: For transport errors after retries.
            httpx.HTTPStatusError: For non-retriable error responses or 5xx
                after retries.
        """
        payload = {"title": title, "body": body}
        max_retries, backoff, cap = _retry_policy()
        tries = 0

        state = self.breaker.before_call()
        headers = _request_headers({
            "Idempotency-Key": notification_key(title, body),
            "X-Circuit-State": state,
            "X-Retry-Count": "0",
        })

        with httpx.Client(timeout=self.timeout) as client:
            while True:
                resp = None
                exc = None
                try:
                    resp = client.post(f"{self.base_url}/send-to-admins", json=payload, headers=headers)
                    if 200 <= resp.status_code < 300:
                        self.breaker.on_success()
                        logger.info("Admin notification sent", extra={"sent": resp.json().get("sent")})
                        return
                    if resp.status_code == 400:
                        self.breaker.on_success()
                        logger.warning("Notification rejected: %s", resp.text[:200])
                        return
                    if not _should_retry(resp, None):
                        self.breaker.on_success()
                        resp.raise_for_status()
                except httpx.RequestError as e:
                    exc = e

                if tries >= max_retries:
                    self.breaker.on_failure()
                    if exc is not None:
                        raise exc
                    resp.raise_for_status()
                    return

                tries += 1
                headers["X-Retry-Count"] = str(tries)
                time.sleep(min(backoff * (2 ** (tries - 1)), cap))

    def ping(self) -> bool:
        """Return True when the notifications service answers its health probe."""
        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.get(f"{self.base_url}/health", headers=_request_headers())
            return resp.status_code == 200
        except httpx.HTTPError:
            return False

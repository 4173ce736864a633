"""Composition root for the checkout core.

Views never construct adapters themselves: they ask this module for a
catalog, an order store, a notifier or a ready-to-use checkout state
machine. When ``settings.USE_HTTP_ADAPTERS`` is truthy the notifier talks
to the notifications service over HTTP from a small thread pool, so a slow
or unreachable service never delays the checkout response; otherwise an
in-process notifier that only logs is used, which is what tests and local
development want.

The circuit breaker guarding the notifications service and the thread pool
delivering notifications are owned here and shared by the whole process.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional

from django.conf import settings
from django.utils import timezone

from .adapters import BackgroundNotifier, LoggingNotifier
from .domain import CartLine, CatalogPort, NotifierPort, OrderStorePort, SessionPort, UserSession
from .gateway import OrderSubmissionGateway
from .http_adapters import CircuitBreaker, HttpNotifier, breaker_from_settings
from .machine import CheckoutStateMachine
from .repository import DjangoCatalog, OrderRepository

_notifier_breaker: Optional[CircuitBreaker] = None
_notify_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def get_notifier_breaker() -> CircuitBreaker:
    global _notifier_breaker
    if _notifier_breaker is None:
        _notifier_breaker = breaker_from_settings("notifications")
    return _notifier_breaker


def reset_notifier_breaker() -> None:
    global _notifier_breaker
    _notifier_breaker = None


def get_notify_executor() -> ThreadPoolExecutor:
    global _notify_executor
    with _executor_lock:
        if _notify_executor is None:
            _notify_executor = ThreadPoolExecutor(
                max_workers=getattr(settings, "NOTIFY_WORKERS", 2),
                thread_name_prefix="notify",
            )
        return _notify_executor


def shutdown_notify_executor(wait: bool = True) -> None:
    """Stop the delivery pool, by default after pending notifications ran."""
    global _notify_executor
    with _executor_lock:
        executor, _notify_executor = _notify_executor, None
    if executor is not None:
        executor.shutdown(wait=wait)


class RequestSession(SessionPort):
    """Session provider reading the authenticated Django user, if any."""

    def __init__(self, request):
        self.request = request

    def current_user(self) -> UserSession:
        user = getattr(self.request, "user", None)
        if user is None or not user.is_authenticated:
            return UserSession()
        return UserSession(user_id=str(user.pk), email=user.email or "", is_staff=user.is_staff)


def get_catalog() -> CatalogPort:
    return DjangoCatalog()


def get_order_store() -> OrderStorePort:
    return OrderRepository()


def get_http_notifier() -> HttpNotifier:
    return HttpNotifier(breaker=get_notifier_breaker())


def get_notifier() -> NotifierPort:
    if getattr(settings, "USE_HTTP_ADAPTERS", True):
        return BackgroundNotifier(get_http_notifier(), get_notify_executor())
    return LoggingNotifier()


def get_gateway() -> OrderSubmissionGateway:
    return OrderSubmissionGateway(
        store=get_order_store(),
        notifier=get_notifier(),
        currency=getattr(settings, "STORE_CURRENCY", "EGP"),
    )


def build_checkout(
    lines: Iterable[CartLine],
    session: Optional[UserSession] = None,
    catalog: Optional[CatalogPort] = None,
) -> CheckoutStateMachine:
    """Start a checkout for ``lines``.

    Shipping zones and discounts are read once, here, and kept for the
    whole checkout.

    Raises:
        CatalogLoadError: If the catalog could not be read.
    """
    catalog = catalog or get_catalog()
    zones = catalog.get_shipping_zones()
    discounts = catalog.get_discounts()
    return CheckoutStateMachine(
        lines=lines,
        zones=zones,
        discounts=discounts,
        gateway=get_gateway(),
        session=session,
        auto_select_zone=getattr(settings, "CHECKOUT_AUTO_SELECT_ZONE", True),
        clock=timezone.now,
    )

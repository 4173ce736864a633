"""Health endpoint for load balancers and smoke tests.

Reports the database and, when HTTP adapters are enabled, the
notifications service. Only the database decides the status code: the
notifier is best-effort, so an unreachable notifications service is
reported but does not make the web project unhealthy.
"""

from django.conf import settings
from django.db import DatabaseError, connection
from django.http import JsonResponse

from apps.checkout import providers


def _db_ok() -> bool:
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1;")
        return True
    except DatabaseError:
        return False


def health_view(_request):
    db_ok = _db_ok()
    components = {"db": {"ok": db_ok}}
    if getattr(settings, "USE_HTTP_ADAPTERS", True):
        breaker = providers.get_notifier_breaker()
        components["notifications"] = {
            "ok": providers.get_http_notifier().ping(),
            "circuit": breaker.state,
        }

    return JsonResponse(
        {"ok": db_ok, "components": components},
        status=200 if db_ok else 503,
    )

"""Gateway middleware: request correlation and API payload limits.

``RequestIdMiddleware`` gives every request an identifier, reusing the
client's ``X-Request-ID`` header when present. The id is stored on the
request and in ``REQUEST_ID_CTX`` so log filters and outgoing HTTP
clients can read it without it being passed around, and it is echoed
back on the response.

``ApiSizeLimitMiddleware`` rejects API requests whose declared body is
larger than ``API_MAX_BYTES`` before any view parses them.
"""

import contextvars
import os
import uuid

from django.http import JsonResponse

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")
MAX_API_BYTES = int(os.getenv("API_MAX_BYTES", str(256 * 1024)))
MAX_REQUEST_ID_LEN = 128


class RequestIdMiddleware:
    """Assign, expose and echo a per-request identifier."""

    HEADER = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-ID"

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        rid = request.META.get(self.HEADER, "").strip()[:MAX_REQUEST_ID_LEN]
        if not rid:
            rid = str(uuid.uuid4())
        request.request_id = rid
        token = REQUEST_ID_CTX.set(rid)
        try:
            response = self.get_response(request)
        finally:
            REQUEST_ID_CTX.reset(token)
        response[self.RESPONSE_HEADER] = rid
        return response


class ApiSizeLimitMiddleware:
    """Answer 413 for oversized ``/api/`` request bodies."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if request.path.startswith("/api/"):
            clen = request.META.get("CONTENT_LENGTH")
            if clen and clen.isdigit() and int(clen) > MAX_API_BYTES:
                return JsonResponse({"detail": "PAYLOAD_TOO_LARGE"}, status=413)
        return self.get_response(request)

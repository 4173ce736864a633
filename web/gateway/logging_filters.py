"""Logging filters that enrich records with request context.

Add ``RequestIdFilter`` to a handler so every record carries the id of the
request being served (``%(request_id)s``), and ``ServiceNameFilter`` so
JSON logs from the web project and the notifications service can be told
apart once aggregated.
"""

from logging import Filter, LogRecord

from .middleware import REQUEST_ID_CTX


class RequestIdFilter(Filter):
    """Attach ``request_id`` to log records ("-" outside a request)."""

    def filter(self, record: LogRecord) -> bool:
        record.request_id = REQUEST_ID_CTX.get()
        return True


class ServiceNameFilter(Filter):
    def __init__(self, service: str = "storefront-web"):
        super().__init__()
        self.service = service

    def filter(self, record: LogRecord) -> bool:
        record.service = self.service
        return True

"""Idempotency records for checkout submissions.

A client may send an ``Idempotency-Key`` header with a submission (the
storefront sends one per checkout, so a double click or a network retry
reuses it). The first request creates a record; once it completes, the
response is stored on the record and later retries with the same payload
replay it. Reusing a key with a different payload is a conflict. Retryable
failures release the key so the customer can try again.
"""

import hashlib
import json

from django.db import IntegrityError, transaction

from .models import IdempotencyKey

IN_PROGRESS = 0


def _hash(payload: dict) -> str:
    """Stable SHA-256 of a JSON-serializable payload (sorted keys, compact)."""
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


@transaction.atomic
def get_or_create_idempotent(key: str, payload: dict):
    """Get-or-create the record for ``key``.

    Behavior:
        - New key: create a record and return ``(False, rec)``; the caller
          processes the request and then calls ``finalize`` or ``release``.
        - Known key, same payload: lock the row and return ``(True, rec)``.
          ``rec.response_status`` is ``IN_PROGRESS`` while the first request
          is still running.
        - Known key, different payload: raise
          ``ValueError("IDEMPOTENCY_CONFLICT")``.

    Args:
        key: Client-provided idempotency key.
        payload: Request payload used to compute the request hash.

    Returns:
        tuple[bool, IdempotencyKey]: ``(existing, rec)``.
    """
    h = _hash(payload)

    try:
        # Savepoint so an IntegrityError only rolls back the insert
        with transaction.atomic():
            rec = IdempotencyKey.objects.create(
                key=key, request_hash=h, response_status=IN_PROGRESS, response_body={}
            )
            return False, rec
    except IntegrityError:
        rec = IdempotencyKey.objects.select_for_update().get(key=key)
        if rec.request_hash != h:
            raise ValueError("IDEMPOTENCY_CONFLICT")
        return True, rec


def finalize(rec: IdempotencyKey, status_code: int, body: dict, order_id=None):
    """Store the final response so retries can replay it."""
    rec.response_status = status_code
    rec.response_body = body
    if order_id is not None:
        rec.order_id = order_id
    rec.save(update_fields=["response_status", "response_body", "order"])


def release(rec: IdempotencyKey):
    """Forget the key after a retryable failure."""
    rec.delete()

"""Exceptions raised by the checkout core.

Every error carries a short ``code`` used by the HTTP layer to build the
response body, and ``str(error)`` is that code (or a field-specific
variant for validation errors).
"""


class CheckoutError(Exception):
    """Base exception for all checkout errors."""

    code = "CHECKOUT_ERROR"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.code
        super().__init__(self.detail)


class ValidationError(CheckoutError):
    """Raised when a required checkout field is missing or invalid.

    Attributes:
        field: Name of the first offending field, e.g. ``payment_method``.
    """

    code = "VALIDATION_ERROR"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"MISSING_{field.upper()}")


class EmptyCartError(CheckoutError):
    """Raised when a checkout is submitted without line items."""

    code = "EMPTY_CART"


class PersistenceError(CheckoutError):
    """Raised when the order store fails to persist an order."""

    code = "PERSISTENCE_FAILED"


class CatalogLoadError(CheckoutError):
    """Raised when shipping zones or discounts cannot be loaded."""

    code = "CATALOG_UNAVAILABLE"

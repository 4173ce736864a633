"""User-facing messages in English and Arabic.

Checkout errors are reported to the storefront with a machine-readable
code plus a message in the customer's language, picked from the
``Accept-Language`` header. Unknown languages fall back to English.
"""

from .domain import Order
from .pricing import to_money

DEFAULT_LANGUAGE = "en"
LANGUAGES = ("en", "ar")

FIELD_MESSAGES = {
    "payment_method": {
        "en": "Please choose a payment method",
        "ar": "يرجى اختيار طريقة الدفع",
    },
    "shipping_method": {
        "en": "Please choose a shipping method",
        "ar": "يرجى اختيار طريقة الشحن",
    },
    "shipping_zone": {
        "en": "Please choose a shipping zone",
        "ar": "يرجى اختيار منطقة الشحن",
    },
    "name": {
        "en": "Please enter your name",
        "ar": "يرجى إدخال الاسم",
    },
    "phone": {
        "en": "Please enter your phone number",
        "ar": "يرجى إدخال رقم الهاتف",
    },
    "address": {
        "en": "Please enter your address",
        "ar": "يرجى إدخال العنوان",
    },
}

ERROR_MESSAGES = {
    "EMPTY_CART": {
        "en": "Your cart is empty",
        "ar": "سلة التسوق فارغة",
    },
    "PERSISTENCE_FAILED": {
        "en": "We could not place your order, please try again",
        "ar": "تعذر إتمام الطلب، يرجى المحاولة مرة أخرى",
    },
    "CATALOG_UNAVAILABLE": {
        "en": "Shipping options are not available right now, please try again",
        "ar": "خيارات الشحن غير متاحة حاليا، يرجى المحاولة مرة أخرى",
    },
}


def pick_language(accept_language: str | None) -> str:
    """Return the first supported language in an ``Accept-Language`` value."""
    if not accept_language:
        return DEFAULT_LANGUAGE
    for part in accept_language.split(","):
        tag = part.split(";")[0].strip().lower()
        primary = tag.split("-")[0]
        if primary in LANGUAGES:
            return primary
    return DEFAULT_LANGUAGE


def field_message(field: str, language: str = DEFAULT_LANGUAGE) -> str:
    messages = FIELD_MESSAGES.get(field, {})
    return messages.get(language) or messages.get(DEFAULT_LANGUAGE) or field


def error_message(code: str, language: str = DEFAULT_LANGUAGE) -> str:
    messages = ERROR_MESSAGES.get(code, {})
    return messages.get(language) or messages.get(DEFAULT_LANGUAGE) or code


def new_order_notification(order: Order) -> tuple[str, str]:
    """Title and body of the admin notification for a new order."""
    title = "New Order"
    body = f"Order #{order.order_number} - {to_money(order.grand_total)} {order.currency}"
    if order.draft.contact.name:
        body = f"{body} from {order.draft.contact.name}"
    return title, body

"""HTTP views for the checkout app.

Views are kept small: they validate requests with pydantic, build a
checkout through the composition root (``providers``), delegate to the
state machine, and map the outcome to an HTTP response. Checkout errors
are caught here, at the request boundary, and turned into a code plus a
message in the customer's language (``Accept-Language``, English or
Arabic).

Idempotency: when an ``Idempotency-Key`` header is sent with a
submission, the first request is processed and its response stored;
retries with the same payload replay it (``Idempotent-Replay: true``),
a different payload with the same key gets HTTP 409, and retryable or
unexpected failures release the key.

Orders are readable by their customer and by staff only; guests get an
empty listing.
"""

import logging
import math

from django.core.paginator import Paginator
from django.utils import timezone
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from . import providers
from .errors import CatalogLoadError, CheckoutError, EmptyCartError, PersistenceError, ValidationError
from .idempotency import IN_PROGRESS, finalize, get_or_create_idempotent, release
from .messages import error_message, field_message, pick_language
from .models import OrderModel
from .pricing import discount_amount, discounted_price, find_active_discount, subtotal_of, to_money
from .schemas import CheckoutDTO, OrderLineReadDTO, OrderReadDTO, OrdersQuery

logger = logging.getLogger(__name__)


def _language(request) -> str:
    return pick_language(request.headers.get("Accept-Language"))


def _error_body(err: CheckoutError, language: str) -> dict:
    body = {"detail": err.code}
    if isinstance(err, ValidationError):
        body["field"] = err.field
        body["message"] = field_message(err.field, language)
    else:
        body["message"] = error_message(err.code, language)
    return body


def _discount_payload(discount) -> dict:
    return {
        "id": discount.id,
        "product_id": discount.product_id,
        # Strict JSON has no NaN
        "discount_percentage": None if math.isnan(discount.percentage) else discount.percentage,
        "start_date": discount.start.isoformat(),
        "end_date": discount.end.isoformat(),
    }


def _order_payload(o: OrderModel, with_items: bool = False) -> dict:
    items = None
    if with_items:
        items = [
            OrderLineReadDTO(
                product_id=ln.product_id,
                title=ln.title,
                quantity=ln.quantity,
                unit_price=ln.unit_price,
                discounted_unit_price=ln.discounted_unit_price,
                discount_id=ln.discount_id,
            )
            for ln in o.lines.all()
        ]
    dto = OrderReadDTO(
        id=str(o.id),
        order_number=o.order_number,
        status=o.status,
        payment_method=o.payment_method,
        shipping_method=o.shipping_method,
        shipping_zone=o.shipping_zone_name,
        customer_name=o.customer_name,
        shipping_phone=o.shipping_phone,
        shipping_address=o.shipping_address or None,
        subtotal=o.subtotal,
        shipping_cost=o.shipping_cost,
        total=o.total,
        currency=o.currency,
        created_at=o.created_at,
        items=items,
    )
    return dto.model_dump(mode="json", exclude_none=True)


def _apply_choices(machine, dto: CheckoutDTO) -> None:
    if dto.payment_method is not None:
        machine.set_payment_method(dto.payment_method)
    if dto.shipping_method is not None:
        machine.set_shipping_method(dto.shipping_method)
    if dto.shipping_zone_id is not None:
        machine.set_shipping_zone(dto.shipping_zone_id)
    machine.set_contact_details(
        name=dto.contact.name,
        phone=dto.contact.phone,
        address=dto.contact.address,
        notes=dto.contact.notes,
    )


class CheckoutPingView(APIView):
    """Health-check endpoint for the checkout module."""

    def get(self, request):
        return Response({"ok": True})


def _product_payload(p, discounts, now) -> dict:
    item = {
        "id": p.id,
        "title": p.title,
        "category": p.category,
        "image": p.image,
        "price": str(to_money(p.price)),
    }
    discount = find_active_discount(p.id, discounts, now)
    if discount is not None:
        price = discounted_price(p.price, discount.percentage)
        if not math.isnan(price):
            item["discount"] = _discount_payload(discount)
            item["discounted_price"] = str(to_money(price))
            item["discount_amount"] = str(to_money(discount_amount(p.price, discount.percentage)))
    return item


class ProductsView(APIView):
    """List products with their active discount and discounted price.

    ``?category=`` restricts the listing to one category.
    """

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "catalog"

    def get(self, request):
        catalog = providers.get_catalog()
        try:
            products = catalog.get_products()
            discounts = catalog.get_discounts()
        except CatalogLoadError as e:
            return Response(_error_body(e, _language(request)), status=status.HTTP_503_SERVICE_UNAVAILABLE)

        category = request.GET.get("category")
        if category:
            products = [p for p in products if p.category == category]
        now = timezone.now()
        return Response([_product_payload(p, discounts, now) for p in products])


class ProductDetailView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "catalog"

    def get(self, request, product_id: str):
        catalog = providers.get_catalog()
        try:
            product = catalog.get_product(product_id)
            discounts = catalog.get_discounts() if product else []
        except CatalogLoadError as e:
            return Response(_error_body(e, _language(request)), status=status.HTTP_503_SERVICE_UNAVAILABLE)
        if product is None:
            return Response({"detail": "NOT_FOUND"}, status=status.HTTP_404_NOT_FOUND)
        return Response(_product_payload(product, discounts, timezone.now()))


class DiscountsView(APIView):
    """List every discount record."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "catalog"

    def get(self, request):
        try:
            discounts = providers.get_catalog().get_discounts()
        except CatalogLoadError as e:
            return Response(_error_body(e, _language(request)), status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response([_discount_payload(d) for d in discounts])


class ProductDiscountView(APIView):
    """Return the discount currently active for one product."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "catalog"

    def get(self, request, product_id: str):
        try:
            discounts = providers.get_catalog().get_discounts()
        except CatalogLoadError as e:
            return Response(_error_body(e, _language(request)), status=status.HTTP_503_SERVICE_UNAVAILABLE)
        discount = find_active_discount(product_id, discounts, timezone.now())
        if discount is None:
            return Response({"detail": "NOT_FOUND"}, status=status.HTTP_404_NOT_FOUND)
        return Response(_discount_payload(discount))


class ShippingZonesView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "catalog"

    def get(self, request):
        try:
            zones = providers.get_catalog().get_shipping_zones()
        except CatalogLoadError as e:
            return Response(_error_body(e, _language(request)), status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response([{"id": z.id, "name": z.name, "cost": str(to_money(z.cost))} for z in zones])


class QuoteView(APIView):
    """Price a (possibly incomplete) checkout without submitting it.

    The response carries the totals, the derived checkout state and the
    first missing field so the storefront can enable or disable its
    submit button.
    """

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "checkout_quote"

    def post(self, request):
        language = _language(request)
        try:
            dto = CheckoutDTO.model_validate(request.data)
        except PydanticValidationError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        session = providers.RequestSession(request).current_user()
        try:
            machine = providers.build_checkout([i.to_domain() for i in dto.items], session=session)
            _apply_choices(machine, dto)
        except CatalogLoadError as e:
            return Response(_error_body(e, language), status=status.HTTP_503_SERVICE_UNAVAILABLE)
        except ValidationError as e:
            return Response(_error_body(e, language), status=status.HTTP_400_BAD_REQUEST)

        priced = machine.priced_lines()
        subtotal = subtotal_of(priced)
        missing = machine.missing_field()
        empty = not machine.lines
        if missing:
            message = field_message(missing, language)
        elif empty:
            message = error_message(EmptyCartError.code, language)
        else:
            message = None
        zone = machine.shipping_zone
        return Response(
            {
                "state": machine.state.value,
                "ready": missing is None and not empty,
                "detail": EmptyCartError.code if empty else None,
                "missing_field": missing,
                "message": message,
                "shipping_zone": zone.id if zone else None,
                "items": [
                    {
                        "product_id": p.line.product_id,
                        "quantity": p.line.quantity,
                        "original": str(to_money(p.original)),
                        "discounted": str(to_money(p.discounted)),
                        "discount_id": p.applied_discount.id if p.applied_discount else None,
                    }
                    for p in priced
                ],
                "subtotal": str(to_money(subtotal)),
                "shipping_cost": str(to_money(machine.shipping_cost)),
                "total": str(to_money(subtotal + machine.shipping_cost)),
                "currency": machine.gateway.currency,
            }
        )


def _visible_orders(request):
    """Orders the caller may read: staff see all, customers their own, guests none."""
    session = providers.RequestSession(request).current_user()
    qs = OrderModel.objects.all()
    if session.is_staff:
        return qs
    if session.user_id is None:
        return qs.none()
    return qs.filter(user_id=session.user_id)


class OrdersCollectionView(APIView):
    """List the caller's orders and submit a checkout as a new order."""

    throttle_classes = [ScopedRateThrottle]

    def get_throttles(self):
        # Throttles are evaluated in initial(), before get/post
        self.throttle_scope = "orders_list" if self.request.method == "GET" else "checkout_submit"
        return [throttle() for throttle in self.throttle_classes]

    def get(self, request):
        try:
            query = OrdersQuery.model_validate(request.GET.dict())
        except PydanticValidationError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        qs = _visible_orders(request).order_by("-created_at")
        p = Paginator(qs, query.page_size)
        page_obj = p.get_page(query.page)
        return Response(
            {
                "count": p.count,
                "page": page_obj.number,
                "page_size": query.page_size,
                "results": [_order_payload(o) for o in page_obj.object_list],
            },
            status=200,
        )

    def post(self, request):
        """Submit a checkout.

        Returns:
            Response: One of the following responses.
            - 201 with {id, order_number, status, subtotal, shipping_cost,
              total, currency} when the order is created.
            - The stored status and body, with ``Idempotent-Replay: true``,
              when the same idempotency key and payload are retried.
            - 409 with {detail: "IDEMPOTENCY_CONFLICT"} when the key is
              reused with a different payload, or
              {detail: "IDEMPOTENCY_IN_PROGRESS"} while the first request
              is still running.
            - 400 for payload errors, or {detail: "VALIDATION_ERROR", field,
              message} when a required checkout field is missing.
            - 422 with {detail: "EMPTY_CART"} when there are no items.
            - 503 with {detail: "CATALOG_UNAVAILABLE"} or
              {detail: "PERSISTENCE_FAILED"}; both can be retried.
        """
        language = _language(request)
        idem_key = request.headers.get("Idempotency-Key")

        # 1) Pydantic validation
        try:
            dto = CheckoutDTO.model_validate(request.data)
        except PydanticValidationError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        # 2) Idempotency get-or-create
        rec = None
        if idem_key:
            try:
                existing, rec = get_or_create_idempotent(idem_key, request.data)
            except ValueError:
                return Response({"detail": "IDEMPOTENCY_CONFLICT"}, status=status.HTTP_409_CONFLICT)
            if existing:
                if rec.response_status == IN_PROGRESS:
                    return Response({"detail": "IDEMPOTENCY_IN_PROGRESS"}, status=status.HTTP_409_CONFLICT)
                resp = Response(rec.response_body, status=rec.response_status)
                resp["Idempotent-Replay"] = "true"
                return resp

        # 3) Checkout; an unexpected error must not leave the key in progress
        try:
            return self._submit(request, dto, rec, language)
        except Exception:
            if rec:
                release(rec)
            raise

    def _submit(self, request, dto: CheckoutDTO, rec, language: str) -> Response:
        session = providers.RequestSession(request).current_user()
        try:
            machine = providers.build_checkout([i.to_domain() for i in dto.items], session=session)
            _apply_choices(machine, dto)
            order_id = machine.submit()
        except (CatalogLoadError, PersistenceError) as e:
            if rec:
                release(rec)
            return Response(_error_body(e, language), status=status.HTTP_503_SERVICE_UNAVAILABLE)
        except CheckoutError as e:
            status_code = 422 if isinstance(e, EmptyCartError) else 400
            body = _error_body(e, language)
            if rec:
                finalize(rec, status_code, body)
            return Response(body, status=status_code)

        # 4) Response
        order = machine.gateway.store.get(order_id)
        body = {
            "id": order.id,
            "order_number": order.order_number,
            "status": order.status.value,
            "subtotal": str(to_money(order.draft.subtotal)),
            "shipping_cost": str(to_money(order.draft.shipping_cost)),
            "total": str(to_money(order.draft.grand_total)),
            "currency": order.currency,
        }
        if rec:
            finalize(rec, status.HTTP_201_CREATED, body, order_id=order.id)
        logger.info("Checkout submitted", extra={"order_id": body["id"]})
        return Response(body, status=status.HTTP_201_CREATED)


class RetrieveOrderView(APIView):
    """One order with its lines; orders the caller may not read are 404."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def get(self, request, oid):
        try:
            o = _visible_orders(request).prefetch_related("lines").get(id=oid)
        except OrderModel.DoesNotExist:
            return Response({"detail": "NOT_FOUND"}, status=status.HTTP_404_NOT_FOUND)
        return Response(_order_payload(o, with_items=True), status=200)

import uuid
from django.db import models


class ProductModel(models.Model):
    title = models.CharField(max_length=200)
    category = models.CharField(max_length=100, blank=True, default="")
    price = models.DecimalField(max_digits=12, decimal_places=2)
    image = models.CharField(max_length=500, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "products"
        ordering = ["id"]


class DiscountModel(models.Model):
    # Loosely typed like the admin-entered source records; normalized on read
    product_id = models.CharField(max_length=64, db_index=True)
    discount_percentage = models.CharField(max_length=16)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "discounts"
        ordering = ["id"]


class ShippingZoneModel(models.Model):
    name = models.CharField(max_length=100)
    cost = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    position = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "shipping_zones"
        ordering = ["position", "id"]


class OrderModel(models.Model):
    # UUID generated by the checkout, exposed in the API
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.BigIntegerField(unique=True)

    class Status(models.TextChoices):
        PENDING = "pending"
        CONFIRMED = "confirmed"
        PROCESSING = "processing"
        SHIPPED = "shipped"
        COMPLETED = "completed"
        CANCELLED = "cancelled"

    status = models.CharField(max_length=32, choices=Status.choices, default=Status.PENDING)
    user_id = models.CharField(max_length=64, null=True, blank=True)
    user_email = models.CharField(max_length=254, blank=True, default="")

    payment_method = models.CharField(max_length=32)
    shipping_method = models.CharField(max_length=32)
    shipping_zone_id = models.CharField(max_length=64)
    shipping_zone_name = models.CharField(max_length=100)

    customer_name = models.CharField(max_length=200)
    shipping_phone = models.CharField(max_length=32)
    shipping_address = models.TextField(blank=True, default="")
    notes = models.TextField(blank=True, default="")

    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2)
    total = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="EGP")
    created_at = models.DateTimeField()

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]


class OrderLineModel(models.Model):
    order = models.ForeignKey(OrderModel, related_name="lines", on_delete=models.CASCADE)
    product_id = models.CharField(max_length=64)
    title = models.CharField(max_length=200)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    discounted_unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    quantity = models.PositiveIntegerField()
    discount_id = models.CharField(max_length=64, null=True, blank=True)

    class Meta:
        db_table = "order_lines"
        ordering = ["id"]


class IdempotencyKey(models.Model):
    key = models.CharField(max_length=200, unique=True)
    request_hash = models.CharField(max_length=64)
    response_status = models.PositiveSmallIntegerField(default=0)
    response_body = models.JSONField(default=dict)
    order = models.ForeignKey(OrderModel, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "idempotency_keys"

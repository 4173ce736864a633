import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ProductModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200)),
                ("category", models.CharField(blank=True, default="", max_length=100)),
                ("price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("image", models.CharField(blank=True, default="", max_length=500)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={"db_table": "products", "ordering": ["id"]},
        ),
        migrations.CreateModel(
            name="DiscountModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_id", models.CharField(db_index=True, max_length=64)),
                ("discount_percentage", models.CharField(max_length=16)),
                ("start_date", models.DateTimeField()),
                ("end_date", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={"db_table": "discounts", "ordering": ["id"]},
        ),
        migrations.CreateModel(
            name="ShippingZoneModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("cost", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("position", models.PositiveIntegerField(default=0)),
            ],
            options={"db_table": "shipping_zones", "ordering": ["position", "id"]},
        ),
        migrations.CreateModel(
            name="OrderModel",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order_number", models.BigIntegerField(unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("processing", "Processing"),
                            ("shipped", "Shipped"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=32,
                    ),
                ),
                ("user_id", models.CharField(blank=True, max_length=64, null=True)),
                ("user_email", models.CharField(blank=True, default="", max_length=254)),
                ("payment_method", models.CharField(max_length=32)),
                ("shipping_method", models.CharField(max_length=32)),
                ("shipping_zone_id", models.CharField(max_length=64)),
                ("shipping_zone_name", models.CharField(max_length=100)),
                ("customer_name", models.CharField(max_length=200)),
                ("shipping_phone", models.CharField(max_length=32)),
                ("shipping_address", models.TextField(blank=True, default="")),
                ("notes", models.TextField(blank=True, default="")),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=12)),
                ("shipping_cost", models.DecimalField(decimal_places=2, max_digits=12)),
                ("total", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency", models.CharField(default="EGP", max_length=3)),
                ("created_at", models.DateTimeField()),
            ],
            options={"db_table": "orders", "ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="OrderLineModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_id", models.CharField(max_length=64)),
                ("title", models.CharField(max_length=200)),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("discounted_unit_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("quantity", models.PositiveIntegerField()),
                ("discount_id", models.CharField(blank=True, max_length=64, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="checkout.ordermodel",
                    ),
                ),
            ],
            options={"db_table": "order_lines", "ordering": ["id"]},
        ),
        migrations.CreateModel(
            name="IdempotencyKey",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=200, unique=True)),
                ("request_hash", models.CharField(max_length=64)),
                ("response_status", models.PositiveSmallIntegerField(default=0)),
                ("response_body", models.JSONField(default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to="checkout.ordermodel",
                    ),
                ),
            ],
            options={"db_table": "idempotency_keys"},
        ),
    ]

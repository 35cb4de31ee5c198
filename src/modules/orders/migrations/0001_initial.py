import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import uuid6
from django.conf import settings
from django.db import migrations, models

STATUS_CHOICES = [
    ("in_cart", "In cart"),
    ("pending", "Pending"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
]

UNAVAILABLE_ACTION_CHOICES = [
    ("curate", "Let us pick a substitute"),
    ("replace_same_vendor", "Replace with same vendor"),
    ("replace_other_vendors", "Replace with other vendors"),
    ("remove", "Remove from order"),
]

PRICING_MODE_CHOICES = [("case", "Case"), ("unit", "Unit")]


def _base_fields():
    return [
        (
            "id",
            models.UUIDField(
                default=uuid6.uuid7,
                editable=False,
                primary_key=True,
                serialize=False,
            ),
        ),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("products", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="OrderBatch",
            fields=[
                *_base_fields(),
                ("label", models.CharField(max_length=255, unique=True)),
                (
                    "buyer_email",
                    models.EmailField(blank=True, default="", max_length=254),
                ),
                (
                    "submitted_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                (
                    "buyer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_batches",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "order_batches",
                "ordering": ["-submitted_at"],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                *_base_fields(),
                ("product_name", models.CharField(max_length=255)),
                (
                    "vendor_name",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "quantity",
                    models.PositiveIntegerField(
                        default=1,
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(decimal_places=2, default=0, max_digits=12),
                ),
                (
                    "pricing_mode",
                    models.CharField(
                        choices=PRICING_MODE_CHOICES, default="case", max_length=10
                    ),
                ),
                (
                    "unit_price",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                (
                    "case_price",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=STATUS_CHOICES, default="in_cart", max_length=20
                    ),
                ),
                (
                    "buyer_email",
                    models.EmailField(blank=True, default="", max_length=254),
                ),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "unavailable_action",
                    models.CharField(
                        blank=True,
                        choices=UNAVAILABLE_ACTION_CHOICES,
                        max_length=30,
                        null=True,
                    ),
                ),
                (
                    "replacement_product_name",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "replacement_vendor_name",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "batch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="orders.orderbatch",
                    ),
                ),
                (
                    "buyer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_lines",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_lines",
                        to="products.product",
                    ),
                ),
                (
                    "replacement_product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="products.product",
                    ),
                ),
                (
                    "vendor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_lines",
                        to="products.vendor",
                    ),
                ),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-submitted_at", "-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="orders_status_idx"),
                    models.Index(
                        fields=["buyer", "status"], name="orders_buyer_status_idx"
                    ),
                    models.Index(fields=["-submitted_at"], name="orders_submitted_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gte=1),
                        name="orders_quantity_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderSnapshot",
            fields=[
                *_base_fields(),
                (
                    "snapshot_type",
                    models.CharField(
                        choices=[("original", "Original"), ("modified", "Modified")],
                        max_length=20,
                    ),
                ),
                (
                    "batch_label",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("status", models.CharField(choices=STATUS_CHOICES, max_length=20)),
                ("product_ref", models.UUIDField(blank=True, null=True)),
                ("product_name", models.CharField(max_length=255)),
                ("vendor_ref", models.UUIDField(blank=True, null=True)),
                (
                    "vendor_name",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("quantity", models.PositiveIntegerField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "pricing_mode",
                    models.CharField(choices=PRICING_MODE_CHOICES, max_length=10),
                ),
                (
                    "unit_price",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                (
                    "case_price",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                (
                    "unavailable_action",
                    models.CharField(
                        blank=True,
                        choices=UNAVAILABLE_ACTION_CHOICES,
                        max_length=30,
                        null=True,
                    ),
                ),
                ("replacement_product_ref", models.UUIDField(blank=True, null=True)),
                (
                    "replacement_product_name",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "replacement_vendor_name",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="snapshots",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "order_snapshots",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(
                        fields=["order", "created_at"], name="snapshots_order_idx"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderStatusHistory",
            fields=[
                *_base_fields(),
                (
                    "old_status",
                    models.CharField(
                        blank=True, choices=STATUS_CHOICES, max_length=20, null=True
                    ),
                ),
                (
                    "new_status",
                    models.CharField(choices=STATUS_CHOICES, max_length=20),
                ),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_history",
                        to="orders.order",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "order_status_history",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["order", "-created_at"],
                        name="osh_order_created_idx",
                    ),
                ],
            },
        ),
    ]

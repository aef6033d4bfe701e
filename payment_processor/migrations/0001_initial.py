import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("events", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="Created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "provider",
                    models.CharField(
                        choices=[("razorpay", "Razorpay"), ("manual", "Manual")], default="razorpay", max_length=30
                    ),
                ),
                ("provider_order_id", models.CharField(blank=True, db_index=True, max_length=100)),
                (
                    "provider_payment_id",
                    models.CharField(help_text="Provider's payment ID", max_length=100, unique=True),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("currency", models.CharField(default="INR", max_length=3)),
                (
                    "status",
                    models.CharField(
                        choices=[("captured", "Captured"), ("failed", "Failed"), ("refunded", "Refunded")],
                        default="captured",
                        max_length=20,
                    ),
                ),
                ("captured_at", models.DateTimeField(blank=True, null=True)),
                (
                    "booking",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT, related_name="payment", to="events.booking"
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["status", "created_at"], name="payment_pro_status_4f6e2a_idx")],
            },
        ),
        migrations.CreateModel(
            name="PaymentTransaction",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="Created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[
                            ("create_order", "Create Order"),
                            ("verify", "Checkout Verification"),
                            ("fetch_payment", "Fetch Payment"),
                            ("webhook", "Webhook Received"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "reference",
                    models.CharField(blank=True, help_text="Provider order or payment ID", max_length=100),
                ),
                ("request_data", models.JSONField(default=dict)),
                ("response_data", models.JSONField(default=dict)),
                ("is_successful", models.BooleanField(default=False)),
                ("error_message", models.TextField(blank=True)),
                (
                    "duration_ms",
                    models.IntegerField(blank=True, help_text="Request duration in milliseconds", null=True),
                ),
                (
                    "booking",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payment_transactions",
                        to="events.booking",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["transaction_type", "created_at"], name="payment_pro_transac_9b1c7d_idx")
                ],
            },
        ),
    ]

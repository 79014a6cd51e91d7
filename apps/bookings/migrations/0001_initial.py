import uuid

import django.db.models.deletion
import shared.infrastructure.fields
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("listings", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("check_in", models.DateField()),
                ("check_out", models.DateField()),
                (
                    "total_price",
                    models.PositiveBigIntegerField(help_text="Amount charged, in the smallest currency unit."),
                ),
                ("charge_id", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="listings.listing",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["listing", "check_in"], name="booking_listing_checkin_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("check_out__gte", models.F("check_in"))),
                        name="booking_valid_dates",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RefundReconciliation",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("listing_id", models.BigIntegerField(blank=True, null=True)),
                ("tenant_id", models.BigIntegerField(blank=True, null=True)),
                ("charge_id", models.CharField(max_length=255)),
                ("amount", models.PositiveBigIntegerField()),
                ("host_payout_token", shared.infrastructure.fields.EncryptedCharField(blank=True, default="")),
                ("reason", models.TextField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending refund"),
                            ("refunded", "Refunded"),
                            ("failed", "Refund failed, needs manual action"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("attempts", models.PositiveSmallIntegerField(default=0)),
                ("refund_id", models.CharField(blank=True, max_length=255)),
                ("last_error", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Refund reconciliation",
                "verbose_name_plural": "Refund reconciliations",
                "ordering": ["created_at"],
                "indexes": [models.Index(fields=["status", "created_at"], name="refund_status_created_idx")],
            },
        ),
    ]

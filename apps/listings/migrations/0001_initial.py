import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Listing",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=100)),
                ("description", models.TextField(max_length=5000)),
                (
                    "listing_type",
                    models.CharField(
                        choices=[("apartment", "Apartment"), ("house", "House")],
                        default="apartment",
                        max_length=20,
                    ),
                ),
                ("city", models.CharField(db_index=True, max_length=100)),
                ("address", models.CharField(blank=True, max_length=255)),
                (
                    "max_guests",
                    models.PositiveSmallIntegerField(
                        default=1, validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                (
                    "price",
                    models.PositiveIntegerField(
                        help_text="Nightly price in the smallest currency unit.",
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "availability",
                    models.JSONField(blank=True, default=dict, help_text="Booked days as year -> month -> day -> true."),
                ),
                ("version", models.PositiveIntegerField(default=0, help_text="Incremented on every committed booking.")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "host",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="listings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Listing",
                "verbose_name_plural": "Listings",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["city", "price"], name="listing_city_price_idx")],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("price__gte", 1)), name="listing_price_positive"),
                ],
            },
        ),
    ]

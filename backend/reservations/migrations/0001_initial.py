import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

STATUS_RESERVATION = [
    ("pending", "pending"),
    ("accepted", "accepted"),
    ("rejected", "rejected"),
    ("cancelled", "cancelled"),
    ("confirmed", "confirmed"),
]
STATUS_ORDER = [
    ("pending", "pending"),
    ("upcoming", "upcoming"),
    ("active", "active"),
    ("completed", "completed"),
    ("cancelled", "cancelled"),
]


def _snapshot_fields():
    return [
        ("host_name", models.CharField(blank=True, default="", max_length=255)),
        ("host_email", models.EmailField(blank=True, default="", max_length=254)),
        ("renter_name", models.CharField(blank=True, default="", max_length=255)),
        ("renter_email", models.EmailField(blank=True, default="", max_length=254)),
        ("listing_title", models.CharField(blank=True, default="", max_length=140)),
        ("listing_image", models.CharField(blank=True, default="", max_length=1024)),
        ("listing_latitude", models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
        ("listing_longitude", models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
    ]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("listings", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Reservation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_date", models.DateField()),
                ("end_date", models.DateField(help_text="Last rental day, inclusive.")),
                ("status", models.CharField(choices=STATUS_RESERVATION, default="pending", max_length=16)),
                *_snapshot_fields(),
                ("daily_price_cents", models.PositiveIntegerField(default=0)),
                ("total_days", models.PositiveIntegerField(default=1)),
                ("rental_type", models.CharField(default="daily", max_length=16)),
                ("addons", models.JSONField(blank=True, default=list)),
                ("addons_total_cents", models.PositiveIntegerField(default=0)),
                ("new_dates_proposed", models.BooleanField(default=False)),
                ("last_modified", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reservations",
                        to="listings.listing",
                    ),
                ),
                (
                    "renter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reservations_as_renter",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "host",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reservations_as_host",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "modified_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["listing", "start_date", "end_date"],
                        name="reservation_listing_dates_idx",
                    ),
                    models.Index(fields=["renter", "status"], name="reservation_renter_status_idx"),
                    models.Index(fields=["host", "status"], name="reservation_host_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_number", models.CharField(blank=True, max_length=32, null=True, unique=True)),
                *_snapshot_fields(),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("daily_price_cents", models.PositiveIntegerField(default=0)),
                ("total_days", models.PositiveIntegerField(default=1)),
                ("rental_type", models.CharField(default="daily", max_length=16)),
                ("currency", models.CharField(default="usd", max_length=3)),
                ("addons", models.JSONField(blank=True, default=list)),
                ("subtotal_cents", models.PositiveIntegerField(default=0)),
                ("daily_total_cents", models.PositiveIntegerField(default=0)),
                ("tax_cents", models.PositiveIntegerField(default=0)),
                ("host_earns_cents", models.PositiveIntegerField(default=0)),
                ("renter_pays_cents", models.PositiveIntegerField(default=0)),
                ("platform_commission_total_cents", models.PositiveIntegerField(default=0)),
                ("total_cents", models.PositiveIntegerField(default=0)),
                ("status", models.CharField(choices=STATUS_ORDER, default="upcoming", max_length=16)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "reservation",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order",
                        to="reservations.reservation",
                    ),
                ),
                (
                    "listing",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to="listings.listing",
                    ),
                ),
                (
                    "host",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders_as_host",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "renter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders_as_renter",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["renter", "status"], name="order_renter_status_idx"),
                    models.Index(fields=["host", "status"], name="order_host_status_idx"),
                ],
            },
        ),
    ]

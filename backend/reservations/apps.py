"""App configuration for the reservations domain."""

from django.apps import AppConfig


class ReservationsConfig(AppConfig):
    """Reservations and the orders they turn into."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "reservations"

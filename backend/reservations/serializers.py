"""Serializers for reservation and order endpoints."""

from __future__ import annotations

from rest_framework import serializers

from .models import Order, Reservation


class AddonChoiceSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    qty = serializers.IntegerField(min_value=1, required=False, default=1)


class ReservationCreateSerializer(serializers.Serializer):
    listing_id = serializers.IntegerField()
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    addons = AddonChoiceSerializer(many=True, required=False)


class ReservationStatusSerializer(serializers.Serializer):
    status = serializers.CharField()


class ReservationDatesSerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()


class ReservationSerializer(serializers.ModelSerializer):
    """Serialize Reservation instances for API usage."""

    listing_id = serializers.IntegerField(read_only=True)
    renter_id = serializers.IntegerField(read_only=True)
    host_id = serializers.IntegerField(read_only=True)
    modified_by_id = serializers.IntegerField(read_only=True)
    order_id = serializers.SerializerMethodField()

    class Meta:
        model = Reservation
        fields = (
            "id",
            "listing_id",
            "renter_id",
            "host_id",
            "start_date",
            "end_date",
            "status",
            "host_name",
            "host_email",
            "renter_name",
            "renter_email",
            "listing_title",
            "listing_image",
            "listing_latitude",
            "listing_longitude",
            "daily_price_cents",
            "total_days",
            "rental_type",
            "addons",
            "addons_total_cents",
            "new_dates_proposed",
            "last_modified",
            "modified_by_id",
            "order_id",
            "created_at",
        )
        read_only_fields = fields

    def get_order_id(self, obj):
        order = getattr(obj, "order", None)
        return order.id if order else None


class OrderSerializer(serializers.ModelSerializer):
    listing_id = serializers.IntegerField(read_only=True)
    renter_id = serializers.IntegerField(read_only=True)
    host_id = serializers.IntegerField(read_only=True)
    reservation_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Order
        fields = (
            "id",
            "order_number",
            "reservation_id",
            "listing_id",
            "host_id",
            "renter_id",
            "host_name",
            "host_email",
            "renter_name",
            "renter_email",
            "listing_title",
            "listing_image",
            "listing_latitude",
            "listing_longitude",
            "start_date",
            "end_date",
            "daily_price_cents",
            "total_days",
            "rental_type",
            "currency",
            "addons",
            "subtotal_cents",
            "daily_total_cents",
            "tax_cents",
            "host_earns_cents",
            "renter_pays_cents",
            "platform_commission_total_cents",
            "total_cents",
            "status",
            "created_at",
        )
        read_only_fields = fields

from django.db import transaction
from rest_framework import serializers

from .models import Favorite, Listing, ListingAddon
from .services import delete_image_objects, distance_to, replace_addons, replace_categories, replace_images


class ListingHostSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(read_only=True)
    username = serializers.CharField(read_only=True)
    avatar_url = serializers.CharField(source="display_avatar_url", read_only=True)


class ListingAddonSerializer(serializers.ModelSerializer):
    class Meta:
        model = ListingAddon
        fields = ["id", "name", "price_cents", "consumable", "quantity"]
        read_only_fields = ["id"]

    def validate_name(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Addon name is required.")
        return value


class ListingSerializer(serializers.ModelSerializer):
    """Listing with its categories, images and addons flattened for the client."""

    host = ListingHostSerializer(read_only=True)
    categories = serializers.ListField(
        child=serializers.CharField(max_length=64),
        source="category_names",
    )
    images = serializers.ListField(
        child=serializers.CharField(max_length=1024),
        source="image_urls",
    )
    addons = ListingAddonSerializer(many=True, required=False)
    distance_miles = serializers.SerializerMethodField()

    class Meta:
        model = Listing
        fields = [
            "id",
            "name",
            "description",
            "price_cents",
            "zip_code",
            "location_city",
            "latitude",
            "longitude",
            "host",
            "categories",
            "images",
            "addons",
            "delivery",
            "free_delivery",
            "instant_bookings",
            "enabled",
            "rating",
            "review_count",
            "distance_miles",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["host", "rating", "review_count", "created_at", "updated_at"]
        extra_kwargs = {
            "name": {"required": True, "allow_null": False, "allow_blank": False},
            "price_cents": {"required": True},
        }

    def get_distance_miles(self, obj):
        return distance_to(obj, self.context.get("origin"))

    def validate_name(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Name is required.")
        return value

    def validate_zip_code(self, value):
        if value in (None, ""):
            return None
        value = value.strip()
        if len(value) > 10:
            raise serializers.ValidationError("Enter a valid ZIP code.")
        return value

    def validate_categories(self, value):
        cleaned = [item.strip() for item in value if item and item.strip()]
        if not cleaned:
            raise serializers.ValidationError("At least one category is required.")
        return cleaned

    def validate_images(self, value):
        if not value:
            raise serializers.ValidationError("At least one image is required.")
        for url in value:
            if not url.startswith(("http://", "https://")):
                raise serializers.ValidationError("Images must be http(s) URLs.")
        return value

    def validate(self, attrs):
        if attrs.get("free_delivery") and not attrs.get(
            "delivery", getattr(self.instance, "delivery", False)
        ):
            raise serializers.ValidationError(
                {"free_delivery": ["Free delivery requires delivery to be offered."]}
            )
        return attrs

    def create(self, validated_data):
        categories = validated_data.pop("category_names")
        images = validated_data.pop("image_urls")
        addons = validated_data.pop("addons", [])
        with transaction.atomic():
            listing = Listing.objects.create(**validated_data)
            replace_categories(listing, categories)
            replace_images(listing, images)
            replace_addons(listing, addons)
        return listing

    def update(self, instance, validated_data):
        categories = validated_data.pop("category_names", None)
        images = validated_data.pop("image_urls", None)
        addons = validated_data.pop("addons", None)
        with transaction.atomic():
            for field, value in validated_data.items():
                setattr(instance, field, value)
            instance.save()
            if categories is not None:
                replace_categories(instance, categories)
            if images is not None:
                dropped = replace_images(instance, images)
                delete_image_objects(dropped)
            if addons is not None:
                replace_addons(instance, addons)
        # Drop stale prefetched categories/images/addons.
        instance._prefetched_objects_cache = {}
        return instance


class FavoriteSerializer(serializers.ModelSerializer):
    listing = ListingSerializer(read_only=True)

    class Meta:
        model = Favorite
        fields = ["id", "listing", "created_at"]

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Listing(models.Model):
    host = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="listings",
    )
    # Moderation can null out name, description and location.
    name = models.CharField(max_length=140, null=True, blank=True)
    description = models.TextField(null=True, blank=True)
    price_cents = models.PositiveIntegerField(validators=[MinValueValidator(0)])
    zip_code = models.CharField(max_length=10, null=True, blank=True)
    location_city = models.CharField(max_length=120, null=True, blank=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    delivery = models.BooleanField(default=False)
    free_delivery = models.BooleanField(default=False)
    instant_bookings = models.BooleanField(default=False)
    enabled = models.BooleanField(default=True)
    rating = models.FloatField(null=True, blank=True)
    review_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=("host", "created_at"), name="listing_host_created_idx"),
            models.Index(fields=("enabled", "created_at"), name="listing_enabled_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name or 'Untitled'} (#{self.pk})"

    @property
    def category_names(self) -> list[str]:
        return [row.name for row in self.categories.all()]

    @property
    def image_urls(self) -> list[str]:
        return [row.url for row in self.images.all()]

    @property
    def primary_image_url(self) -> str:
        urls = self.image_urls
        return urls[0] if urls else ""


class ListingCategory(models.Model):
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="categories")
    name = models.CharField(max_length=64)

    class Meta:
        ordering = ("id",)
        constraints = [
            models.UniqueConstraint(fields=("listing", "name"), name="uniq_listing_category"),
        ]

    def __str__(self) -> str:
        return self.name


class ListingImage(models.Model):
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="images")
    url = models.CharField(max_length=1024)
    position = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("position", "id")

    def __str__(self) -> str:
        return f"Image {self.pk} for listing {self.listing_id}"


class ListingAddon(models.Model):
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="addons")
    name = models.CharField(max_length=120)
    price_cents = models.PositiveIntegerField(default=0)
    consumable = models.BooleanField(
        default=False,
        help_text="Consumables are used up during the rental and are not insured.",
    )
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ("id",)

    def __str__(self) -> str:
        return f"{self.name} (+{self.price_cents}c)"


class Favorite(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="favorites",
    )
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="favorited_by")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)
        constraints = [
            models.UniqueConstraint(fields=("user", "listing"), name="uniq_favorite"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} <3 {self.listing_id}"

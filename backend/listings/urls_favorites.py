from django.urls import path

from .api import check_favorite, favorites, remove_favorite

urlpatterns = [
    path("", favorites, name="favorites"),
    path("<int:listing_id>/", remove_favorite, name="favorite_remove"),
    path("<int:listing_id>/check/", check_favorite, name="favorite_check"),
]

from django.urls import path

from .api import claims

urlpatterns = [
    path("", claims, name="claims"),
]

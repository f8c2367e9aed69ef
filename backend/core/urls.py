from django.urls import path

from . import views

app_name = "core"

urlpatterns = [
    path("reverse/", views.reverse_geocode_view, name="reverse_geocode"),
]

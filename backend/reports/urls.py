from django.urls import path

from .api import submit_report

urlpatterns = [
    path("", submit_report, name="reports"),
]

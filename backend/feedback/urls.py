from django.urls import path

from .api import submit_feedback

urlpatterns = [
    path("", submit_feedback, name="feedback"),
]

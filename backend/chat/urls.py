from django.urls import path

from chat import views

app_name = "chat"

urlpatterns = [
    path("", views.send_message, name="send"),
    path("conversations/", views.conversations, name="conversations"),
    path("<int:other_user_id>/", views.messages_with, name="messages-with"),
]

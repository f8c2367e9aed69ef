from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import LoginEvent, SocialIdentity, User, UserBlock, UserReview


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "admin", "moderator", "is_active", "date_joined")
    list_filter = BaseUserAdmin.list_filter + ("admin", "moderator")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Marketplace roles", {"fields": ("admin", "moderator")}),
        (
            "Badges",
            {"fields": ("founding_supporter", "top_referrer", "ambassador")},
        ),
        (
            "Profile",
            {
                "fields": (
                    "phone",
                    "avatar_url",
                    "city",
                    "postal_code",
                    "latitude",
                    "longitude",
                    "open_dms",
                    "email_verified",
                    "last_login_ip",
                    "last_login_ua",
                )
            },
        ),
    )


@admin.register(LoginEvent)
class LoginEventAdmin(admin.ModelAdmin):
    list_display = ("user", "ip", "browser", "device", "success", "method", "created_at")
    list_filter = ("success", "method", "device")
    search_fields = ("user__username", "user__email", "ip")
    readonly_fields = [field.name for field in LoginEvent._meta.fields]


admin.site.register(SocialIdentity)
admin.site.register(UserReview)
admin.site.register(UserBlock)

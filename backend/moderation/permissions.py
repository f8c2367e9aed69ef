from rest_framework.permissions import BasePermission


def is_admin(user) -> bool:
    return bool(user and user.is_authenticated and user.admin)


def is_moderator_or_admin(user) -> bool:
    return bool(user and user.is_authenticated and (user.admin or user.moderator))


class IsAdmin(BasePermission):
    """
    Allows access only to users flagged as admins.
    """

    message = "Admin access required"

    def has_permission(self, request, view):
        return is_admin(getattr(request, "user", None))


class IsModeratorOrAdmin(BasePermission):
    """
    Allows access to moderators and admins.
    """

    message = "Admin or Moderator access required"

    def has_permission(self, request, view):
        return is_moderator_or_admin(getattr(request, "user", None))

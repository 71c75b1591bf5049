from rest_framework import permissions
from .models import User


class IsAdminOrHigher(permissions.BasePermission):
    message = "Admin access required"

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user
            and user.is_authenticated
            and user.role in [User.Role.OWNER, User.Role.ADMIN]
        )

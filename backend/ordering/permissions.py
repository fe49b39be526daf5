from rest_framework import permissions

from .choices import UserType


class IsAdminUserType(permissions.BasePermission):
    """
    Permission to check if user is a back-office administrator
    """
    message = 'Admin access required'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return request.user.user_type == UserType.ADMIN or request.user.is_superuser


class IsOrderOwner(permissions.BasePermission):
    """
    Permission to check if the order belongs to the requesting customer
    """
    def has_object_permission(self, request, view, obj):
        return obj.customer_id == request.user.pk

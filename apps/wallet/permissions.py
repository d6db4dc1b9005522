"""
Custom permission classes for the wallet app.

Counter staff are ordinary users with ``is_staff`` set; the verification
console and balance adjustments are limited to them.
"""
from rest_framework.permissions import BasePermission


class IsCounterStaff(BasePermission):
    """
    Permission for staff-only console endpoints.

    Usage:
        @permission_classes([IsAuthenticated, IsCounterStaff])
        def redeem_share_code(request):
            ...
    """

    message = 'Only shop staff can use the verification console.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_staff)

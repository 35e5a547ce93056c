"""
Role-based permission mixins for ShiftGuard views.

Every view that handles sensitive data should use one of these mixins.
They build on Django's LoginRequiredMixin and add role checks.

Manager views additionally scope querysets to the manager's assigned locations
via the get_manager_locations() helper, preventing cross-location data leakage.

Usage:
    class MyView(ManagerRequiredMixin, View):
        def get(self, request):
            # Only shifts at this manager's locations
            shifts = Shift.objects.filter(location__in=self.get_manager_locations())
"""

import logging

from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.exceptions import PermissionDenied
from django.http import HttpRequest

logger = logging.getLogger(__name__)


def manageable_locations(user):
    """
    Owners and admins manage every active location, managers their assigned ones.

    Args:
        user: The signed-in user.

    Returns:
        A queryset of active Location rows.
    """
    from apps.locations.models import Location

    if user.can_unlock_periods:
        return Location.objects.filter(is_active=True)
    return user.managed_locations.filter(is_active=True)


class RoleRequiredMixin(LoginRequiredMixin):
    """
    Base mixin that enforces a specific user role.

    Subclasses set `required_roles` to the role string(s) to allow.
    """

    required_roles: list[str] = []

    def dispatch(self, request: HttpRequest, *args, **kwargs):
        """
        Check authentication and role before dispatching.

        Args:
            request: The incoming HTTP request.

        Returns:
            The view's response, or a login redirect for anonymous users.

        Raises:
            PermissionDenied: If the user doesn't have the required role.
        """
        if not request.user.is_authenticated:
            return self.handle_no_permission()

        if self.required_roles and request.user.role not in self.required_roles:
            logger.warning(
                "User %d (role=%s) attempted to access %s which requires role in %s.",
                request.user.pk,
                request.user.role,
                request.path,
                self.required_roles,
            )
            raise PermissionDenied("You don't have permission to access this page.")

        return super().dispatch(request, *args, **kwargs)


class AdminRequiredMixin(RoleRequiredMixin):
    """Restrict access to Owner and Admin users."""

    required_roles = ["owner", "admin"]


class ManagerRequiredMixin(RoleRequiredMixin):
    """Restrict access to Manager (and Owner/Admin) users."""

    required_roles = ["owner", "admin", "manager"]

    def get_manager_locations(self):
        """
        Return the queryset of locations this user can manage.

        Owners and admins see all locations. Managers see only their assigned locations.

        Returns:
            A queryset of Location rows.
        """
        return manageable_locations(self.request.user)

    def get_location_or_403(self, location_id):
        """
        Return a location the current manager has access to, or raise 403.

        Args:
            location_id: Primary key of the requested location.

        Returns:
            The Location instance.

        Raises:
            PermissionDenied: If the manager doesn't manage this location.
        """
        location = self.get_manager_locations().filter(pk=location_id).first()
        if not location:
            raise PermissionDenied("You don't manage this location.")
        return location


class StaffRequiredMixin(RoleRequiredMixin):
    """Restrict access to signed-in users of any role."""

    required_roles = ["owner", "admin", "manager", "staff"]

"""
ShiftGuard root URL configuration.

URL namespaces follow the pattern: app_name:view_name
  - accounts:      time off requests
  - locations:     operating hours
  - scheduling:    shifts, assignments, periods, change requests
  - workforce:     exceptions, approval queue
  - notifications: center, mark read
  - analytics:     labor cost
  - audit:         log, export
"""

from django.contrib import admin
from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.urls import include, path
from django.utils import timezone


def health_check(request):
    """
    Lightweight health check endpoint for the load balancer.

    Returns 200 OK with a JSON body confirming the app and DB are reachable.
    """
    # Ping the database to catch connection issues early
    try:
        connection.ensure_connection()
        db_ok = True
    except DatabaseError:
        db_ok = False

    status = 200 if db_ok else 503
    return JsonResponse(
        {
            "status": "ok" if db_ok else "degraded",
            "db": db_ok,
            "timestamp": timezone.now().isoformat(),
        },
        status=status,
    )


urlpatterns = [
    # Health check (no auth required, must be fast)
    path("health/", health_check, name="health_check"),

    # Django admin
    path("admin/", admin.site.urls),

    # App modules
    path("accounts/", include("apps.accounts.urls", namespace="accounts")),
    path("locations/", include("apps.locations.urls", namespace="locations")),
    path("", include("apps.scheduling.urls", namespace="scheduling")),
    path("workforce/", include("apps.workforce.urls", namespace="workforce")),
    path("notifications/", include("apps.notifications.urls", namespace="notifications")),
    path("analytics/", include("apps.analytics.urls", namespace="analytics")),
    path("audit/", include("apps.audit.urls", namespace="audit")),
]

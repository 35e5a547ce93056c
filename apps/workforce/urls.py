"""URL patterns for the workforce app."""
from django.urls import path
from . import views

app_name = "workforce"

urlpatterns = [
    path("queue/", views.ApprovalQueueView.as_view(), name="approval_queue"),
    path("exceptions/", views.ExceptionListView.as_view(), name="exceptions"),
    path("exceptions/<int:pk>/resolve/", views.ResolveExceptionView.as_view(), name="resolve_exception"),
    path("clock-in/", views.ClockInView.as_view(), name="clock_in"),
    path("clock-out/<int:pk>/", views.ClockOutView.as_view(), name="clock_out"),
]

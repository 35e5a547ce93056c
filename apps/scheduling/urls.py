"""URL patterns for the scheduling app."""
from django.urls import path
from . import views

app_name = "scheduling"

urlpatterns = [
    path("shifts/", views.ShiftWeekView.as_view(), name="shift_week"),
    path("shifts/create/", views.CreateShiftView.as_view(), name="create_shift"),
    path("shifts/publish/", views.BulkPublishView.as_view(), name="bulk_publish"),
    path("shifts/copy/", views.CopyScheduleView.as_view(), name="copy_schedule"),
    path("shifts/<int:pk>/update/", views.UpdateShiftView.as_view(), name="update_shift"),
    path("shifts/<int:pk>/delete/", views.DeleteShiftView.as_view(), name="delete_shift"),
    path("shifts/<int:pk>/assignments/", views.ShiftAssignmentsView.as_view(), name="shift_assignments"),
    path("shifts/<int:pk>/eligible/", views.EligibleEmployeesView.as_view(), name="eligible_employees"),
    path("shifts/<int:pk>/assign/", views.AssignShiftView.as_view(), name="assign_shift"),
    path(
        "assignments/<int:pk>/<str:decision>/",
        views.AssignmentDecisionView.as_view(),
        name="assignment_decision",
    ),
    path("periods/", views.PeriodWeekView.as_view(), name="period_week"),
    path("periods/<str:transition>/", views.PeriodTransitionView.as_view(), name="period_transition"),
    path("change-requests/", views.ChangeRequestListView.as_view(), name="change_requests"),
    path(
        "change-requests/<int:pk>/<str:decision>/",
        views.ChangeRequestDecisionView.as_view(),
        name="change_request_decision",
    ),
]

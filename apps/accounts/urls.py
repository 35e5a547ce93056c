"""URL patterns for the accounts app."""
from django.urls import path
from . import views

app_name = "accounts"


urlpatterns = [
    path("staff/", views.StaffListView.as_view(), name="staff_list"),
    path("time-off/", views.TimeOffView.as_view(), name="time_off"),
    path("time-off/pending/", views.PendingTimeOffView.as_view(), name="time_off_pending"),
    path("time-off/<int:pk>/<str:decision>/", views.TimeOffReviewView.as_view(), name="time_off_review"),
]

"""URL patterns for the locations app."""


from django.urls import path
from . import views

app_name = "locations"


urlpatterns = [
    path("", views.LocationListView.as_view(), name="list"),
    path("<int:pk>/hours/", views.OperatingHoursView.as_view(), name="operating_hours"),
]

"""URL patterns for the analytics app."""
from django.urls import path
from . import views

app_name = "analytics"

urlpatterns = [
    path("labor-cost/", views.LaborCostView.as_view(), name="labor_cost"),
]

"""URL routes for billing endpoints."""
from django.urls import path

from .views import PlanDetailView, PlanListView, UsageMetricView, UsageView

app_name = "billing"

urlpatterns = [
    path("usage/", UsageView.as_view(), name="usage"),
    path("usage/<str:metric>/", UsageMetricView.as_view(), name="usage-metric"),
    path("plans/", PlanListView.as_view(), name="plan-list"),
    path("plans/<str:plan>/", PlanDetailView.as_view(), name="plan-detail"),
]

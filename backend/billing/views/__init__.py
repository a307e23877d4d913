"""Billing API views for plans and usage."""

from .plans import PlanDetailView, PlanListView
from .usage import UsageMetricView, UsageView

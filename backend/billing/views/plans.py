"""Read-only view of the static plan table."""
from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.plans import PLANS, UnknownPlan, strict_tier
from billing.serializers import PlanSerializer


def _serialize(tier) -> dict:
    return PlanSerializer({"key": tier.value, **PLANS[tier].as_dict()}).data


class PlanListView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({"plans": [_serialize(tier) for tier in PLANS]})


class PlanDetailView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, plan):
        try:
            tier = strict_tier(plan)
        except UnknownPlan as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        return Response(_serialize(tier))

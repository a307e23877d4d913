"""Usage endpoints for the authenticated user's quota dashboard."""
from __future__ import annotations

from rest_framework import status
from rest_framework.authentication import TokenAuthentication
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.services.usage_ledger import InvalidMetric, UserNotFound, check_usage, usage_summary


class UsageView(APIView):
    """Plan, limits and current counters for every metric."""

    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated]

    def get(self, request):
        try:
            payload = usage_summary(request.user.pk)
        except UserNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        return Response(payload)


class UsageMetricView(APIView):
    """Non-reserving check for a single metric."""

    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated]

    def get(self, request, metric):
        try:
            decision = check_usage(request.user.pk, metric)
        except InvalidMetric as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except UserNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        return Response(decision.as_dict())

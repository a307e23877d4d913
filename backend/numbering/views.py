"""Numbering settings endpoint: preview the next number and change the prefix."""
from __future__ import annotations

import logging

from rest_framework import serializers, status
from rest_framework.authentication import TokenAuthentication
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from numbering.services.allocator import (
    InvalidDocumentType,
    InvalidPrefix,
    UserNotFound,
    peek_next_number,
    set_prefix,
)

logger = logging.getLogger(__name__)


class PrefixUpdateSerializer(serializers.Serializer):
    prefix = serializers.CharField(max_length=10, allow_blank=False, trim_whitespace=True)


class NumberingSettingsView(APIView):
    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated]

    def get(self, request, document_type):
        try:
            preview = peek_next_number(request.user.pk, document_type)
        except InvalidDocumentType as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except UserNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        return Response(_payload(preview))

    def patch(self, request, document_type):
        serializer = PrefixUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            set_prefix(request.user.pk, document_type, serializer.validated_data["prefix"])
            preview = peek_next_number(request.user.pk, document_type)
        except InvalidDocumentType as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except InvalidPrefix as exc:
            return Response({"prefix": [str(exc)]}, status=status.HTTP_400_BAD_REQUEST)
        logger.info("User %s changed %s prefix to %s", request.user.pk, document_type, preview.prefix)
        return Response(_payload(preview))


def _payload(preview) -> dict:
    return {
        "document_type": preview.document_type,
        "prefix": preview.prefix,
        "year": preview.year,
        "next_number": preview.number,
        "next_formatted": preview.formatted,
    }

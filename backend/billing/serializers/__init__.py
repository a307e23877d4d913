"""Serializers for billing API responses."""
from __future__ import annotations

from rest_framework import serializers

from billing.plans import UNLIMITED


class LimitField(serializers.Field):
    """Integer quota or the literal ``"unlimited"``."""

    def to_representation(self, value):
        if value == UNLIMITED:
            return UNLIMITED
        return int(value)


class PlanSerializer(serializers.Serializer):
    key = serializers.CharField()
    name = serializers.CharField()
    price = serializers.IntegerField()
    price_annual = serializers.IntegerField()
    invoices_per_month = LimitField()
    quotes_per_month = LimitField()
    expenses_per_month = LimitField()
    clients = LimitField()
    templates = LimitField()
    ocr_scans = serializers.BooleanField()
    advanced_ocr = serializers.BooleanField()
    email_automation = serializers.BooleanField()
    payment_reminders = serializers.BooleanField()
    advanced_stats = serializers.BooleanField()
    multi_user = serializers.BooleanField()
    api_access = serializers.BooleanField()
    electronic_signature = serializers.BooleanField()
    csv_export = serializers.BooleanField()
    support = serializers.CharField()

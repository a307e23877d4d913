from rest_framework import serializers

from .models import AuditEntry


class AuditEntrySerializer(serializers.ModelSerializer):
    user = serializers.SerializerMethodField()
    summary = serializers.SerializerMethodField()

    class Meta:
        model = AuditEntry
        fields = (
            "id",
            "document_type",
            "document_id",
            "user",
            "action",
            "summary",
            "changes",
            "performed_by",
            "performed_at",
            "ip_address",
            "user_agent",
            "metadata",
        )
        read_only_fields = fields

    def get_user(self, obj):
        user = getattr(obj, "user", None)
        if not user:
            return None
        return {
            "id": user.pk,
            "username": getattr(user, "username", None),
            "email": getattr(user, "email", None),
        }

    def get_summary(self, obj) -> str:
        label = obj.get_action_display()
        fields = [change.get("field") for change in (obj.changes or []) if isinstance(change, dict)]
        if fields:
            return f"{label} • {', '.join(str(field) for field in fields)}"
        return label

from __future__ import annotations

from rest_framework import serializers

from ..models import Entitlement


class EntitlementSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source="public_id", read_only=True)
    status = serializers.SerializerMethodField()
    is_current = serializers.BooleanField(read_only=True)
    edits_remaining = serializers.IntegerField(read_only=True)
    category_changes_remaining = serializers.IntegerField(read_only=True)

    class Meta:
        model = Entitlement
        fields = (
            "id",
            "transaction_id",
            "original_transaction_id",
            "job_post_id",
            "plan_key",
            "source",
            "status",
            "is_current",
            "max_edits",
            "edits_used",
            "edits_remaining",
            "allow_category_change",
            "max_category_changes",
            "category_changes_used",
            "category_changes_remaining",
            "has_featured_option",
            "issued_at",
            "expires_at",
            "assignment_deadline",
        )
        read_only_fields = fields

    def get_status(self, obj: Entitlement) -> str:
        return obj.effective_status()


class RestoredEntitlementSerializer(EntitlementSerializer):
    job = serializers.SerializerMethodField()

    class Meta(EntitlementSerializer.Meta):
        fields = (*EntitlementSerializer.Meta.fields, "job")
        read_only_fields = fields

    def get_job(self, obj: Entitlement):
        resource = self.context.get("resources", {}).get(obj.job_post_id)
        return resource.as_dict() if resource else None


class AssignEntitlementSerializer(serializers.Serializer):
    job_post_id = serializers.CharField(max_length=64)

from __future__ import annotations

from rest_framework import serializers

from ..models import IapProduct, Plan


class PlanSerializer(serializers.ModelSerializer):
    class Meta:
        model = Plan
        fields = (
            "code",
            "name",
            "duration_days",
            "allowed_modifications",
            "can_modify_category",
            "category_modifications",
            "has_featured_option",
        )
        read_only_fields = fields


class IapProductSerializer(serializers.ModelSerializer):
    plan_key = serializers.CharField(source="plan_id", read_only=True)
    plan = PlanSerializer(read_only=True)

    class Meta:
        model = IapProduct
        fields = ("product_id", "platform", "plan_key", "plan", "active")
        read_only_fields = fields


class ProductListQuerySerializer(serializers.Serializer):
    platform = serializers.CharField(max_length=16)

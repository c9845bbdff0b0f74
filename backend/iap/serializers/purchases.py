from __future__ import annotations

from rest_framework import serializers

from ..tools.receipts import ApplePurchaseProof, GooglePurchaseProof


class VerifyAppleSerializer(serializers.Serializer):
    product_id = serializers.CharField(max_length=191)
    transaction_id = serializers.CharField(max_length=191)
    signed_transaction_info = serializers.CharField(required=False, allow_blank=True)
    signed_renewal_info = serializers.CharField(required=False, allow_blank=True)
    job_post_id = serializers.CharField(required=False, allow_blank=True, max_length=64)

    def to_proof(self) -> ApplePurchaseProof:
        data = self.validated_data
        return ApplePurchaseProof(
            product_id=data["product_id"].strip(),
            transaction_id=data["transaction_id"].strip(),
            signed_transaction_info=data.get("signed_transaction_info", "").strip(),
            signed_renewal_info=data.get("signed_renewal_info", "").strip(),
        )


class VerifyGoogleSerializer(serializers.Serializer):
    product_id = serializers.CharField(max_length=191)
    purchase_token = serializers.CharField(max_length=4096)
    order_id = serializers.CharField(required=False, allow_blank=True, max_length=191)
    job_post_id = serializers.CharField(required=False, allow_blank=True, max_length=64)

    def to_proof(self) -> GooglePurchaseProof:
        data = self.validated_data
        return GooglePurchaseProof(
            product_id=data["product_id"].strip(),
            purchase_token=data["purchase_token"].strip(),
            order_id=data.get("order_id", "").strip(),
        )


class ReportedPurchaseSerializer(serializers.Serializer):
    product_id = serializers.CharField(required=False, allow_blank=True, max_length=191)
    transaction_id = serializers.CharField(required=False, allow_blank=True, max_length=191)
    order_id = serializers.CharField(required=False, allow_blank=True, max_length=191)
    purchase_token = serializers.CharField(required=False, allow_blank=True, max_length=4096)


class RestoreSerializer(serializers.Serializer):
    platform = serializers.CharField(max_length=16)
    purchases = ReportedPurchaseSerializer(many=True, required=False)

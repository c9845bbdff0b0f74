from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from ..models import Platform
from ..serializers import (
    EntitlementSerializer,
    RestoredEntitlementSerializer,
    RestoreSerializer,
    VerifyAppleSerializer,
    VerifyGoogleSerializer,
)
from ..tools.purchases import restore_purchases, verify_purchase
from .helpers import _safe_str, get_request_user_id

logger = logging.getLogger(__name__)


class BaseVerifyPurchaseView(APIView):
    """Verify a store purchase and issue its entitlement.

    Not wrapped in ``transaction.atomic``. The ledger opens its own short
    transaction once the store round trip has finished.
    """

    permission_classes = [IsAuthenticated]
    throttle_scope = "iap_verify"
    platform = ""
    serializer_class = None

    def post(self, request):
        user_id = get_request_user_id(request)
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = verify_purchase(
            user_id,
            self.platform,
            serializer.to_proof(),
            target_resource_id=_safe_str(serializer.validated_data.get("job_post_id")) or None,
        )
        logger.info(
            "Verified %s purchase for user %s (entitlement=%s).",
            self.platform,
            user_id,
            result.entitlement.public_id,
        )
        return Response(
            {
                "ok": result.ok,
                "entitlement": EntitlementSerializer(result.entitlement).data,
                "expires_at": result.expires_at,
            },
            status=status.HTTP_201_CREATED,
        )


class AppleVerifyPurchaseView(BaseVerifyPurchaseView):
    platform = Platform.IOS
    serializer_class = VerifyAppleSerializer


class GoogleVerifyPurchaseView(BaseVerifyPurchaseView):
    platform = Platform.ANDROID
    serializer_class = VerifyGoogleSerializer


class RestorePurchasesView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "iap_restore"

    def post(self, request):
        user_id = get_request_user_id(request)
        serializer = RestoreSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = restore_purchases(
            user_id,
            serializer.validated_data["platform"],
            purchases=serializer.validated_data.get("purchases"),
        )
        entitlements = RestoredEntitlementSerializer(
            result.entitlements,
            many=True,
            context={"resources": result.resources},
        ).data
        return Response({"restored_count": result.restored_count, "entitlements": entitlements})

"""Development-only receipt verifier.

``AcceptAllReceiptVerifier`` never contacts Apple or Google. It trusts the ids
the client sends, so anyone can mint entitlements with it. Settings refuse to
select it unless ``DJANGO_DEBUG`` is on.
"""

from __future__ import annotations

import logging

from ...exceptions import PurchaseInvalid
from ...models import Entitlement, Platform
from .base import (
    ApplePurchaseProof,
    GooglePurchaseProof,
    NormalizedPurchase,
    ReceiptVerifier,
    decode_signed_payload,
)

logger = logging.getLogger(__name__)


class AcceptAllReceiptVerifier(ReceiptVerifier):
    is_production_safe = False

    def __init__(self, platform: str):
        self.platform = platform
        self.source = (
            Entitlement.Source.APPLE_IAP if platform == Platform.IOS else Entitlement.Source.GOOGLE_PLAY
        )

    def verify(self, proof) -> NormalizedPurchase:
        logger.warning(
            "Accepting %s purchase for %s WITHOUT store verification (development only).",
            self.platform,
            getattr(proof, "product_id", ""),
        )
        if isinstance(proof, ApplePurchaseProof):
            return self._verify_apple(proof)
        if isinstance(proof, GooglePurchaseProof):
            return self._verify_google(proof)
        raise PurchaseInvalid("Unsupported purchase proof.")

    def _verify_apple(self, proof: ApplePurchaseProof) -> NormalizedPurchase:
        transaction_id = str(proof.transaction_id or "").strip()
        if not transaction_id or not proof.product_id:
            raise PurchaseInvalid("productId and transactionId are required.")

        original_transaction_id = transaction_id
        if proof.signed_transaction_info:
            info = decode_signed_payload(proof.signed_transaction_info, field_name="signedTransactionInfo")
            signed_id = str(info.get("transactionId") or "")
            signed_product = str(info.get("productId") or "")
            if signed_id and signed_id != transaction_id:
                raise PurchaseInvalid("signedTransactionInfo does not match transactionId.")
            if signed_product and signed_product != proof.product_id:
                raise PurchaseInvalid("signedTransactionInfo does not match productId.")
            original_transaction_id = str(info.get("originalTransactionId") or transaction_id)

        return NormalizedPurchase(
            product_id=proof.product_id,
            transaction_id=transaction_id,
            original_transaction_id=original_transaction_id,
            raw=proof.to_payload(),
        )

    def _verify_google(self, proof: GooglePurchaseProof) -> NormalizedPurchase:
        purchase_token = str(proof.purchase_token or "").strip()
        if not purchase_token or not proof.product_id:
            raise PurchaseInvalid("productId and purchaseToken are required.")

        order_id = str(proof.order_id or "").strip()
        return NormalizedPurchase(
            product_id=proof.product_id,
            transaction_id=order_id or purchase_token,
            original_transaction_id=order_id or None,
            raw=proof.to_payload(),
        )

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import jwt

from ...exceptions import PurchaseInvalid


@dataclass(frozen=True)
class ApplePurchaseProof:
    product_id: str
    transaction_id: str
    signed_transaction_info: str = ""
    signed_renewal_info: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "transactionId": self.transaction_id,
            "signedTransactionInfo": self.signed_transaction_info or None,
            "signedRenewalInfo": self.signed_renewal_info or None,
        }


@dataclass(frozen=True)
class GooglePurchaseProof:
    product_id: str
    purchase_token: str
    order_id: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "purchaseToken": self.purchase_token,
            "orderId": self.order_id or None,
        }


@dataclass(frozen=True)
class NormalizedPurchase:
    product_id: str
    transaction_id: str
    original_transaction_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


class ReceiptVerifier:
    """Validates a platform purchase proof and returns normalized purchase facts.

    Subclasses must raise ``PurchaseInvalid`` when the proof is malformed or the
    store rejects it, and ``VerificationUnavailable`` when the store cannot be
    reached. They must never fall back to accepting the proof on network errors.
    """

    platform = ""
    source = ""
    is_production_safe = True

    def verify(self, proof) -> NormalizedPurchase:
        raise NotImplementedError


def decode_signed_payload(signed_value: str, *, field_name: str) -> dict[str, Any]:
    """Read the claims of a store-signed JWS without checking its signature."""
    try:
        claims = jwt.decode(
            signed_value,
            options={"verify_signature": False, "verify_exp": False, "verify_aud": False},
        )
    except jwt.PyJWTError as exc:
        raise PurchaseInvalid(f"{field_name} is not a well-formed signed payload.") from exc
    if not isinstance(claims, dict):
        raise PurchaseInvalid(f"{field_name} has an unexpected payload.")
    return claims

from __future__ import annotations

import logging
import time
from urllib.parse import quote

import jwt
from django.conf import settings

from ...exceptions import PurchaseInvalid, VerificationUnavailable
from ...models import Entitlement, Platform
from .base import ApplePurchaseProof, NormalizedPurchase, ReceiptVerifier, decode_signed_payload
from .http import StoreRequestError, store_request_json

logger = logging.getLogger(__name__)

APP_STORE_SERVER_URLS = {
    "production": "https://api.storekit.itunes.apple.com",
    "sandbox": "https://api.storekit-sandbox.itunes.apple.com",
}
APP_STORE_TOKEN_AUDIENCE = "appstoreconnect-v1"
APP_STORE_TOKEN_TTL_SECONDS = 300


def _setting(name: str, default: str = "") -> str:
    return str(getattr(settings, name, default) or "").strip()


class AppStoreServerVerifier(ReceiptVerifier):
    """Looks a transaction up through the App Store Server API."""

    platform = Platform.IOS
    source = Entitlement.Source.APPLE_IAP

    def __init__(
        self,
        *,
        bundle_id: str | None = None,
        issuer_id: str | None = None,
        key_id: str | None = None,
        private_key: str | None = None,
        environment: str | None = None,
    ):
        self.bundle_id = bundle_id if bundle_id is not None else _setting("APPLE_IAP_BUNDLE_ID")
        self.issuer_id = issuer_id if issuer_id is not None else _setting("APPLE_IAP_ISSUER_ID")
        self.key_id = key_id if key_id is not None else _setting("APPLE_IAP_KEY_ID")
        raw_key = private_key if private_key is not None else _setting("APPLE_IAP_PRIVATE_KEY")
        self.private_key = raw_key.replace("\\n", "\n")
        self.environment = (environment or _setting("APPLE_IAP_ENVIRONMENT", "production")).lower()

    def _require_configuration(self) -> None:
        missing = [
            name
            for name, value in (
                ("APPLE_IAP_BUNDLE_ID", self.bundle_id),
                ("APPLE_IAP_ISSUER_ID", self.issuer_id),
                ("APPLE_IAP_KEY_ID", self.key_id),
                ("APPLE_IAP_PRIVATE_KEY", self.private_key),
            )
            if not value
        ]
        if missing:
            logger.error("App Store verification is not configured: missing %s.", ", ".join(missing))
            raise VerificationUnavailable("Apple purchase verification is not configured.")
        if self.environment not in APP_STORE_SERVER_URLS:
            logger.error("Unknown APPLE_IAP_ENVIRONMENT %r.", self.environment)
            raise VerificationUnavailable("Apple purchase verification is not configured.")

    def _api_token(self) -> str:
        issued_at = int(time.time())
        try:
            return jwt.encode(
                {
                    "iss": self.issuer_id,
                    "iat": issued_at,
                    "exp": issued_at + APP_STORE_TOKEN_TTL_SECONDS,
                    "aud": APP_STORE_TOKEN_AUDIENCE,
                    "bid": self.bundle_id,
                },
                self.private_key,
                algorithm="ES256",
                headers={"kid": self.key_id, "typ": "JWT"},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            logger.error("Could not sign App Store Server API token: %s", exc)
            raise VerificationUnavailable("Apple purchase verification is not configured.") from exc

    def verify(self, proof: ApplePurchaseProof) -> NormalizedPurchase:
        transaction_id = str(proof.transaction_id or "").strip()
        if not transaction_id:
            raise PurchaseInvalid("transactionId is required.")
        self._require_configuration()

        url = (
            f"{APP_STORE_SERVER_URLS[self.environment]}/inApps/v1/transactions/"
            f"{quote(transaction_id, safe='')}"
        )
        try:
            response = store_request_json(url, headers={"Authorization": f"Bearer {self._api_token()}"})
        except StoreRequestError as exc:
            if exc.status_code in {401, 403}:
                logger.error("App Store Server API rejected our credentials (HTTP %s).", exc.status_code)
                raise VerificationUnavailable("Apple purchase verification is not configured.") from exc
            logger.warning("App Store rejected transaction %s (HTTP %s).", transaction_id, exc.status_code)
            raise PurchaseInvalid("Apple did not recognize this transaction.") from exc

        signed_info = str(response.get("signedTransactionInfo") or "").strip()
        if not signed_info:
            raise PurchaseInvalid("Apple returned no transaction information.")
        info = decode_signed_payload(signed_info, field_name="signedTransactionInfo")

        if str(info.get("bundleId") or "") != self.bundle_id:
            raise PurchaseInvalid("Transaction belongs to a different app.")
        if str(info.get("productId") or "") != proof.product_id:
            raise PurchaseInvalid("Transaction product does not match the requested product.")
        if info.get("revocationDate"):
            raise PurchaseInvalid("Transaction was refunded or revoked.")

        verified_id = str(info.get("transactionId") or transaction_id)
        return NormalizedPurchase(
            product_id=str(info["productId"]),
            transaction_id=verified_id,
            original_transaction_id=str(info.get("originalTransactionId") or verified_id),
            raw=proof.to_payload(),
        )

from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any
from urllib.parse import quote

import jwt
from django.conf import settings

from ...exceptions import PurchaseInvalid, VerificationUnavailable
from ...models import Entitlement, Platform
from .base import GooglePurchaseProof, NormalizedPurchase, ReceiptVerifier
from .http import StoreRequestError, store_request_json

logger = logging.getLogger(__name__)

ANDROID_PUBLISHER_URL = "https://androidpublisher.googleapis.com/androidpublisher/v3"
ANDROID_PUBLISHER_SCOPE = "https://www.googleapis.com/auth/androidpublisher"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
PURCHASE_STATE_PURCHASED = 0

_TOKEN_LOCK = threading.Lock()
_TOKEN_CACHE: dict[str, tuple[str, float]] = {}


def _setting(name: str, default: str = "") -> str:
    return str(getattr(settings, name, default) or "").strip()


class GooglePlayDeveloperVerifier(ReceiptVerifier):
    """Checks a purchase token against the Google Play Developer API."""

    platform = Platform.ANDROID
    source = Entitlement.Source.GOOGLE_PLAY

    def __init__(self, *, package_name: str | None = None, service_account_file: str | None = None):
        self.package_name = package_name if package_name is not None else _setting("GOOGLE_PLAY_PACKAGE_NAME")
        self.service_account_file = (
            service_account_file
            if service_account_file is not None
            else _setting("GOOGLE_PLAY_SERVICE_ACCOUNT_FILE")
        )

    def _service_account(self) -> dict[str, Any]:
        if not self.package_name or not self.service_account_file:
            logger.error("Google Play verification is not configured.")
            raise VerificationUnavailable("Google purchase verification is not configured.")
        try:
            data = json.loads(Path(self.service_account_file).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Could not read Google service account file: %s", exc)
            raise VerificationUnavailable("Google purchase verification is not configured.") from exc
        if not data.get("client_email") or not data.get("private_key"):
            raise VerificationUnavailable("Google purchase verification is not configured.")
        return data

    def _access_token(self) -> str:
        account = self._service_account()
        cache_key = account["client_email"]
        with _TOKEN_LOCK:
            cached = _TOKEN_CACHE.get(cache_key)
            if cached and cached[1] > time.time() + 60:
                return cached[0]

        token_uri = account.get("token_uri") or GOOGLE_TOKEN_URI
        issued_at = int(time.time())
        try:
            assertion = jwt.encode(
                {
                    "iss": account["client_email"],
                    "scope": ANDROID_PUBLISHER_SCOPE,
                    "aud": token_uri,
                    "iat": issued_at,
                    "exp": issued_at + 3600,
                },
                account["private_key"],
                algorithm="RS256",
                headers={"kid": account.get("private_key_id", "")},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            logger.error("Could not sign Google service account assertion: %s", exc)
            raise VerificationUnavailable("Google purchase verification is not configured.") from exc

        try:
            response = store_request_json(
                token_uri,
                method="POST",
                form={
                    "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
                    "assertion": assertion,
                },
            )
        except StoreRequestError as exc:
            logger.error("Google OAuth token exchange failed (HTTP %s).", exc.status_code)
            raise VerificationUnavailable("Google purchase verification is not configured.") from exc

        access_token = str(response.get("access_token") or "")
        if not access_token:
            raise VerificationUnavailable("Google did not issue an access token.")
        try:
            expires_in = int(response.get("expires_in") or 3600)
        except (TypeError, ValueError):
            expires_in = 3600
        with _TOKEN_LOCK:
            _TOKEN_CACHE[cache_key] = (access_token, time.time() + expires_in)
        return access_token

    def verify(self, proof: GooglePurchaseProof) -> NormalizedPurchase:
        purchase_token = str(proof.purchase_token or "").strip()
        product_id = str(proof.product_id or "").strip()
        if not purchase_token or not product_id:
            raise PurchaseInvalid("productId and purchaseToken are required.")

        url = (
            f"{ANDROID_PUBLISHER_URL}/applications/{quote(self.package_name, safe='')}"
            f"/purchases/products/{quote(product_id, safe='')}/tokens/{quote(purchase_token, safe='')}"
        )
        access_token = self._access_token()
        try:
            purchase = store_request_json(url, headers={"Authorization": f"Bearer {access_token}"})
        except StoreRequestError as exc:
            if exc.status_code in {401, 403}:
                logger.error("Google Play Developer API rejected our credentials (HTTP %s).", exc.status_code)
                raise VerificationUnavailable("Google purchase verification is not configured.") from exc
            logger.warning("Google Play rejected purchase token for %s (HTTP %s).", product_id, exc.status_code)
            raise PurchaseInvalid("Google Play did not recognize this purchase.") from exc

        purchase_state = purchase.get("purchaseState")
        try:
            purchased = purchase_state is not None and int(purchase_state) == PURCHASE_STATE_PURCHASED
        except (TypeError, ValueError):
            purchased = False
        if not purchased:
            raise PurchaseInvalid("Purchase is pending or was cancelled.")

        verified_order_id = str(purchase.get("orderId") or "").strip()
        if proof.order_id and verified_order_id and proof.order_id != verified_order_id:
            raise PurchaseInvalid("orderId does not match the purchase token.")

        return NormalizedPurchase(
            product_id=str(purchase.get("productId") or product_id),
            transaction_id=verified_order_id or purchase_token,
            original_transaction_id=verified_order_id or None,
            raw={**proof.to_payload(), "purchaseState": purchase_state},
        )

from __future__ import annotations

import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from ...exceptions import VerificationUnavailable
from ...models import Platform
from .apple import AppStoreServerVerifier
from .base import ReceiptVerifier
from .development import AcceptAllReceiptVerifier
from .google import GooglePlayDeveloperVerifier

logger = logging.getLogger(__name__)

VERIFICATION_MODE_REMOTE = "remote"
VERIFICATION_MODE_ACCEPT_ALL = "accept_all"

_REMOTE_VERIFIERS = {
    Platform.IOS.value: AppStoreServerVerifier,
    Platform.ANDROID.value: GooglePlayDeveloperVerifier,
}
_OVERRIDE_SETTINGS = {
    Platform.IOS.value: "IAP_APPLE_VERIFIER_CLASS",
    Platform.ANDROID.value: "IAP_GOOGLE_VERIFIER_CLASS",
}


def get_receipt_verifier(platform: str) -> ReceiptVerifier:
    override = str(getattr(settings, _OVERRIDE_SETTINGS[str(platform)], "") or "").strip()
    if override:
        try:
            return import_string(override)()
        except (ImportError, ImproperlyConfigured) as exc:
            logger.error("Could not load receipt verifier %s: %s", override, exc)
            raise VerificationUnavailable("Purchase verification is misconfigured.") from exc

    mode = str(getattr(settings, "IAP_VERIFICATION_MODE", VERIFICATION_MODE_REMOTE) or "").strip().lower()
    if mode == VERIFICATION_MODE_ACCEPT_ALL:
        return AcceptAllReceiptVerifier(platform)
    if mode != VERIFICATION_MODE_REMOTE:
        logger.error("Unknown IAP_VERIFICATION_MODE %r.", mode)
        raise VerificationUnavailable("Purchase verification is misconfigured.")
    return _REMOTE_VERIFIERS[str(platform)]()

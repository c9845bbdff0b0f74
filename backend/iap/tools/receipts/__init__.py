from .apple import AppStoreServerVerifier
from .base import (
    ApplePurchaseProof,
    GooglePurchaseProof,
    NormalizedPurchase,
    ReceiptVerifier,
    decode_signed_payload,
)
from .development import AcceptAllReceiptVerifier
from .google import GooglePlayDeveloperVerifier
from .registry import VERIFICATION_MODE_ACCEPT_ALL, VERIFICATION_MODE_REMOTE, get_receipt_verifier

__all__ = [
    "AcceptAllReceiptVerifier",
    "AppStoreServerVerifier",
    "ApplePurchaseProof",
    "GooglePlayDeveloperVerifier",
    "GooglePurchaseProof",
    "NormalizedPurchase",
    "ReceiptVerifier",
    "VERIFICATION_MODE_ACCEPT_ALL",
    "VERIFICATION_MODE_REMOTE",
    "decode_signed_payload",
    "get_receipt_verifier",
]

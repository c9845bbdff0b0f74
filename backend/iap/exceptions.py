from __future__ import annotations

from typing import Any

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler


class EntitlementError(APIException):
    """Base class for every error the purchase engine lets reach a caller."""

    retryable = False


class PurchaseNotFound(EntitlementError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"
    default_detail = "The requested product, plan, or resource was not found."


class PurchaseInvalid(EntitlementError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid_purchase"
    default_detail = "The purchase proof is malformed or was rejected by the store."


class PurchaseAlreadyProcessed(EntitlementError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "already_processed"
    default_detail = "This purchase has already been processed."

    def __init__(self, detail=None, code=None, *, transaction_id: str = "", entitlement=None):
        super().__init__(detail=detail, code=code)
        self.transaction_id = transaction_id
        self.entitlement = entitlement


class VerificationUnavailable(EntitlementError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_code = "verification_unavailable"
    default_detail = "Purchase verification is temporarily unavailable. Retry later."
    retryable = True


class QuotaExceeded(EntitlementError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_code = "quota_exceeded"
    default_detail = "The entitlement has no remaining quota for this action."


def iap_exception_handler(exc: Exception, context: dict[str, Any]):
    response = exception_handler(exc, context)
    if response is None or not isinstance(exc, EntitlementError):
        return response

    body = response.data if isinstance(response.data, dict) else {"detail": response.data}
    body["ok"] = False
    body["error"] = exc.default_code
    body["retryable"] = exc.retryable

    if isinstance(exc, PurchaseAlreadyProcessed):
        body["already_applied"] = True
        if exc.entitlement is not None:
            from .serializers import EntitlementSerializer

            body["entitlement"] = EntitlementSerializer(exc.entitlement).data

    response.data = body
    return response

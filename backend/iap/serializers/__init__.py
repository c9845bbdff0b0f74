from .catalog import IapProductSerializer, PlanSerializer, ProductListQuerySerializer
from .entitlements import AssignEntitlementSerializer, EntitlementSerializer, RestoredEntitlementSerializer
from .purchases import (
    ReportedPurchaseSerializer,
    RestoreSerializer,
    VerifyAppleSerializer,
    VerifyGoogleSerializer,
)

__all__ = [
    "AssignEntitlementSerializer",
    "EntitlementSerializer",
    "IapProductSerializer",
    "PlanSerializer",
    "ProductListQuerySerializer",
    "ReportedPurchaseSerializer",
    "RestoreSerializer",
    "RestoredEntitlementSerializer",
    "VerifyAppleSerializer",
    "VerifyGoogleSerializer",
]

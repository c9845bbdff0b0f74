from .catalog import IapProduct, Plan, Platform, normalize_platform
from .entitlements import Entitlement
from .listings import JobPost

__all__ = [
    "Plan",
    "IapProduct",
    "Platform",
    "normalize_platform",
    "Entitlement",
    "JobPost",
]

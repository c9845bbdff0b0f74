from .orchestrator import PurchaseResult, RestoreResult, restore_purchases, verify_purchase

__all__ = [
    "PurchaseResult",
    "RestoreResult",
    "restore_purchases",
    "verify_purchase",
]

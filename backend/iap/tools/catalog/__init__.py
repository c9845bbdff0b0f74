from .lookup import PlanTerms, get_plan_terms, list_products, require_platform, resolve_plan_key

__all__ = [
    "PlanTerms",
    "get_plan_terms",
    "list_products",
    "require_platform",
    "resolve_plan_key",
]

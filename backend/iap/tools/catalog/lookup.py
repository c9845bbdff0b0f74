from __future__ import annotations

import logging
from dataclasses import dataclass

from ...exceptions import PurchaseInvalid, PurchaseNotFound
from ...models import IapProduct, Plan, normalize_platform

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanTerms:
    code: str
    name: str
    duration_days: int
    allowed_modifications: int
    can_modify_category: bool
    category_modifications: int
    has_featured_option: bool

    @classmethod
    def from_plan(cls, plan: Plan) -> "PlanTerms":
        return cls(
            code=plan.code,
            name=plan.name,
            duration_days=int(plan.duration_days),
            allowed_modifications=int(plan.allowed_modifications or 0),
            can_modify_category=bool(plan.can_modify_category),
            category_modifications=int(plan.category_modifications or 0),
            has_featured_option=bool(plan.has_featured_option),
        )


def require_platform(platform: object) -> str:
    normalized = normalize_platform(platform)
    if not normalized:
        raise PurchaseInvalid(f"Unsupported platform: {platform!r}. Use IOS or ANDROID.")
    return normalized


def resolve_plan_key(product_id: str, platform: str) -> str:
    normalized_platform = require_platform(platform)
    normalized_product_id = str(product_id or "").strip()

    plan_key = (
        IapProduct.objects.filter(
            product_id=normalized_product_id,
            platform=normalized_platform,
            active=True,
        )
        .values_list("plan_id", flat=True)
        .first()
    )
    if plan_key:
        return plan_key

    available = list(
        IapProduct.objects.filter(platform=normalized_platform, active=True)
        .order_by("product_id")
        .values_list("product_id", flat=True)
    )
    logger.warning(
        "No active IAP product %s for platform %s (available: %s).",
        normalized_product_id,
        normalized_platform,
        ", ".join(available) or "none",
    )
    raise PurchaseNotFound(
        f"IAP product {normalized_product_id} not found for platform {normalized_platform}. "
        f"Available products: {', '.join(available) or 'none'}."
    )


def get_plan_terms(plan_key: str) -> PlanTerms:
    plan = Plan.objects.filter(code=str(plan_key or "").strip()).first()
    if plan is None:
        logger.warning("Plan %s referenced by an IAP product does not exist.", plan_key)
        raise PurchaseNotFound(f"Plan not found: {plan_key}.")
    return PlanTerms.from_plan(plan)


def list_products(platform: str):
    normalized_platform = require_platform(platform)
    return (
        IapProduct.objects.filter(platform=normalized_platform, active=True)
        .select_related("plan")
        .order_by("product_id")
    )

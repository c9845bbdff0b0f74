from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from ...exceptions import PurchaseAlreadyProcessed, PurchaseInvalid, PurchaseNotFound
from ...models import Entitlement
from ..catalog import get_plan_terms, require_platform, resolve_plan_key
from ..ledger import IssueParams, assert_unused, issue, list_active_for_user
from ..receipts import get_receipt_verifier
from ..resources import ResourceSummary, describe_resources, find_owned_resource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseResult:
    ok: bool
    entitlement: Entitlement
    expires_at: datetime


@dataclass(frozen=True)
class RestoreResult:
    entitlements: list[Entitlement]
    resources: dict[str, ResourceSummary] = field(default_factory=dict)

    @property
    def restored_count(self) -> int:
        return len(self.entitlements)


def _with_callers_entitlement(exc: PurchaseAlreadyProcessed, user_id: str) -> PurchaseAlreadyProcessed:
    existing = Entitlement.objects.filter(transaction_id=exc.transaction_id).first()
    if existing is None or existing.user_id != user_id:
        if existing is not None:
            logger.warning(
                "Transaction %s replayed by user %s but owned by another user.",
                exc.transaction_id,
                user_id,
            )
        return exc
    exc.entitlement = existing
    return exc


def verify_purchase(user_id: str, platform: str, proof, target_resource_id: str | None = None) -> PurchaseResult:
    """Turn a store purchase proof into a single entitlement for ``user_id``.

    Remote verification runs before any database transaction is opened. The
    only write is the final ``issue`` call, which the unique constraint on
    ``transaction_id`` makes happen at most once per store transaction.
    """
    platform = require_platform(platform)
    product_id = str(getattr(proof, "product_id", "") or "").strip()
    if not product_id:
        raise PurchaseInvalid("productId is required.")

    plan_key = resolve_plan_key(product_id, platform)
    plan = get_plan_terms(plan_key)

    verifier = get_receipt_verifier(platform)
    purchase = verifier.verify(proof)
    if purchase.product_id != product_id:
        logger.warning(
            "Verified product %s does not match claimed product %s (user=%s).",
            purchase.product_id,
            product_id,
            user_id,
        )
        raise PurchaseInvalid("Verified product does not match the requested product.")

    try:
        assert_unused(purchase.transaction_id)
    except PurchaseAlreadyProcessed as exc:
        logger.info("Transaction %s already processed (user=%s).", purchase.transaction_id, user_id)
        raise _with_callers_entitlement(exc, user_id)

    job_post_id = ""
    if target_resource_id:
        resource = find_owned_resource(str(target_resource_id), user_id)
        if resource is None:
            raise PurchaseNotFound("Job post not found or not owned by the current user.")
        job_post_id = resource.id

    try:
        entitlement = issue(
            IssueParams(
                user_id=user_id,
                transaction_id=purchase.transaction_id,
                original_transaction_id=purchase.original_transaction_id,
                plan=plan,
                source=verifier.source,
                job_post_id=job_post_id,
                raw_payload=purchase.raw,
            )
        )
    except PurchaseAlreadyProcessed as exc:
        raise _with_callers_entitlement(exc, user_id)

    return PurchaseResult(ok=True, entitlement=entitlement, expires_at=entitlement.expires_at)


def _reported_transaction_ids(purchases: Iterable[dict[str, Any]] | None) -> set[str]:
    reported: set[str] = set()
    for purchase in purchases or []:
        if not isinstance(purchase, dict):
            continue
        transaction_id = str(
            purchase.get("transaction_id") or purchase.get("order_id") or purchase.get("purchase_token") or ""
        ).strip()
        if transaction_id:
            reported.add(transaction_id)
    return reported


def restore_purchases(
    user_id: str,
    platform: str,
    purchases: Iterable[dict[str, Any]] | None = None,
) -> RestoreResult:
    platform = require_platform(platform)
    entitlements = list(list_active_for_user(user_id))

    reported = _reported_transaction_ids(purchases)
    if reported:
        known = set(
            Entitlement.objects.filter(user_id=user_id, transaction_id__in=reported).values_list(
                "transaction_id", flat=True
            )
        )
        unknown = sorted(reported - known)
        if unknown:
            logger.info(
                "Restore on %s for user %s reported %s unrecorded transactions: %s",
                platform,
                user_id,
                len(unknown),
                ", ".join(unknown),
            )

    resources = describe_resources(entitlement.job_post_id for entitlement in entitlements)
    return RestoreResult(entitlements=entitlements, resources=resources)

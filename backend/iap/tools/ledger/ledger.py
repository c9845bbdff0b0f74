from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, Q, QuerySet
from django.utils import timezone as django_timezone

from ...exceptions import (
    PurchaseAlreadyProcessed,
    PurchaseInvalid,
    PurchaseNotFound,
    QuotaExceeded,
    VerificationUnavailable,
)
from ...models import Entitlement
from ..catalog import PlanTerms
from ..resources import deactivate_resources, parse_public_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssueParams:
    user_id: str
    transaction_id: str
    plan: PlanTerms
    source: str
    original_transaction_id: str | None = None
    job_post_id: str = ""
    raw_payload: dict[str, Any] = field(default_factory=dict)


def _unassigned_ttl() -> timedelta:
    hours = int(getattr(settings, "IAP_UNASSIGNED_ENTITLEMENT_TTL_HOURS", 72))
    return timedelta(hours=max(hours, 1))


def _active_filter(as_of: datetime) -> Q:
    return (
        Q(status=Entitlement.Status.ACTIVE, expires_at__gt=as_of)
        & (~Q(job_post_id="") | Q(assignment_deadline__isnull=True) | Q(assignment_deadline__gt=as_of))
    )


def assert_unused(transaction_id: str) -> None:
    """Fast-path replay check; the unique constraint in ``issue`` is the real guard."""
    if Entitlement.objects.filter(transaction_id=transaction_id).exists():
        raise PurchaseAlreadyProcessed(
            "This transaction has already been processed.",
            transaction_id=transaction_id,
        )


def issue(params: IssueParams, *, now: datetime | None = None) -> Entitlement:
    issued_at = now or django_timezone.now()
    job_post_id = str(params.job_post_id or "").strip()

    try:
        with transaction.atomic():
            entitlement = Entitlement.objects.create(
                transaction_id=params.transaction_id,
                original_transaction_id=params.original_transaction_id,
                user_id=params.user_id,
                job_post_id=job_post_id,
                plan_key=params.plan.code,
                source=params.source,
                status=Entitlement.Status.ACTIVE,
                max_edits=params.plan.allowed_modifications,
                edits_used=0,
                allow_category_change=params.plan.can_modify_category,
                max_category_changes=params.plan.category_modifications,
                category_changes_used=0,
                has_featured_option=params.plan.has_featured_option,
                issued_at=issued_at,
                expires_at=issued_at + timedelta(days=params.plan.duration_days),
                assignment_deadline=None if job_post_id else issued_at + _unassigned_ttl(),
                raw_payload=params.raw_payload if isinstance(params.raw_payload, dict) else {},
            )
    except IntegrityError as exc:
        if not Entitlement.objects.filter(transaction_id=params.transaction_id).exists():
            logger.exception("Entitlement insert failed for transaction %s.", params.transaction_id)
            raise VerificationUnavailable("Could not record the entitlement. Retry later.") from exc
        logger.warning(
            "Replay rejected by unique constraint for transaction %s (user=%s).",
            params.transaction_id,
            params.user_id,
        )
        raise PurchaseAlreadyProcessed(
            "This transaction has already been processed.",
            transaction_id=params.transaction_id,
        ) from exc
    except DatabaseError as exc:
        logger.exception("Entitlement store error for transaction %s.", params.transaction_id)
        raise VerificationUnavailable("Could not record the entitlement. Retry later.") from exc

    logger.info(
        "Issued entitlement %s (plan=%s, source=%s, user=%s, expires_at=%s).",
        entitlement.public_id,
        entitlement.plan_key,
        entitlement.source,
        entitlement.user_id,
        entitlement.expires_at.isoformat(),
    )
    return entitlement


def list_active_for_user(user_id: str, as_of: datetime | None = None) -> QuerySet:
    as_of = as_of or django_timezone.now()
    return Entitlement.objects.filter(_active_filter(as_of), user_id=user_id).order_by("expires_at")


def _entitlement_public_id(entitlement_id) -> UUID:
    public_id = parse_public_id(entitlement_id)
    if public_id is None:
        raise PurchaseNotFound("Entitlement not found.")
    return public_id


def _consume(entitlement_id, *, counter: str, ceiling: str, extra: Q | None = None) -> Entitlement:
    public_id = _entitlement_public_id(entitlement_id)
    condition = Q(public_id=public_id) & Q(**{f"{counter}__lt": F(ceiling)})
    if extra is not None:
        condition &= extra

    updated = Entitlement.objects.filter(condition).update(
        **{counter: F(counter) + 1},
        updated_at=django_timezone.now(),
    )
    entitlement = Entitlement.objects.filter(public_id=public_id).first()
    if entitlement is None:
        raise PurchaseNotFound("Entitlement not found.")
    if not updated:
        logger.info("Quota %s exhausted for entitlement %s.", counter, entitlement_id)
        raise QuotaExceeded()
    return entitlement


def consume_edit_quota(entitlement_id) -> Entitlement:
    return _consume(entitlement_id, counter="edits_used", ceiling="max_edits")


def consume_category_quota(entitlement_id) -> Entitlement:
    return _consume(
        entitlement_id,
        counter="category_changes_used",
        ceiling="max_category_changes",
        extra=Q(allow_category_change=True),
    )


def attach_resource(entitlement_id, *, user_id: str, job_post_id: str, now: datetime | None = None) -> Entitlement:
    now = now or django_timezone.now()
    job_post_id = str(job_post_id or "").strip()
    if not job_post_id:
        raise PurchaseInvalid("A job post id is required.")
    public_id = _entitlement_public_id(entitlement_id)

    with transaction.atomic():
        entitlement = (
            Entitlement.objects.select_for_update()
            .filter(public_id=public_id, user_id=user_id)
            .first()
        )
        if entitlement is None:
            raise PurchaseNotFound("Entitlement not found.")
        if entitlement.job_post_id:
            raise PurchaseInvalid("Entitlement is already attached to a job post.")
        if entitlement.effective_status(now) != Entitlement.Status.ACTIVE:
            raise PurchaseInvalid("Entitlement is no longer active and cannot be attached.")

        entitlement.job_post_id = job_post_id
        entitlement.assignment_deadline = None
        entitlement.save(update_fields=["job_post_id", "assignment_deadline", "updated_at"])

    logger.info("Attached entitlement %s to job post %s.", entitlement.public_id, job_post_id)
    return entitlement


def expire_lapsed_entitlements(now: datetime | None = None) -> int:
    """Persist expiry for lapsed entitlements and deactivate the job posts they paid for.

    A job post that still has another current entitlement stays active.
    """
    now = now or django_timezone.now()
    lapsed = Q(expires_at__lte=now) | (Q(job_post_id="") & Q(assignment_deadline__lte=now))
    rows = list(
        Entitlement.objects.filter(lapsed, status=Entitlement.Status.ACTIVE).values_list("pk", "job_post_id")
    )
    if not rows:
        return 0

    count = Entitlement.objects.filter(
        pk__in=[pk for pk, _ in rows],
        status=Entitlement.Status.ACTIVE,
    ).update(status=Entitlement.Status.EXPIRED, updated_at=now)

    lapsed_job_posts = {job_post_id for _, job_post_id in rows if job_post_id}
    still_paid = set(
        Entitlement.objects.filter(_active_filter(now), job_post_id__in=lapsed_job_posts).values_list(
            "job_post_id", flat=True
        )
    )
    deactivated = deactivate_resources(sorted(lapsed_job_posts - still_paid))

    logger.info("Marked %s entitlements as expired; deactivated %s job posts.", count, deactivated)
    return count

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string

from ...models import JobPost

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceSummary:
    id: str
    title: str
    status: str

    def as_dict(self) -> dict[str, str]:
        return {"id": self.id, "title": self.title, "status": self.status}


def parse_public_id(value: object) -> UUID | None:
    try:
        return UUID(str(value or "").strip())
    except ValueError:
        return None


def find_owned_job_post(resource_id: str, user_id: str) -> ResourceSummary | None:
    public_id = parse_public_id(resource_id)
    if public_id is None:
        return None
    job_post = JobPost.objects.filter(public_id=public_id, owner_user_id=user_id).first()
    if job_post is None:
        return None
    return ResourceSummary(id=str(job_post.public_id), title=job_post.title, status=job_post.status)


def describe_job_posts(resource_ids: Iterable[str]) -> dict[str, ResourceSummary]:
    public_ids = {parsed for parsed in map(parse_public_id, resource_ids) if parsed is not None}
    if not public_ids:
        return {}
    return {
        str(job_post.public_id): ResourceSummary(
            id=str(job_post.public_id),
            title=job_post.title,
            status=job_post.status,
        )
        for job_post in JobPost.objects.filter(public_id__in=public_ids)
    }


def _load(setting_name: str, default):
    dotted_path = str(getattr(settings, setting_name, "") or "").strip()
    if not dotted_path:
        return default
    return import_string(dotted_path)


def find_owned_resource(resource_id: str, user_id: str) -> ResourceSummary | None:
    """Return the resource when it exists and belongs to ``user_id``."""
    lookup = _load("IAP_RESOURCE_LOOKUP", find_owned_job_post)
    return lookup(resource_id, user_id)


def describe_resources(resource_ids: Iterable[str]) -> dict[str, ResourceSummary]:
    ids = [str(resource_id) for resource_id in resource_ids if resource_id]
    if not ids:
        return {}
    describer = _load("IAP_RESOURCE_DESCRIBER", describe_job_posts)
    return describer(ids)


def deactivate_job_posts(resource_ids: Iterable[str]) -> int:
    public_ids = {parsed for parsed in map(parse_public_id, resource_ids) if parsed is not None}
    if not public_ids:
        return 0
    return JobPost.objects.filter(public_id__in=public_ids, status=JobPost.Status.ACTIVE).update(
        status=JobPost.Status.INACTIVE,
        updated_at=timezone.now(),
    )


def deactivate_resources(resource_ids: Iterable[str]) -> int:
    """Take resources whose paid term lapsed out of circulation; returns how many changed."""
    ids = [str(resource_id) for resource_id in resource_ids if resource_id]
    if not ids:
        return 0
    deactivator = _load("IAP_RESOURCE_DEACTIVATOR", deactivate_job_posts)
    return deactivator(ids)


__all__ = [
    "ResourceSummary",
    "deactivate_job_posts",
    "deactivate_resources",
    "describe_job_posts",
    "describe_resources",
    "find_owned_job_post",
    "find_owned_resource",
    "parse_public_id",
]

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone


class Entitlement(models.Model):
    class Source(models.TextChoices):
        APPLE_IAP = "apple_iap", "Apple In-App Purchase"
        GOOGLE_PLAY = "google_play", "Google Play Billing"

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        EXPIRED = "expired", "Expired"
        REVOKED = "revoked", "Revoked"

    public_id = models.UUIDField(default=uuid4, editable=False, unique=True, db_index=True)
    transaction_id = models.CharField(max_length=191, unique=True)
    original_transaction_id = models.CharField(max_length=191, null=True, blank=True, db_index=True)
    user_id = models.CharField(max_length=64, db_index=True)
    job_post_id = models.CharField(max_length=64, blank=True, db_index=True)
    plan_key = models.CharField(max_length=64)
    source = models.CharField(max_length=24, choices=Source.choices)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    max_edits = models.PositiveIntegerField(default=0)
    edits_used = models.PositiveIntegerField(default=0)
    allow_category_change = models.BooleanField(default=False)
    max_category_changes = models.PositiveIntegerField(default=0)
    category_changes_used = models.PositiveIntegerField(default=0)
    has_featured_option = models.BooleanField(default=False)
    issued_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField()
    # Only set while an entitlement waits to be attached to a job post.
    assignment_deadline = models.DateTimeField(blank=True, null=True)
    raw_payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-issued_at",)
        constraints = [
            models.CheckConstraint(
                condition=Q(edits_used__lte=F("max_edits")),
                name="entitlement_edits_within_quota",
            ),
            models.CheckConstraint(
                condition=Q(category_changes_used__lte=F("max_category_changes")),
                name="entitlement_categories_within_quota",
            ),
            models.CheckConstraint(
                condition=~Q(transaction_id=""),
                name="entitlement_transaction_not_empty",
            ),
        ]
        indexes = [
            models.Index(fields=("user_id", "status", "expires_at"), name="entitlement_user_active_idx"),
            models.Index(fields=("status", "expires_at"), name="entitlement_status_expiry_idx"),
        ]

    @property
    def is_assigned(self) -> bool:
        return bool(self.job_post_id)

    def effective_status(self, as_of: datetime | None = None) -> str:
        if self.status != self.Status.ACTIVE:
            return self.status
        as_of = as_of or timezone.now()
        if self.expires_at <= as_of:
            return self.Status.EXPIRED
        if not self.job_post_id and self.assignment_deadline and self.assignment_deadline <= as_of:
            return self.Status.EXPIRED
        return self.Status.ACTIVE

    @property
    def is_current(self) -> bool:
        return self.effective_status() == self.Status.ACTIVE

    @property
    def edits_remaining(self) -> int:
        return max(self.max_edits - self.edits_used, 0)

    @property
    def category_changes_remaining(self) -> int:
        if not self.allow_category_change:
            return 0
        return max(self.max_category_changes - self.category_changes_used, 0)

    def clean(self) -> None:
        self.transaction_id = (self.transaction_id or "").strip()
        self.original_transaction_id = (self.original_transaction_id or "").strip() or None
        self.user_id = (self.user_id or "").strip()
        self.job_post_id = (self.job_post_id or "").strip()

        if not self.transaction_id:
            raise ValidationError({"transaction_id": "Transaction id is required."})
        if not self.user_id:
            raise ValidationError({"user_id": "User id is required."})
        if self.expires_at and self.issued_at and self.expires_at <= self.issued_at:
            raise ValidationError({"expires_at": "expires_at must be after issued_at."})
        if self.edits_used > self.max_edits:
            raise ValidationError({"edits_used": "Edits used cannot exceed the plan allowance."})
        if self.category_changes_used > self.max_category_changes:
            raise ValidationError(
                {"category_changes_used": "Category changes used cannot exceed the plan allowance."}
            )

    def save(self, *args, **kwargs):
        # transaction_id uniqueness is left to the database constraint.
        self.full_clean(validate_unique=False, validate_constraints=False)
        return super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.source}:{self.transaction_id} ({self.status})"

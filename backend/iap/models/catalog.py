from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class Platform(models.TextChoices):
    IOS = "ios", "iOS"
    ANDROID = "android", "Android"


def normalize_platform(value: object) -> str:
    normalized = str(value or "").strip().lower()
    if normalized in Platform.values:
        return normalized
    return ""


class Plan(models.Model):
    code = models.CharField(max_length=64, unique=True, db_index=True)
    name = models.CharField(max_length=160, blank=True)
    duration_days = models.PositiveIntegerField(default=1)
    allowed_modifications = models.PositiveIntegerField(default=0)
    can_modify_category = models.BooleanField(default=False)
    category_modifications = models.PositiveIntegerField(default=0)
    has_featured_option = models.BooleanField(default=False)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("code",)
        constraints = [
            models.CheckConstraint(condition=~Q(code=""), name="plan_code_not_empty"),
            models.CheckConstraint(condition=Q(duration_days__gte=1), name="plan_duration_positive"),
        ]

    def clean(self) -> None:
        self.code = (self.code or "").strip().upper()
        self.name = (self.name or "").strip()

        if not self.code:
            raise ValidationError({"code": "Plan code is required."})
        if self.duration_days < 1:
            raise ValidationError({"duration_days": "Duration must be at least one day."})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.name or self.code


class IapProduct(models.Model):
    """Maps a store product id on one platform to an internal plan."""

    product_id = models.CharField(max_length=191)
    platform = models.CharField(max_length=16, choices=Platform.choices)
    plan = models.ForeignKey(
        "Plan",
        to_field="code",
        db_column="plan_key",
        on_delete=models.PROTECT,
        related_name="iap_products",
    )
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("platform", "product_id")
        constraints = [
            models.UniqueConstraint(fields=("product_id", "platform"), name="iap_product_platform_unique"),
        ]
        indexes = [
            models.Index(fields=("platform", "active"), name="iap_product_platform_idx"),
        ]

    @property
    def plan_key(self) -> str:
        return self.plan_id

    def clean(self) -> None:
        self.product_id = (self.product_id or "").strip()
        self.platform = normalize_platform(self.platform)

        if not self.product_id:
            raise ValidationError({"product_id": "Product id is required."})
        if not self.platform:
            raise ValidationError({"platform": "Platform must be ios or android."})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.platform}:{self.product_id} -> {self.plan_id}"

from __future__ import annotations

from uuid import uuid4

from django.core.exceptions import ValidationError
from django.db import models


class JobPost(models.Model):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        ACTIVE = "active", "Active"
        INACTIVE = "inactive", "Inactive"

    public_id = models.UUIDField(default=uuid4, editable=False, unique=True, db_index=True)
    owner_user_id = models.CharField(max_length=64, db_index=True)
    title = models.CharField(max_length=200)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.DRAFT)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=("owner_user_id", "status"), name="jobpost_owner_status_idx"),
        ]

    def clean(self) -> None:
        self.owner_user_id = (self.owner_user_id or "").strip()
        self.title = (self.title or "").strip()

        if not self.owner_user_id:
            raise ValidationError({"owner_user_id": "Owner is required."})
        if not self.title:
            raise ValidationError({"title": "Title cannot be empty."})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.title} ({self.status})"

from django.contrib import admin, messages

from .models import Entitlement, IapProduct, JobPost, Plan


class IapProductInline(admin.TabularInline):
    model = IapProduct
    extra = 0
    fields = ("product_id", "platform", "active")


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "duration_days",
        "allowed_modifications",
        "can_modify_category",
        "category_modifications",
        "has_featured_option",
    )
    search_fields = ("code", "name")
    inlines = [IapProductInline]


@admin.register(IapProduct)
class IapProductAdmin(admin.ModelAdmin):
    list_display = ("product_id", "platform", "plan", "active", "updated_at")
    search_fields = ("product_id", "plan__code", "plan__name")
    list_filter = ("platform", "active", "plan")
    list_editable = ("active",)


@admin.register(Entitlement)
class EntitlementAdmin(admin.ModelAdmin):
    list_display = (
        "public_id",
        "user_id",
        "plan_key",
        "source",
        "status",
        "edits_used",
        "max_edits",
        "expires_at",
    )
    search_fields = ("public_id", "transaction_id", "original_transaction_id", "user_id", "job_post_id")
    list_filter = ("status", "source", "plan_key")
    readonly_fields = (
        "public_id",
        "transaction_id",
        "original_transaction_id",
        "source",
        "plan_key",
        "issued_at",
        "raw_payload",
        "created_at",
        "updated_at",
    )
    actions = ["revoke_entitlements"]

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.action(description="Revoke selected entitlements")
    def revoke_entitlements(self, request, queryset):
        updated = queryset.exclude(status=Entitlement.Status.REVOKED).update(status=Entitlement.Status.REVOKED)
        self.message_user(request, f"Revoked {updated} entitlement(s).", messages.SUCCESS)


@admin.register(JobPost)
class JobPostAdmin(admin.ModelAdmin):
    list_display = ("title", "owner_user_id", "status", "updated_at")
    search_fields = ("title", "public_id", "owner_user_id")
    list_filter = ("status",)

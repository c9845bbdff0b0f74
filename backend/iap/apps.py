from django.apps import AppConfig


class IapConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "iap"
    verbose_name = "In-app purchases"

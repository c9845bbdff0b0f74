from django.urls import path

from .views_modules.catalog import IapProductListView
from .views_modules.entitlements import EntitlementAssignView, EntitlementListView
from .views_modules.purchases import AppleVerifyPurchaseView, GoogleVerifyPurchaseView, RestorePurchasesView

urlpatterns = [
    path("products/", IapProductListView.as_view(), name="iap-products"),
    path("apple/verify/", AppleVerifyPurchaseView.as_view(), name="iap-apple-verify"),
    path("google/verify/", GoogleVerifyPurchaseView.as_view(), name="iap-google-verify"),
    path("restore/", RestorePurchasesView.as_view(), name="iap-restore"),
    path("entitlements/", EntitlementListView.as_view(), name="iap-entitlements"),
    path(
        "entitlements/<uuid:public_id>/assign/",
        EntitlementAssignView.as_view(),
        name="iap-entitlement-assign",
    ),
]

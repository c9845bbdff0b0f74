from django.test import TestCase

from iap.exceptions import PurchaseInvalid, PurchaseNotFound
from iap.models import IapProduct, Plan, Platform
from iap.tools.catalog import get_plan_terms, list_products, resolve_plan_key


class ProductCatalogTests(TestCase):
    def setUp(self):
        self.urgent = Plan.objects.create(
            code="urgent",
            name="Urgent listing",
            duration_days=7,
            allowed_modifications=2,
        )
        self.basic = Plan.objects.create(code="BASIC", name="Basic listing", duration_days=30)
        IapProduct.objects.create(product_id="urgent_7d", platform=Platform.IOS, plan=self.urgent)
        IapProduct.objects.create(product_id="basic_30d", platform=Platform.IOS, plan=self.basic)

    def test_plan_code_is_normalized_to_upper_case(self):
        self.assertEqual(self.urgent.code, "URGENT")

    def test_resolves_active_mapping_case_insensitive_platform(self):
        self.assertEqual(resolve_plan_key("urgent_7d", "IOS"), "URGENT")
        self.assertEqual(resolve_plan_key(" urgent_7d ", "ios"), "URGENT")

    def test_mapping_is_platform_specific(self):
        with self.assertRaises(PurchaseNotFound):
            resolve_plan_key("urgent_7d", "ANDROID")

    def test_inactive_mapping_is_not_found(self):
        IapProduct.objects.filter(product_id="urgent_7d").update(active=False)

        with self.assertRaises(PurchaseNotFound) as ctx:
            resolve_plan_key("urgent_7d", "IOS")

        message = str(ctx.exception.detail)
        self.assertIn("basic_30d", message)
        self.assertNotIn("urgent_7d,", message)

    def test_unsupported_platform_is_invalid(self):
        with self.assertRaises(PurchaseInvalid):
            resolve_plan_key("urgent_7d", "windows")

    def test_get_plan_terms_snapshots_plan(self):
        terms = get_plan_terms("URGENT")

        self.assertEqual(terms.duration_days, 7)
        self.assertEqual(terms.allowed_modifications, 2)
        self.assertFalse(terms.can_modify_category)

    def test_get_plan_terms_unknown_code(self):
        with self.assertRaises(PurchaseNotFound):
            get_plan_terms("MISSING")

    def test_list_products_only_returns_active_mappings(self):
        IapProduct.objects.create(
            product_id="legacy_14d",
            platform=Platform.IOS,
            plan=self.basic,
            active=False,
        )
        IapProduct.objects.create(product_id="urgent_7d", platform=Platform.ANDROID, plan=self.urgent)

        product_ids = [product.product_id for product in list_products("IOS")]

        self.assertEqual(product_ids, ["basic_30d", "urgent_7d"])

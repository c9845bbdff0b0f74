from unittest.mock import patch

from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from iap.exceptions import VerificationUnavailable
from iap.models import Entitlement, IapProduct, JobPost, Plan, Platform


@override_settings(IAP_VERIFICATION_MODE="accept_all", IAP_APPLE_VERIFIER_CLASS="", IAP_GOOGLE_VERIFIER_CLASS="")
class PurchaseApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.auth_headers = {"HTTP_AUTHORIZATION": "Bearer unit-test-token"}
        self.claims = {"sub": "buyer_123"}

        self.plan = Plan.objects.create(
            code="URGENT",
            name="Urgent listing",
            duration_days=7,
            allowed_modifications=2,
        )
        IapProduct.objects.create(product_id="urgent_7d", platform=Platform.IOS, plan=self.plan)
        IapProduct.objects.create(product_id="urgent_7d_android", platform=Platform.ANDROID, plan=self.plan)
        self.job_post = JobPost.objects.create(
            owner_user_id="buyer_123",
            title="Senior plumber",
            status=JobPost.Status.ACTIVE,
        )

    def _request(self, method: str, path: str, data=None, claims=None):
        with patch("iap.tools.auth.authentication.decode_access_token", return_value=claims or self.claims):
            handler = getattr(self.client, method)
            return handler(path, data=data, format="json", **self.auth_headers)

    def _verify_apple(self, transaction_id="tx-001", claims=None, **extra):
        payload = {"product_id": "urgent_7d", "transaction_id": transaction_id, **extra}
        return self._request("post", "/api/iap/apple/verify/", payload, claims=claims)

    def test_product_listing_is_public(self):
        response = self.client.get("/api/iap/products/", {"platform": "IOS"})

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(len(payload), 1)
        self.assertEqual(payload[0]["product_id"], "urgent_7d")
        self.assertEqual(payload[0]["plan"]["duration_days"], 7)

    def test_product_listing_requires_platform(self):
        response = self.client.get("/api/iap/products/")

        self.assertEqual(response.status_code, 400)

    def test_product_listing_rejects_unknown_platform(self):
        response = self.client.get("/api/iap/products/", {"platform": "symbian"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_purchase")

    def test_verify_requires_authentication(self):
        response = self.client.post(
            "/api/iap/apple/verify/",
            {"product_id": "urgent_7d", "transaction_id": "tx-001"},
            format="json",
        )

        self.assertEqual(response.status_code, 401)
        self.assertFalse(Entitlement.objects.exists())

    def test_apple_verify_issues_entitlement(self):
        response = self._verify_apple(job_post_id=str(self.job_post.public_id))

        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertTrue(payload["ok"])
        self.assertEqual(payload["entitlement"]["plan_key"], "URGENT")
        self.assertEqual(payload["entitlement"]["max_edits"], 2)
        self.assertEqual(payload["entitlement"]["edits_used"], 0)
        self.assertEqual(payload["entitlement"]["status"], "active")
        self.assertEqual(payload["expires_at"], payload["entitlement"]["expires_at"])

        entitlement = Entitlement.objects.get(transaction_id="tx-001")
        self.assertEqual(entitlement.user_id, "buyer_123")
        self.assertEqual(entitlement.job_post_id, str(self.job_post.public_id))
        self.assertEqual(entitlement.source, Entitlement.Source.APPLE_IAP)
        self.assertEqual((entitlement.expires_at - entitlement.issued_at).days, 7)

    def test_replay_returns_conflict_with_existing_entitlement(self):
        first = self._verify_apple()
        second = self._verify_apple()

        self.assertEqual(second.status_code, 409)
        payload = second.json()
        self.assertFalse(payload["ok"])
        self.assertEqual(payload["error"], "already_processed")
        self.assertTrue(payload["already_applied"])
        self.assertFalse(payload["retryable"])
        self.assertEqual(payload["entitlement"]["id"], first.json()["entitlement"]["id"])
        self.assertEqual(Entitlement.objects.count(), 1)

    def test_replay_by_another_user_hides_entitlement(self):
        self._verify_apple()

        response = self._verify_apple(claims={"sub": "someone_else"})

        self.assertEqual(response.status_code, 409)
        self.assertNotIn("entitlement", response.json())
        self.assertFalse(Entitlement.objects.filter(user_id="someone_else").exists())

    def test_racing_replay_is_caught_by_unique_constraint(self):
        with patch("iap.tools.purchases.orchestrator.assert_unused"):
            first = self._verify_apple()
            second = self._verify_apple()

        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 409)
        self.assertEqual(Entitlement.objects.filter(transaction_id="tx-001").count(), 1)

    def test_unknown_product_is_not_found(self):
        response = self._request(
            "post",
            "/api/iap/apple/verify/",
            {"product_id": "does_not_exist", "transaction_id": "tx-404"},
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "not_found")
        self.assertIn("urgent_7d", response.json()["detail"])

    def test_inactive_product_is_not_found(self):
        IapProduct.objects.filter(product_id="urgent_7d").update(active=False)

        response = self._verify_apple()

        self.assertEqual(response.status_code, 404)
        self.assertFalse(Entitlement.objects.exists())

    def test_job_post_owned_by_someone_else_is_not_found(self):
        foreign = JobPost.objects.create(owner_user_id="other", title="Not yours")

        response = self._verify_apple(job_post_id=str(foreign.public_id))

        self.assertEqual(response.status_code, 404)
        self.assertFalse(Entitlement.objects.exists())

    def test_store_outage_is_retryable_and_writes_nothing(self):
        with patch(
            "iap.tools.purchases.orchestrator.get_receipt_verifier",
            side_effect=VerificationUnavailable(),
        ):
            response = self._verify_apple()

        self.assertEqual(response.status_code, 503)
        self.assertTrue(response.json()["retryable"])
        self.assertFalse(Entitlement.objects.exists())

    def test_google_verify_uses_order_id(self):
        response = self._request(
            "post",
            "/api/iap/google/verify/",
            {"product_id": "urgent_7d_android", "purchase_token": "token-1", "order_id": "GPA.1"},
        )

        self.assertEqual(response.status_code, 201)
        entitlement = Entitlement.objects.get()
        self.assertEqual(entitlement.transaction_id, "GPA.1")
        self.assertEqual(entitlement.source, Entitlement.Source.GOOGLE_PLAY)
        self.assertIsNotNone(entitlement.assignment_deadline)

    def test_restore_lists_active_entitlements_without_writing(self):
        self._verify_apple(job_post_id=str(self.job_post.public_id))
        self._verify_apple(transaction_id="tx-002")
        updated_before = list(Entitlement.objects.order_by("pk").values_list("updated_at", flat=True))

        response = self._request(
            "post",
            "/api/iap/restore/",
            {"platform": "IOS", "purchases": [{"transaction_id": "tx-001"}, {"transaction_id": "tx-999"}]},
        )

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["restored_count"], 2)
        jobs = [item["job"] for item in payload["entitlements"]]
        self.assertIn(
            {"id": str(self.job_post.public_id), "title": "Senior plumber", "status": "active"},
            jobs,
        )
        self.assertIn(None, jobs)
        self.assertEqual(Entitlement.objects.count(), 2)
        self.assertEqual(
            list(Entitlement.objects.order_by("pk").values_list("updated_at", flat=True)),
            updated_before,
        )

    def test_restore_shape_is_stable_when_empty(self):
        response = self._request("post", "/api/iap/restore/", {"platform": "ANDROID"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"restored_count": 0, "entitlements": []})

    def test_entitlement_listing_defaults_to_current(self):
        self._verify_apple()
        Entitlement.objects.create(
            transaction_id="tx-revoked",
            user_id="buyer_123",
            plan_key="URGENT",
            source=Entitlement.Source.APPLE_IAP,
            status=Entitlement.Status.REVOKED,
            expires_at=Entitlement.objects.get().expires_at,
        )

        current = self._request("get", "/api/iap/entitlements/")
        everything = self._request("get", "/api/iap/entitlements/?current=false")

        self.assertEqual(len(current.json()), 1)
        self.assertEqual(len(everything.json()), 2)

    def test_assign_pending_entitlement(self):
        issued = self._verify_apple().json()["entitlement"]

        response = self._request(
            "post",
            f"/api/iap/entitlements/{issued['id']}/assign/",
            {"job_post_id": str(self.job_post.public_id)},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["entitlement"]["job_post_id"], str(self.job_post.public_id))
        self.assertIsNone(response.json()["entitlement"]["assignment_deadline"])

    def test_assign_requires_owned_job_post(self):
        issued = self._verify_apple().json()["entitlement"]
        foreign = JobPost.objects.create(owner_user_id="other", title="Not yours")

        response = self._request(
            "post",
            f"/api/iap/entitlements/{issued['id']}/assign/",
            {"job_post_id": str(foreign.public_id)},
        )

        self.assertEqual(response.status_code, 404)

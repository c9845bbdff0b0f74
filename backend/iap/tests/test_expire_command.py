from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from iap.models import Entitlement


class ExpireEntitlementsCommandTests(TestCase):
    def _entitlement(self, transaction_id: str, expires_in: timedelta) -> Entitlement:
        issued_at = timezone.now() - timedelta(days=10)
        return Entitlement.objects.create(
            transaction_id=transaction_id,
            user_id="user_1",
            job_post_id="job-1",
            plan_key="URGENT",
            source=Entitlement.Source.GOOGLE_PLAY,
            issued_at=issued_at,
            expires_at=timezone.now() + expires_in,
        )

    def test_marks_lapsed_entitlements_expired(self):
        lapsed = self._entitlement("tx-lapsed", timedelta(hours=-1))
        current = self._entitlement("tx-current", timedelta(days=1))
        out = StringIO()

        call_command("expire_entitlements", stdout=out)

        lapsed.refresh_from_db()
        current.refresh_from_db()
        self.assertEqual(lapsed.status, Entitlement.Status.EXPIRED)
        self.assertEqual(current.status, Entitlement.Status.ACTIVE)
        self.assertIn("Expired 1 entitlement(s).", out.getvalue())

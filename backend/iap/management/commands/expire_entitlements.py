from django.core.management.base import BaseCommand

from iap.tools.ledger import expire_lapsed_entitlements


class Command(BaseCommand):
    help = "Mark active entitlements whose term or assignment window has passed as expired."

    def handle(self, *args, **options):
        count = expire_lapsed_entitlements()
        self.stdout.write(self.style.SUCCESS(f"Expired {count} entitlement(s)."))

from django.core.management.base import BaseCommand
from marketplace.services import sync_active_connections


class Command(BaseCommand):
    help = "Push available stock levels to every active marketplace connection"

    def handle(self, *args, **options):
        results = sync_active_connections()
        for result in results:
            if result.ok:
                self.stdout.write(self.style.SUCCESS(f"{result.channel}: pushed {result.pushed}"))
            else:
                self.stdout.write(self.style.WARNING(f"{result.channel}: {result.error}"))
        self.stdout.write(f"Connections synced: {len(results)}")

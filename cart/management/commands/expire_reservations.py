from cart.services import release_expired_items
from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = "Release cart reservations that have passed their expires_at timestamp."

    def handle(self, *args, **options):
        count = release_expired_items()
        self.stdout.write(self.style.SUCCESS(f"Expired reservations released: {count}"))

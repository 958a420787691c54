from django.core.management.base import BaseCommand
from orders.services import expire_pending_orders


class Command(BaseCommand):
    help = "Fail orders left unpaid past ORDER_PAYMENT_TIMEOUT_MINUTES and release their stock"

    def add_arguments(self, parser):
        parser.add_argument("--minutes", type=int, default=None, help="Override the payment timeout")

    def handle(self, *args, **options):
        count = expire_pending_orders(timeout_minutes=options.get("minutes"))
        self.stdout.write(self.style.SUCCESS(f"Expired unpaid orders: {count}"))

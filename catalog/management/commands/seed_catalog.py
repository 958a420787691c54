"""Seed a handful of products with stock for local development.

Re-running is idempotent; existing products are reused by SKU and their
inventory is left untouched.
"""

from decimal import Decimal

from catalog.models import Product
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils.text import slugify
from inventory.services import upsert_inventory

PRODUCTS = [
    {"sku": "MUG-ENAMEL-01", "name": "Enamel Camping Mug", "price": "39.99", "quantity": 25},
    {"sku": "TEE-LINEN-M", "name": "Linen T-Shirt M", "price": "129.00", "quantity": 8},
    {"sku": "BAG-CANVAS-01", "name": "Canvas Tote Bag", "price": "59.50", "quantity": 3},
]


class Command(BaseCommand):
    help = "Seed initial catalog products and inventory"

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding catalog data...")
        created = 0
        for data in PRODUCTS:
            product, was_created = Product.objects.get_or_create(
                sku=data["sku"],
                defaults={
                    "name": data["name"],
                    "slug": slugify(data["name"]),
                    "price": Decimal(data["price"]),
                    "is_visible": True,
                },
            )
            if was_created:
                upsert_inventory(product_id=product.id, quantity=data["quantity"])
                created += 1
        self.stdout.write(self.style.SUCCESS(f"Seeded {created} product(s)."))

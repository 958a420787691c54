"""Catalog app models.

Products are the sellable unit: each has a unique SKU, a live price and a
visibility flag. Stock for a product lives in `inventory.Inventory`.
"""

from decimal import Decimal

from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Product(TimeStampedModel):
    """Core product entity.

    Hidden products (`is_visible=False`) stay readable for order history but
    can no longer be added to carts or checked out.
    """

    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    is_visible = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(name="product_price_non_negative", condition=models.Q(price__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} [{self.sku}]"

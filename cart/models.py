"""Cart app models.

Carts belong to a guest session (the `X-Session-Id` the storefront sends);
identity is owned by the external auth provider, so carts never reference a
user. Every unit on a `CartItem` is backed by one reserved unit in
`inventory.Inventory` until the line expires, is removed, or is checked out.
"""

from decimal import Decimal

from common.choices import CartStatus
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Cart(TimeStampedModel):
    """Shopping cart bound to a guest session."""

    STATUS_ACTIVE = CartStatus.ACTIVE
    STATUS_ORDERED = CartStatus.ORDERED
    STATUS_ABANDONED = CartStatus.ABANDONED
    STATUS_CHOICES = CartStatus.choices

    session_id = models.CharField(max_length=64, db_index=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["session_id"],
                condition=models.Q(status="active"),
                name="unique_active_cart_per_session",
            ),
        ]
        indexes = [
            models.Index(fields=["session_id", "status"], name="cart_session_status_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Cart#{self.id} ({self.session_id})"


class CartItem(TimeStampedModel):
    """Line item in a shopping cart; its quantity is held as reserved stock."""

    cart = models.ForeignKey(Cart, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey("catalog.Product", related_name="cart_items", on_delete=models.CASCADE)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    expires_at = models.DateTimeField(db_index=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["cart", "product"], name="unique_product_per_cart"),
            models.CheckConstraint(
                name="quantity_positive",
                condition=models.Q(quantity__gte=1),
            ),
        ]
        indexes = [
            models.Index(fields=["cart", "product"], name="cartitem_cart_product_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"CartItem#{self.id} cart={self.cart_id} product={self.product_id} qty={self.quantity}"

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price or Decimal("0.00")) * Decimal(int(self.quantity))

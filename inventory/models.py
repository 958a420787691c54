"""Inventory models (single-location).

One `Inventory` row per product tracks on-hand `quantity` and the
`reserved` share held by carts and unpaid orders. Available stock is
`quantity - reserved`.
"""

from common.choices import MovementType
from django.db import models


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Inventory(TimeStampedModel):
    product = models.OneToOneField("catalog.Product", on_delete=models.CASCADE, related_name="inventory")
    quantity = models.IntegerField(default=0)
    reserved = models.IntegerField(default=0)
    low_stock_threshold = models.PositiveIntegerField(default=10)
    reorder_point = models.PositiveIntegerField(default=5)
    reorder_quantity = models.PositiveIntegerField(default=50)
    last_restocked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-updated_at", "id"]
        verbose_name_plural = "inventory"
        # reserved <= quantity is kept by the ledger, not the schema: the admin
        # override may lower on-hand stock below what is already reserved.
        constraints = [
            models.CheckConstraint(name="stock_non_negative", condition=models.Q(quantity__gte=0)),
            models.CheckConstraint(name="reserved_non_negative", condition=models.Q(reserved__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Inventory<{self.product_id}> q={self.quantity} r={self.reserved}"

    @property
    def available(self) -> int:
        return int(self.quantity) - int(self.reserved)

    @property
    def is_low_stock(self) -> bool:
        return self.available <= int(self.low_stock_threshold)

    @property
    def needs_reorder(self) -> bool:
        return self.available <= int(self.reorder_point)


class StockMovement(TimeStampedModel):
    TYPE_INBOUND = MovementType.INBOUND
    TYPE_OUTBOUND = MovementType.OUTBOUND
    TYPE_ADJUST = MovementType.ADJUST
    TYPE_CHOICES = MovementType.choices

    inventory = models.ForeignKey(Inventory, on_delete=models.CASCADE, related_name="movements")
    movement_type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    quantity = models.IntegerField()  # signed: +inbound, -outbound
    reason = models.CharField(max_length=200, blank=True)
    reference = models.CharField(max_length=120, blank=True)

    class Meta:
        ordering = ["-created_at", "id"]
        constraints = [
            models.CheckConstraint(name="movement_non_zero", condition=~models.Q(quantity=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.movement_type} {self.quantity} for {self.inventory_id}"


# EOF

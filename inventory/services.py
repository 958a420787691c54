"""Inventory services (single-location): the stock ledger.

`reserve`, `commit` and `release` are each a single conditional UPDATE so
concurrent callers can never drive `reserved` above `quantity` or either
counter below zero. `adjust_stock` is the staff override and takes a row
lock instead, since `set` needs the previous value for the audit trail.
"""

import logging

from common.choices import InventoryOperation
from django.db import transaction
from django.db.models import F, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from .models import Inventory, StockMovement

logger = logging.getLogger("storefront.inventory")


class MovementError(Exception):
    pass


class InsufficientStock(MovementError):
    """Raised when a reservation exceeds what is currently available."""

    def __init__(self, available: int, product_id: int | None = None):
        self.available = max(0, int(available))
        self.product_id = product_id
        super().__init__(f"Insufficient stock (available={self.available})")


class NotReserved(MovementError):
    """Raised when committing more units than are reserved or on hand."""


def _available(product_id: int) -> int:
    row = Inventory.objects.filter(product_id=product_id).values("quantity", "reserved").first()
    if not row:
        return 0
    return int(row["quantity"]) - int(row["reserved"])


def reserve(*, product_id: int, quantity: int) -> None:
    """Move `quantity` units from available to reserved.

    Raises InsufficientStock (carrying the current available count) when the
    product has no inventory or not enough unreserved stock.
    """

    if quantity <= 0:
        raise MovementError("Reservation quantity must be positive")
    updated = Inventory.objects.filter(product_id=product_id, quantity__gte=F("reserved") + quantity).update(
        reserved=F("reserved") + quantity,
        updated_at=timezone.now(),
    )
    if not updated:
        raise InsufficientStock(available=_available(product_id), product_id=product_id)


def release(*, product_id: int, quantity: int) -> None:
    """Return reserved units to available, clamping `reserved` at zero."""

    if quantity <= 0:
        return
    Inventory.objects.filter(product_id=product_id).update(
        reserved=Greatest(F("reserved") - quantity, Value(0)),
        updated_at=timezone.now(),
    )


@transaction.atomic
def commit(*, product_id: int, quantity: int, reason: str = "order", reference: str = "") -> StockMovement:
    """Deduct reserved units from on-hand stock after a successful payment."""

    if quantity <= 0:
        raise MovementError("Commit quantity must be positive")
    updated = Inventory.objects.filter(
        product_id=product_id,
        reserved__gte=quantity,
        quantity__gte=quantity,
    ).update(
        quantity=F("quantity") - quantity,
        reserved=F("reserved") - quantity,
        updated_at=timezone.now(),
    )
    if not updated:
        raise NotReserved(f"Cannot commit {quantity} unit(s) of product {product_id}")
    inventory_id = Inventory.objects.values_list("id", flat=True).get(product_id=product_id)
    return StockMovement.objects.create(
        inventory_id=inventory_id,
        movement_type=StockMovement.TYPE_OUTBOUND,
        quantity=-int(quantity),
        reason=reason,
        reference=reference,
    )


@transaction.atomic
def adjust_stock(
    *, product_id: int, quantity: int, operation: str, reason: str = "", reference: str = ""
) -> Inventory:
    """Staff override of on-hand stock: set, increment or decrement.

    Reservation checks are bypassed; lowering stock under the reserved count
    is allowed and logged. Decrementing below zero is rejected.
    """

    if quantity < 0:
        raise MovementError("Quantity must be non-negative")
    try:
        item = Inventory.objects.select_for_update().get(product_id=product_id)
    except Inventory.DoesNotExist:
        raise MovementError("Inventory not found")

    previous = int(item.quantity)
    now = timezone.now()
    update_fields = ["quantity", "updated_at"]
    if operation == InventoryOperation.SET:
        item.quantity = int(quantity)
        movement_type = StockMovement.TYPE_ADJUST
    elif operation == InventoryOperation.INCREMENT:
        item.quantity = previous + int(quantity)
        movement_type = StockMovement.TYPE_INBOUND
    elif operation == InventoryOperation.DECREMENT:
        if int(quantity) > previous:
            raise MovementError("Cannot decrement below zero")
        item.quantity = previous - int(quantity)
        movement_type = StockMovement.TYPE_OUTBOUND
    else:
        raise MovementError(f"Unknown operation: {operation}")

    if operation in (InventoryOperation.SET, InventoryOperation.INCREMENT):
        item.last_restocked_at = now
        update_fields.append("last_restocked_at")
    item.save(update_fields=update_fields)

    delta = int(item.quantity) - previous
    if delta:
        StockMovement.objects.create(
            inventory=item,
            movement_type=movement_type,
            quantity=delta,
            reason=reason or f"admin {operation}",
            reference=reference,
        )
    if int(item.quantity) < int(item.reserved):
        logger.warning(
            "inventory.overcommitted",
            extra={
                "event": "inventory.overcommitted",
                "product_id": product_id,
                "quantity": int(item.quantity),
                "reserved": int(item.reserved),
            },
        )
    logger.info(
        "inventory.adjusted",
        extra={
            "event": "inventory.adjusted",
            "product_id": product_id,
            "operation": str(operation),
            "quantity_from": previous,
            "quantity_to": int(item.quantity),
        },
    )
    return item


@transaction.atomic
def upsert_inventory(*, product_id: int, **fields) -> Inventory:
    """Create or update a product's inventory record and its thresholds.

    A `quantity` is applied as a `set` override so it lands in the movement log.
    """

    quantity = fields.pop("quantity", None)
    item, created = Inventory.objects.select_for_update().get_or_create(product_id=product_id, defaults=fields)
    if not created and fields:
        for name, value in fields.items():
            setattr(item, name, value)
        item.save(update_fields=[*fields.keys(), "updated_at"])
    if quantity is not None:
        item = adjust_stock(product_id=product_id, quantity=int(quantity), operation=InventoryOperation.SET)
    return item


# EOF

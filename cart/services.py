"""Cart services: mutations backed by inventory reservations.

Each mutation runs in one transaction and reserves or releases only the
difference between the old and new line quantity, so a failed reservation
leaves both the cart and the ledger untouched.
"""

import logging
from datetime import timedelta

from catalog.models import Product
from django.conf import settings
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from inventory.services import release, reserve

from .models import Cart, CartItem
from .selectors import get_active_cart_for_session


class CartError(Exception):
    """Raised for cart mutation failures."""


class ProductUnavailable(CartError):
    """Raised when a hidden product is added to a cart or checked out."""

    def __init__(self, product_id: int | None = None):
        self.product_id = product_id
        super().__init__("Product is not available")


logger = logging.getLogger("storefront.cart")


def reservation_expiry(now=None):
    """Return the deadline for a reservation made or refreshed now."""

    now = now or timezone.now()
    return now + timedelta(minutes=int(getattr(settings, "CART_RESERVATION_TTL_MINUTES", 30)))


@transaction.atomic
def add_item(*, session_id: str, product_id: int, quantity: int) -> CartItem:
    """Add a product to the session's cart, merging with an existing line.

    Reserves exactly `quantity` more units.
    """

    if quantity <= 0:
        raise CartError("Quantity must be positive")
    cart = get_active_cart_for_session(session_id=session_id, lock=True)
    product = get_object_or_404(Product, id=product_id)
    if not product.is_visible:
        raise ProductUnavailable(product_id=product.id)

    # Line before inventory row, the same order the expiry sweep takes its locks in
    item = CartItem.objects.select_for_update().filter(cart=cart, product=product).first()
    reserve(product_id=product.id, quantity=quantity)
    if item is not None:
        item.quantity = int(item.quantity) + int(quantity)
        item.unit_price = product.price
        item.expires_at = reservation_expiry()
        item.save(update_fields=["quantity", "unit_price", "expires_at", "updated_at"])
        event = "cart.item_updated"
    else:
        item = CartItem.objects.create(
            cart=cart,
            product=product,
            quantity=quantity,
            unit_price=product.price,
            expires_at=reservation_expiry(),
        )
        event = "cart.item_added"
    logger.info(
        event,
        extra={
            "event": event,
            "cart_id": cart.id,
            "product_id": product.id,
            "quantity": int(item.quantity),
            "reserved_delta": int(quantity),
        },
    )
    return item


@transaction.atomic
def update_item_quantity(*, session_id: str, item_id: int, quantity: int) -> CartItem | None:
    """Set a line's quantity, reserving or releasing only the difference.

    A quantity of 0 removes the line and returns None.
    """

    if quantity < 0:
        raise CartError("Quantity must not be negative")
    cart = get_active_cart_for_session(session_id=session_id, lock=True)
    item = get_object_or_404(CartItem.objects.select_for_update(), id=item_id, cart=cart)
    if quantity == 0:
        _delete_line(item)
        return None

    delta = int(quantity) - int(item.quantity)
    if delta > 0:
        reserve(product_id=item.product_id, quantity=delta)
    elif delta < 0:
        release(product_id=item.product_id, quantity=-delta)
    item.quantity = quantity
    item.expires_at = reservation_expiry()
    item.save(update_fields=["quantity", "expires_at", "updated_at"])
    logger.info(
        "cart.item_updated",
        extra={
            "event": "cart.item_updated",
            "cart_id": cart.id,
            "product_id": item.product_id,
            "quantity": int(quantity),
            "reserved_delta": delta,
        },
    )
    return item


@transaction.atomic
def remove_item(*, session_id: str, item_id: int) -> None:
    """Remove a line from the cart and release its full reservation."""

    cart = get_active_cart_for_session(session_id=session_id, lock=True)
    item = get_object_or_404(CartItem.objects.select_for_update(), id=item_id, cart=cart)
    _delete_line(item)


def _delete_line(item: CartItem) -> None:
    release(product_id=item.product_id, quantity=int(item.quantity))
    item_id = item.id
    item.delete()
    logger.info(
        "cart.item_removed",
        extra={
            "event": "cart.item_removed",
            "cart_id": item.cart_id,
            "item_id": item_id,
            "product_id": item.product_id,
            "released": int(item.quantity),
        },
    )


@transaction.atomic
def clear_cart(*, session_id: str) -> None:
    """Clear the session's cart and release all reservations."""

    cart = get_active_cart_for_session(session_id=session_id, lock=True)
    for item in CartItem.objects.select_for_update().filter(cart=cart).order_by("product_id"):
        release(product_id=item.product_id, quantity=int(item.quantity))
    CartItem.objects.filter(cart=cart).delete()
    logger.info("cart.cleared", extra={"event": "cart.cleared", "cart_id": cart.id})


def release_expired_items(*, now=None, cart: Cart | None = None) -> int:
    """Release reservations of active-cart lines past their deadline.

    Each line is released in its own short transaction, in product order, so
    the sweep never holds more than one line and one inventory row at a time.
    Lines locked by a concurrent checkout or edit are skipped and picked up by
    a later sweep. Returns the number of lines released.
    """

    now = now or timezone.now()
    qs = CartItem.objects.filter(expires_at__lt=now, cart__status=Cart.STATUS_ACTIVE)
    if cart is not None:
        qs = qs.filter(cart=cart)
    count = 0
    for item_id in list(qs.order_by("product_id", "id").values_list("id", flat=True)):
        with transaction.atomic():
            # Re-check under the lock; the line may have been refreshed or checked out meanwhile
            item = qs.select_for_update(skip_locked=True, of=("self",)).filter(id=item_id).first()
            if item is None:
                continue
            release(product_id=item.product_id, quantity=int(item.quantity))
            item.delete()
        count += 1
    if count:
        logger.info(
            "cart.reservations_expired",
            extra={"event": "cart.reservations_expired", "released_lines": count},
        )
    return count

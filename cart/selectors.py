"""Selectors for read-only cart queries."""

from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import F, Sum

from .models import Cart


def get_active_cart_for_session(*, session_id: str, lock: bool = False) -> Cart:
    """Return the guest session's active cart, creating it if missing.

    With `lock=True` the cart row is selected for update so concurrent edits
    of the same session serialise; callers must already be in a transaction.
    """

    try:
        with transaction.atomic():
            cart, _ = Cart.objects.get_or_create(session_id=session_id, status=Cart.STATUS_ACTIVE)
    except IntegrityError:
        # Lost a creation race against another request of the same session
        cart = Cart.objects.get(session_id=session_id, status=Cart.STATUS_ACTIVE)
    if lock:
        cart = Cart.objects.select_for_update().get(pk=cart.pk)
    return cart


def cart_totals(*, cart: Cart):
    """Compute cart totals based on items."""

    agg = cart.items.aggregate(
        subtotal=Sum(F("unit_price") * F("quantity")),
    )
    subtotal = agg.get("subtotal") or Decimal("0.00")
    return {
        "subtotal": subtotal,
        "total": subtotal,
    }

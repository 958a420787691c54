"""Order services: checkout intake, payment settlement, fulfillment, refunds.

Stock held by a cart is carried over unchanged to the order it becomes;
`settle_payment` is the only place that turns that reservation into a
deduction (paid) or gives it back (failed), exactly once per order.
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Callable, Optional, Tuple

from cart.models import Cart, CartItem
from cart.selectors import get_active_cart_for_session
from cart.services import ProductUnavailable
from catalog.models import Product
from common.money import quantize, to_minor_units
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from inventory.models import Inventory
from inventory.services import InsufficientStock, commit, release, reserve
from payments.gateways.base import GatewayError, GatewayTransaction, PaymentOutcome
from payments.registry import get_gateway

from .emails import send_order_paid_email
from .models import IdempotencyKey, Order, OrderAddress, OrderItem, RefundRequest

logger = logging.getLogger("storefront.orders")


class OrderError(Exception):
    """Raised for order mutation failures."""


class EmptyCart(OrderError):
    pass


class AlreadySettled(OrderError):
    """Raised when a payment outcome arrives for an order that is no longer pending."""

    def __init__(self, order: Order):
        self.order = order
        super().__init__(f"Order {order.pk} already settled ({order.payment_status})")


class PaymentMismatch(OrderError):
    """Raised when a notification's reference or amount does not match the order."""


class OrderAccessDenied(OrderError):
    pass


class InvalidTransition(OrderError):
    pass


class RefundError(OrderError):
    pass


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    transaction: GatewayTransaction


FULFILLMENT_TRANSITIONS = {
    Order.STATUS_PROCESSING: Order.STATUS_SHIPPED,
    Order.STATUS_SHIPPED: Order.STATUS_DELIVERED,
}


def _log_status_change(order: Order, status_from: str, payment_from: str) -> None:
    logger.info(
        "order_status_changed",
        extra={
            "event": "order_status_changed",
            "order_id": order.id,
            "user_id": order.user_id,
            "status_from": str(status_from),
            "status_to": str(order.status),
            "payment_from": str(payment_from),
            "payment_to": str(order.payment_status),
        },
    )


def _create_address(data: dict) -> OrderAddress:
    return OrderAddress.objects.create(**data)


@transaction.atomic
def create_order_from_cart(
    *,
    session_id: str,
    customer_email: str,
    shipping_address: dict,
    payment_method: str,
    customer_name: str = "",
    billing_address: Optional[dict] = None,
    user=None,
) -> Order:
    """Turn the session's active cart into a pending order.

    Re-validates every line against live product visibility and on-hand
    stock, snapshots current prices, then empties the cart. The cart lines'
    reserved stock now belongs to the order.
    """

    cart = get_active_cart_for_session(session_id=session_id, lock=True)
    items = list(CartItem.objects.select_for_update().filter(cart=cart).order_by("product_id"))
    if not items:
        raise EmptyCart("Cart is empty")

    product_ids = [item.product_id for item in items]
    products = Product.objects.in_bulk(product_ids)
    inventories = {
        inv.product_id: inv
        for inv in Inventory.objects.select_for_update().filter(product_id__in=product_ids).order_by("product_id")
    }

    for item in items:
        product = products[item.product_id]
        if not product.is_visible:
            raise ProductUnavailable(product_id=product.id)
        inv = inventories.get(item.product_id)
        if inv is None:
            raise InsufficientStock(available=0, product_id=product.id)
        # Stock others hold must still leave enough on hand for this line
        held_by_others = max(0, int(inv.reserved) - int(item.quantity))
        available_for_line = int(inv.quantity) - held_by_others
        if available_for_line < int(item.quantity):
            raise InsufficientStock(available=available_for_line, product_id=product.id)
        missing = int(item.quantity) - int(inv.reserved)
        if missing > 0:
            # Reservation was clamped away under this line; take it back before ordering
            reserve(product_id=product.id, quantity=missing)

    shipping = _create_address(shipping_address)
    billing = _create_address(billing_address) if billing_address else shipping
    order = Order.objects.create(
        user=user if getattr(user, "is_authenticated", False) else None,
        session_id=session_id,
        customer_email=customer_email,
        customer_name=customer_name,
        shipping_address=shipping,
        billing_address=billing,
        payment_method=payment_method,
        currency=getattr(settings, "STORE_CURRENCY", "PLN"),
    )
    subtotal = Decimal("0.00")
    for item in items:
        product = products[item.product_id]
        line = OrderItem.objects.create(
            order=order,
            product=product,
            product_name=product.name,
            sku=product.sku,
            quantity=item.quantity,
            unit_price=product.price,
        )
        subtotal += line.line_total
    order.number = f"ORD-{int(order.id):06d}"
    order.subtotal = quantize(subtotal)
    order.total = quantize(order.subtotal + order.shipping + order.tax)
    order.save(update_fields=["number", "subtotal", "total", "updated_at"])

    CartItem.objects.filter(cart=cart).delete()
    cart.status = Cart.STATUS_ORDERED
    cart.save(update_fields=["status", "updated_at"])
    logger.info(
        "order.created",
        extra={
            "event": "order.created",
            "order_id": order.id,
            "cart_id": cart.id,
            "user_id": order.user_id,
            "payment_method": payment_method,
            "total": str(order.total),
            "items": len(items),
        },
    )
    return order


def place_order(*, session_id: str, payment_method: Optional[str] = None, blik_code: Optional[str] = None, **details):
    """Create the order and register its payment with the selected gateway.

    The gateway call runs after the order transaction has committed. When it
    fails the order is settled as failed, returning its stock, and the
    GatewayError propagates.
    """

    gateway = get_gateway(payment_method)
    order = create_order_from_cart(session_id=session_id, payment_method=gateway.name, **details)
    try:
        txn = gateway.register_transaction(order, blik_code=blik_code)
    except GatewayError:
        settle_payment(order_id=order.id, outcome=PaymentOutcome.FAILED)
        raise
    Order.objects.filter(pk=order.pk).update(gateway_reference=txn.reference, updated_at=timezone.now())
    order.gateway_reference = txn.reference
    logger.info(
        "order.payment_registered",
        extra={"event": "order.payment_registered", "order_id": order.id, "gateway": gateway.name},
    )
    return CheckoutResult(order=order, transaction=txn)


def settle_payment(
    *,
    order_id: int,
    outcome: str,
    gateway_reference: Optional[str] = None,
    amount_minor: Optional[int] = None,
    gateway: Optional[str] = None,
) -> Order:
    """Apply a payment outcome to a pending order exactly once.

    paid: payment paid, status processing, every item committed.
    failed: payment failed, status cancelled, every item released.

    `gateway` names the provider that sent the outcome; it must be the one
    the order was placed with.

    Raises Order.DoesNotExist, AlreadySettled when the order is no longer
    pending, or PaymentMismatch. Any ledger error rolls the whole settlement
    back.
    """

    if outcome not in (PaymentOutcome.PAID, PaymentOutcome.FAILED):
        raise ValueError(f"Unsupported payment outcome: {outcome}")

    with transaction.atomic():
        order = Order.objects.get(pk=order_id)
        if gateway and order.payment_method != gateway:
            raise PaymentMismatch("Payment gateway does not match order")
        if order.payment_status != Order.PAYMENT_PENDING:
            raise AlreadySettled(order)
        if gateway_reference and order.gateway_reference and gateway_reference != order.gateway_reference:
            raise PaymentMismatch("Gateway reference does not match order")
        if outcome == PaymentOutcome.PAID and amount_minor is not None:
            if int(amount_minor) != to_minor_units(order.total):
                raise PaymentMismatch("Paid amount does not match order total")

        status_from, payment_from = order.status, order.payment_status
        now = timezone.now()
        if outcome == PaymentOutcome.PAID:
            updates = {"payment_status": Order.PAYMENT_PAID, "status": Order.STATUS_PROCESSING, "paid_at": now}
        else:
            updates = {"payment_status": Order.PAYMENT_FAILED, "status": Order.STATUS_CANCELLED, "cancelled_at": now}
        claimed = Order.objects.filter(pk=order.pk, payment_status=Order.PAYMENT_PENDING).update(
            **updates, updated_at=now
        )
        if not claimed:
            order.refresh_from_db()
            raise AlreadySettled(order)

        for item in order.items.all():
            if outcome == PaymentOutcome.PAID:
                commit(
                    product_id=item.product_id,
                    quantity=int(item.quantity),
                    reason="order paid",
                    reference=order.number or str(order.id),
                )
            else:
                release(product_id=item.product_id, quantity=int(item.quantity))

        order.refresh_from_db()
        if outcome == PaymentOutcome.PAID:
            transaction.on_commit(lambda: send_order_paid_email(order))

    _log_status_change(order, status_from, payment_from)
    logger.info(
        "payment_settled",
        extra={
            "event": "payment_settled",
            "order_id": order.id,
            "outcome": outcome,
            "payment_method": order.payment_method,
        },
    )
    return order


def cancel_order(order: Order) -> Order:
    """Cancel an unpaid order, returning its reserved stock.

    The gateway transaction is withdrawn first so a payment cannot complete
    after the cancel. GatewayError (including TransactionNotCancellable)
    propagates and the order stays pending.
    """

    if order.payment_status != Order.PAYMENT_PENDING:
        raise InvalidTransition("Only unpaid orders can be cancelled")
    if order.gateway_reference:
        get_gateway(order.payment_method).cancel_transaction(order)
    try:
        return settle_payment(order_id=order.id, outcome=PaymentOutcome.FAILED)
    except AlreadySettled:
        raise InvalidTransition("Only unpaid orders can be cancelled")


def advance_fulfillment(order: Order, status: str) -> Order:
    """Move a paid order along processing -> shipped -> delivered."""

    if FULFILLMENT_TRANSITIONS.get(order.status) != status:
        raise InvalidTransition(f"Cannot move order from {order.status} to {status}")
    status_from = order.status
    updated = Order.objects.filter(pk=order.pk, status=status_from, payment_status=Order.PAYMENT_PAID).update(
        status=status, updated_at=timezone.now()
    )
    if not updated:
        raise InvalidTransition(f"Cannot move order from {order.status} to {status}")
    order.refresh_from_db()
    _log_status_change(order, status_from, order.payment_status)
    return order


def expire_pending_orders(*, now=None, timeout_minutes: Optional[int] = None) -> int:
    """Fail orders left unpaid past the payment timeout; returns how many."""

    now = now or timezone.now()
    if timeout_minutes is None:
        timeout_minutes = int(getattr(settings, "ORDER_PAYMENT_TIMEOUT_MINUTES", 1440))
    cutoff = now - timedelta(minutes=int(timeout_minutes))
    expired = 0
    stale = Order.objects.filter(payment_status=Order.PAYMENT_PENDING, created_at__lt=cutoff)
    for order in stale.order_by("id"):
        try:
            if order.gateway_reference:
                get_gateway(order.payment_method).cancel_transaction(order)
        except GatewayError:
            # Left pending; the next run retries or the payment webhook settles it
            logger.warning(
                "order.expire_skipped",
                extra={"event": "order.expire_skipped", "order_id": order.id, "gateway": order.payment_method},
            )
            continue
        try:
            settle_payment(order_id=order.id, outcome=PaymentOutcome.FAILED)
        except AlreadySettled:
            continue
        expired += 1
    return expired


@transaction.atomic
def request_refund(*, order: Order, user, reason: str, amount=None) -> RefundRequest:
    """Open a refund request for a paid order owned by `user`."""

    if order.user_id is None or order.user_id != getattr(user, "id", None):
        raise OrderAccessDenied("Not authorized to access this order.")
    if order.payment_status != Order.PAYMENT_PAID:
        raise RefundError("Order has not been paid")
    amount = quantize(amount) if amount is not None else order.total
    if amount <= 0 or amount > order.total:
        raise RefundError("Refund amount must be positive and not exceed the order total")
    open_statuses = [RefundRequest.STATUS_PENDING, RefundRequest.STATUS_APPROVED]
    if RefundRequest.objects.filter(order=order, status__in=open_statuses).exists():
        raise RefundError("Refund request already exists for this order")
    try:
        with transaction.atomic():
            refund = RefundRequest.objects.create(order=order, user=user, reason=reason, amount=amount)
    except IntegrityError:
        raise RefundError("Refund request already exists for this order")
    logger.info(
        "refund.requested",
        extra={"event": "refund.requested", "order_id": order.id, "refund_id": refund.id, "amount": str(amount)},
    )
    return refund


@transaction.atomic
def approve_refund(refund: RefundRequest, *, note: str = "") -> RefundRequest:
    """Approve a pending refund and mark the order's payment as refunded."""

    now = timezone.now()
    updated = RefundRequest.objects.filter(pk=refund.pk, status=RefundRequest.STATUS_PENDING).update(
        status=RefundRequest.STATUS_APPROVED, admin_note=note, processed_at=now, updated_at=now
    )
    if not updated:
        raise RefundError("Only pending refunds can be approved")
    order = refund.order
    payment_from = order.payment_status
    Order.objects.filter(pk=order.pk, payment_status=Order.PAYMENT_PAID).update(
        payment_status=Order.PAYMENT_REFUNDED, updated_at=now
    )
    order.refresh_from_db()
    _log_status_change(order, order.status, payment_from)
    refund.refresh_from_db()
    return refund


def reject_refund(refund: RefundRequest, *, note: str = "") -> RefundRequest:
    now = timezone.now()
    updated = RefundRequest.objects.filter(pk=refund.pk, status=RefundRequest.STATUS_PENDING).update(
        status=RefundRequest.STATUS_REJECTED, admin_note=note, processed_at=now, updated_at=now
    )
    if not updated:
        raise RefundError("Only pending refunds can be rejected")
    refund.refresh_from_db()
    logger.info("refund.rejected", extra={"event": "refund.rejected", "refund_id": refund.id})
    return refund


def with_idempotency(
    *,
    key: str,
    scope: str,
    path: str,
    method: str,
    handler: Callable[[], Tuple[dict, int]],
    user=None,
    request_hash: Optional[str] = None,
) -> Tuple[dict, int]:
    """Run handler idempotently and persist its response for the given key and scope.

    - `scope` identifies the caller, e.g. "user:<id>" or "session:<id>".
    - If a record exists and the stored `request_hash` differs from the provided one, returns 409.
    - If a record exists but response is not yet stored, returns 409 to indicate in-progress.
    """

    method = str(method).upper()
    path = str(path)
    ttl_hours = int(getattr(settings, "IDEMPOTENCY_TTL_HOURS", 24))

    try:
        with transaction.atomic():
            idem = IdempotencyKey.objects.create(
                key=key,
                user=user if getattr(user, "is_authenticated", False) else None,
                scope=scope,
                path=path,
                method=method,
                request_hash=request_hash,
                expires_at=timezone.now() + timedelta(hours=ttl_hours),
            )
    except IntegrityError:
        idem = IdempotencyKey.objects.get(key=key, scope=scope, path=path, method=method)
        # Guard against key reuse with different fingerprints
        if idem.request_hash and request_hash and idem.request_hash != request_hash:
            return {"detail": "Idempotency key reused with different request payload"}, 409
        if idem.response_json is not None and idem.response_code is not None:
            return idem.response_json, int(idem.response_code)
        return {"detail": "Request in progress"}, 409

    body, code = handler()

    def _json_safe(value):
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, dict):
            return {k: _json_safe(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [_json_safe(v) for v in value]
        return value

    IdempotencyKey.objects.filter(id=idem.id).update(response_json=_json_safe(body), response_code=code)
    return body, code


def compute_request_hash(data: Optional[dict]) -> Optional[str]:
    """Compute a canonical SHA256 hash of the request body.

    Uses sorted keys JSON representation to stabilize the hash across equivalent payloads.
    Returns None when data is falsy.
    """
    if not data:
        return None
    try:
        payload = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        return None
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()

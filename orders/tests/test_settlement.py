from datetime import timedelta
from io import StringIO
from unittest.mock import patch

import pytest
import stripe
from cart.services import add_item
from django.core import mail
from django.core.management import call_command
from django.utils import timezone
from inventory.models import Inventory, StockMovement
from inventory.tests.factories import InventoryFactory
from orders.models import Order
from orders.services import (
    AlreadySettled,
    InvalidTransition,
    PaymentMismatch,
    advance_fulfillment,
    cancel_order,
    create_order_from_cart,
    expire_pending_orders,
    settle_payment,
)
from orders.tests.factories import OrderFactory
from payments.gateways.base import GatewayError, PaymentOutcome, TransactionNotCancellable
from payments.gateways.blik import BlikClient

ADDRESS = {"first_name": "Ann", "last_name": "Nowak", "address1": "Long 5", "city": "Gdansk", "postal_code": "80-001"}


def _order(session_id="s1", quantity=2, stock=5):
    inv = InventoryFactory(quantity=stock)
    add_item(session_id=session_id, product_id=inv.product_id, quantity=quantity)
    order = create_order_from_cart(
        session_id=session_id,
        customer_email="ann@example.com",
        shipping_address=ADDRESS,
        payment_method="stripe",
    )
    return order, inv


@pytest.mark.django_db
def test_paid_commits_reserved_stock_once(django_capture_on_commit_callbacks):
    order, inv = _order(quantity=2, stock=5)

    with django_capture_on_commit_callbacks(execute=True):
        settled = settle_payment(order_id=order.id, outcome=PaymentOutcome.PAID, amount_minor=5000)

    assert settled.payment_status == Order.PAYMENT_PAID
    assert settled.status == Order.STATUS_PROCESSING
    assert settled.paid_at is not None
    inv.refresh_from_db()
    assert (inv.quantity, inv.reserved) == (3, 0)
    movement = StockMovement.objects.get(inventory=inv, movement_type="out")
    assert movement.quantity == -2
    assert movement.reference == order.number
    assert len(mail.outbox) == 1
    assert order.number in mail.outbox[0].subject
    assert mail.outbox[0].to == ["ann@example.com"]
    assert f"http://frontend.test/orders/{order.id}" in mail.outbox[0].body

    with pytest.raises(AlreadySettled):
        settle_payment(order_id=order.id, outcome=PaymentOutcome.PAID)
    inv.refresh_from_db()
    assert (inv.quantity, inv.reserved) == (3, 0)


@pytest.mark.django_db
def test_failed_releases_reserved_stock():
    order, inv = _order(quantity=2, stock=5)

    settled = settle_payment(order_id=order.id, outcome=PaymentOutcome.FAILED)

    assert settled.payment_status == Order.PAYMENT_FAILED
    assert settled.status == Order.STATUS_CANCELLED
    assert settled.cancelled_at is not None
    inv.refresh_from_db()
    assert (inv.quantity, inv.reserved) == (5, 0)


@pytest.mark.django_db
def test_late_success_after_failure_changes_nothing():
    order, inv = _order(quantity=2, stock=5)
    settle_payment(order_id=order.id, outcome=PaymentOutcome.FAILED)

    with pytest.raises(AlreadySettled) as exc:
        settle_payment(order_id=order.id, outcome=PaymentOutcome.PAID)

    assert exc.value.order.payment_status == Order.PAYMENT_FAILED
    inv.refresh_from_db()
    assert (inv.quantity, inv.reserved) == (5, 0)


@pytest.mark.django_db
def test_amount_mismatch_leaves_order_pending():
    order, inv = _order(quantity=2, stock=5)

    with pytest.raises(PaymentMismatch):
        settle_payment(order_id=order.id, outcome=PaymentOutcome.PAID, amount_minor=100)

    order.refresh_from_db()
    assert order.payment_status == Order.PAYMENT_PENDING
    assert Inventory.objects.get(pk=inv.pk).reserved == 2


@pytest.mark.django_db
def test_reference_mismatch_is_rejected():
    order, _ = _order()
    Order.objects.filter(pk=order.pk).update(gateway_reference="cs_expected")

    with pytest.raises(PaymentMismatch):
        settle_payment(order_id=order.id, outcome=PaymentOutcome.PAID, gateway_reference="cs_other")

    settled = settle_payment(order_id=order.id, outcome=PaymentOutcome.PAID, gateway_reference="cs_expected")
    assert settled.payment_status == Order.PAYMENT_PAID


@pytest.mark.django_db
def test_unknown_order_and_unsupported_outcome():
    with pytest.raises(Order.DoesNotExist):
        settle_payment(order_id=999999, outcome=PaymentOutcome.PAID)
    with pytest.raises(ValueError):
        settle_payment(order_id=1, outcome=PaymentOutcome.IGNORED)


@pytest.mark.django_db
def test_settlement_logs_status_change(caplog):
    order, _ = _order()

    with caplog.at_level("INFO", logger="storefront.orders"):
        settle_payment(order_id=order.id, outcome=PaymentOutcome.PAID)

    changed = [r for r in caplog.records if getattr(r, "event", None) == "order_status_changed"]
    assert len(changed) == 1
    assert changed[0].status_from == "pending"
    assert changed[0].status_to == "processing"
    assert changed[0].payment_to == "paid"
    assert any(getattr(r, "event", None) == "payment_settled" for r in caplog.records)


@pytest.mark.django_db
def test_cancel_only_while_pending():
    order, inv = _order()

    cancelled = cancel_order(order)
    assert cancelled.status == Order.STATUS_CANCELLED
    assert Inventory.objects.get(pk=inv.pk).reserved == 0

    with pytest.raises(InvalidTransition):
        cancel_order(cancelled)


@pytest.mark.django_db
def test_cancel_expires_stripe_session_before_releasing_stock():
    order, inv = _order()
    Order.objects.filter(pk=order.pk).update(gateway_reference="cs_live_1")
    order.refresh_from_db()

    with patch("stripe.checkout.Session.expire") as expire:
        cancelled = cancel_order(order)

    expire.assert_called_once_with("cs_live_1", api_key="sk_test_dummy")
    assert cancelled.payment_status == Order.PAYMENT_FAILED
    assert Inventory.objects.get(pk=inv.pk).reserved == 0


@pytest.mark.django_db
def test_cancel_refused_when_stripe_session_already_completed():
    order, inv = _order()
    Order.objects.filter(pk=order.pk).update(gateway_reference="cs_live_1")
    order.refresh_from_db()
    completed = stripe.InvalidRequestError("Only open sessions can be expired", "session")

    with patch("stripe.checkout.Session.expire", side_effect=completed):
        with pytest.raises(TransactionNotCancellable):
            cancel_order(order)

    order.refresh_from_db()
    assert order.payment_status == Order.PAYMENT_PENDING
    assert Inventory.objects.get(pk=inv.pk).reserved == 2
    paid = settle_payment(order_id=order.id, outcome=PaymentOutcome.PAID, gateway="stripe")
    assert paid.payment_status == Order.PAYMENT_PAID


@pytest.mark.django_db
def test_cancel_keeps_order_pending_when_stripe_unreachable():
    order, inv = _order()
    Order.objects.filter(pk=order.pk).update(gateway_reference="cs_live_1")
    order.refresh_from_db()

    with patch("stripe.checkout.Session.expire", side_effect=stripe.APIConnectionError("timeout")):
        with pytest.raises(GatewayError):
            cancel_order(order)

    order.refresh_from_db()
    assert order.payment_status == Order.PAYMENT_PENDING
    assert Inventory.objects.get(pk=inv.pk).reserved == 2


@pytest.mark.django_db
def test_cancel_blik_order_checks_p24_status():
    order, inv = _order()
    Order.objects.filter(pk=order.pk).update(payment_method="blik", gateway_reference="tok-1")
    order.refresh_from_db()

    with patch.object(BlikClient, "get_transaction_status", return_value={"status": 2}) as lookup:
        with pytest.raises(TransactionNotCancellable):
            cancel_order(order)
    lookup.assert_called_once_with(session_id=str(order.id))
    assert Inventory.objects.get(pk=inv.pk).reserved == 2

    with patch.object(BlikClient, "get_transaction_status", return_value={"status": 0}):
        cancelled = cancel_order(order)
    assert cancelled.status == Order.STATUS_CANCELLED
    assert Inventory.objects.get(pk=inv.pk).reserved == 0


@pytest.mark.django_db
def test_outcome_from_another_gateway_is_rejected():
    order, inv = _order()

    with pytest.raises(PaymentMismatch):
        settle_payment(order_id=order.id, outcome=PaymentOutcome.PAID, gateway="blik")

    order.refresh_from_db()
    assert order.payment_status == Order.PAYMENT_PENDING
    assert Inventory.objects.get(pk=inv.pk).reserved == 2


@pytest.mark.django_db
def test_fulfillment_follows_paid_order_lifecycle():
    order, _ = _order()

    with pytest.raises(InvalidTransition):
        advance_fulfillment(order, Order.STATUS_SHIPPED)

    order = settle_payment(order_id=order.id, outcome=PaymentOutcome.PAID)
    with pytest.raises(InvalidTransition):
        advance_fulfillment(order, Order.STATUS_DELIVERED)

    order = advance_fulfillment(order, Order.STATUS_SHIPPED)
    assert order.status == Order.STATUS_SHIPPED
    order = advance_fulfillment(order, Order.STATUS_DELIVERED)
    assert order.status == Order.STATUS_DELIVERED


@pytest.mark.django_db
def test_expire_pending_orders_fails_only_stale_ones():
    stale, stale_inv = _order(session_id="old")
    fresh, fresh_inv = _order(session_id="new")
    Order.objects.filter(pk=stale.pk).update(created_at=timezone.now() - timedelta(days=2))

    assert expire_pending_orders() == 1

    stale.refresh_from_db()
    fresh.refresh_from_db()
    assert stale.payment_status == Order.PAYMENT_FAILED
    assert fresh.payment_status == Order.PAYMENT_PENDING
    assert Inventory.objects.get(pk=stale_inv.pk).reserved == 0
    assert Inventory.objects.get(pk=fresh_inv.pk).reserved == 2


@pytest.mark.django_db
def test_expiry_withdraws_gateway_session_and_retries_when_unreachable():
    order, inv = _order()
    stale = timezone.now() - timedelta(days=2)
    Order.objects.filter(pk=order.pk).update(gateway_reference="cs_live_1", created_at=stale)

    with patch("stripe.checkout.Session.expire", side_effect=stripe.APIConnectionError("timeout")):
        assert expire_pending_orders() == 0
    assert Inventory.objects.get(pk=inv.pk).reserved == 2

    with patch("stripe.checkout.Session.expire") as expire:
        assert expire_pending_orders() == 1
    expire.assert_called_once_with("cs_live_1", api_key="sk_test_dummy")
    assert Inventory.objects.get(pk=inv.pk).reserved == 0


@pytest.mark.django_db
def test_expire_pending_orders_command():
    order, _ = _order()
    Order.objects.filter(pk=order.pk).update(created_at=timezone.now() - timedelta(minutes=10))
    out = StringIO()

    call_command("expire_pending_orders", "--minutes", "5", stdout=out)

    assert "Expired unpaid orders: 1" in out.getvalue()
    order.refresh_from_db()
    assert order.payment_status == Order.PAYMENT_FAILED


@pytest.mark.django_db
def test_paid_orders_are_not_expired():
    order = OrderFactory(payment_status=Order.PAYMENT_PAID, status=Order.STATUS_PROCESSING)
    Order.objects.filter(pk=order.pk).update(created_at=timezone.now() - timedelta(days=3))

    assert expire_pending_orders() == 0


@pytest.mark.django_db
def test_checkout_then_duplicate_paid_notification_deducts_once():
    order, inv = _order(quantity=4, stock=10)
    inv.refresh_from_db()
    assert inv.available == 6

    settle_payment(order_id=order.id, outcome=PaymentOutcome.PAID)
    with pytest.raises(AlreadySettled):
        settle_payment(order_id=order.id, outcome=PaymentOutcome.PAID)

    inv.refresh_from_db()
    assert (inv.quantity, inv.reserved) == (6, 0)

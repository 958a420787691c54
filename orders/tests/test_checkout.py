from types import SimpleNamespace
from unittest.mock import patch

import pytest
import stripe
from cart.models import Cart, CartItem
from cart.services import add_item
from cart.tests.factories import CartFactory, CartItemFactory
from catalog.models import Product
from django.test import override_settings
from inventory.models import Inventory
from inventory.tests.factories import InventoryFactory
from orders.models import IdempotencyKey, Order
from orders.tests.factories import UserFactory
from payments.gateways.blik import BlikClient
from rest_framework.test import APIClient

ADDRESS = {
    "first_name": "Jan",
    "last_name": "Kowalski",
    "address1": "Marszalkowska 1",
    "city": "Warszawa",
    "postal_code": "00-001",
    "country": "PL",
}
STRIPE_SESSION = SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/pay/cs_test_1")


def _payload(session_id, **extra):
    payload = {"session_id": session_id, "email": "jan@example.com", "name": "Jan", "shipping_address": ADDRESS}
    payload.update(extra)
    return payload


def _stocked_cart(session_id, quantity=2, stock=5):
    inv = InventoryFactory(quantity=stock)
    add_item(session_id=session_id, product_id=inv.product_id, quantity=quantity)
    return inv


@pytest.mark.django_db
def test_stripe_checkout_creates_pending_order_and_keeps_reservation():
    inv = _stocked_cart("s1", quantity=2)
    client = APIClient()

    with patch("stripe.checkout.Session.create", return_value=STRIPE_SESSION) as create:
        r = client.post("/api/v1/checkout/", _payload("s1"), format="json")

    assert r.status_code == 201
    body = r.json()
    assert body["payment_method"] == "stripe"
    assert body["redirect_url"] == STRIPE_SESSION.url
    assert body["session_id"] == "cs_test_1"
    assert body["requires_blik_code"] is False

    order = Order.objects.get(pk=body["order_id"])
    assert order.number == body["order_number"] == f"ORD-{order.id:06d}"
    assert order.status == Order.STATUS_PENDING
    assert order.payment_status == Order.PAYMENT_PENDING
    assert order.gateway_reference == "cs_test_1"
    assert order.user is None
    assert order.billing_address_id == order.shipping_address_id
    item = order.items.get()
    assert item.quantity == 2
    assert item.unit_price == inv.product.price
    assert order.total == inv.product.price * 2

    inv.refresh_from_db()
    assert (inv.quantity, inv.reserved) == (5, 2)
    assert not CartItem.objects.exists()
    assert Cart.objects.get(session_id="s1", status=Cart.STATUS_ORDERED)

    kwargs = create.call_args.kwargs
    assert kwargs["metadata"]["order_id"] == str(order.id)
    assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 2500
    assert kwargs["success_url"].startswith("http://frontend.test/checkout/success")


@pytest.mark.django_db
def test_checkout_uses_session_header_and_links_signed_in_user():
    _stocked_cart("hdr")
    user = UserFactory()
    client = APIClient()
    client.force_authenticate(user=user)
    payload = _payload("")
    payload.pop("session_id")

    with patch("stripe.checkout.Session.create", return_value=STRIPE_SESSION):
        r = client.post("/api/v1/checkout/", payload, format="json", HTTP_X_SESSION_ID="hdr")

    assert r.status_code == 201
    order = Order.objects.get(pk=r.json()["order_id"])
    assert order.user == user
    assert order.session_id == "hdr"


@pytest.mark.django_db
def test_checkout_price_snapshot_survives_catalog_change():
    inv = _stocked_cart("s1", quantity=1)

    with patch("stripe.checkout.Session.create", return_value=STRIPE_SESSION):
        r = APIClient().post("/api/v1/checkout/", _payload("s1"), format="json")

    Product.objects.filter(pk=inv.product_id).update(price="99.00")
    order = Order.objects.get(pk=r.json()["order_id"])
    assert str(order.items.get().unit_price) == "25.00"


@pytest.mark.django_db
def test_blik_checkout_with_code_charges_immediately():
    _stocked_cart("s1")

    with (
        patch.object(BlikClient, "register_transaction", return_value="tok-123") as register,
        patch.object(BlikClient, "submit_blik_code", return_value={}) as submit,
    ):
        r = APIClient().post(
            "/api/v1/checkout/", _payload("s1", payment_method="blik", blik_code="777123"), format="json"
        )

    assert r.status_code == 201
    body = r.json()
    assert body["payment_method"] == "blik"
    assert body["token"] == "tok-123"
    assert body["requires_blik_code"] is False
    assert body["redirect_url"] == "https://sandbox.przelewy24.pl/trnRequest/tok-123"
    order = Order.objects.get(pk=body["order_id"])
    assert register.call_args.kwargs["amount"] == 5000
    assert register.call_args.kwargs["session_id"] == str(order.id)
    submit.assert_called_once_with(token="tok-123", code="777123")


@pytest.mark.django_db
def test_blik_checkout_without_code_asks_for_one():
    _stocked_cart("s1")

    with (
        patch.object(BlikClient, "register_transaction", return_value="tok-9"),
        patch.object(BlikClient, "submit_blik_code") as submit,
    ):
        r = APIClient().post("/api/v1/checkout/", _payload("s1", payment_method="blik"), format="json")

    assert r.status_code == 201
    assert r.json()["requires_blik_code"] is True
    submit.assert_not_called()


@pytest.mark.django_db
def test_blik_code_requires_blik_method():
    _stocked_cart("s1")

    r = APIClient().post("/api/v1/checkout/", _payload("s1", blik_code="123456"), format="json")

    assert r.status_code == 400
    assert "blik_code" in r.json()


@pytest.mark.django_db
def test_checkout_empty_cart():
    r = APIClient().post("/api/v1/checkout/", _payload("nothing"), format="json")

    assert r.status_code == 400
    assert r.json() == {"detail": "Cart is empty"}
    assert not Order.objects.exists()


@pytest.mark.django_db
def test_checkout_insufficient_on_hand_stock_creates_nothing():
    inv = InventoryFactory(quantity=1)
    CartItemFactory(cart=CartFactory(session_id="s1"), product=inv.product, quantity=2)

    with patch("stripe.checkout.Session.create") as create:
        r = APIClient().post("/api/v1/checkout/", _payload("s1"), format="json")

    assert r.status_code == 400
    assert r.json() == {"detail": "Insufficient stock", "available_quantity": 1, "product_id": inv.product_id}
    create.assert_not_called()
    assert not Order.objects.exists()
    assert CartItem.objects.count() == 1


@pytest.mark.django_db
def test_checkout_restores_reservation_that_was_released():
    inv = InventoryFactory(quantity=5, reserved=0)
    CartItemFactory(cart=CartFactory(session_id="s1"), product=inv.product, quantity=2)

    with patch("stripe.checkout.Session.create", return_value=STRIPE_SESSION):
        r = APIClient().post("/api/v1/checkout/", _payload("s1"), format="json")

    assert r.status_code == 201
    assert Inventory.objects.get(pk=inv.pk).reserved == 2


@pytest.mark.django_db
def test_checkout_rejects_hidden_product():
    inv = _stocked_cart("s1")
    Product.objects.filter(pk=inv.product_id).update(is_visible=False)

    r = APIClient().post("/api/v1/checkout/", _payload("s1"), format="json")

    assert r.status_code == 400
    assert r.json()["detail"] == "Product is not available"
    assert not Order.objects.exists()


@pytest.mark.django_db
def test_gateway_failure_fails_order_and_releases_stock():
    inv = _stocked_cart("s1", quantity=2)

    with patch("stripe.checkout.Session.create", side_effect=stripe.StripeError("down")):
        r = APIClient().post("/api/v1/checkout/", _payload("s1"), format="json")

    assert r.status_code == 502
    assert r.json() == {"detail": "Payment provider unavailable. Please try again."}
    order = Order.objects.get()
    assert order.payment_status == Order.PAYMENT_FAILED
    assert order.status == Order.STATUS_CANCELLED
    assert Inventory.objects.get(pk=inv.pk).reserved == 0


@pytest.mark.django_db
@override_settings(PAYMENT_GATEWAYS={"stripe": "payments.gateways.stripe_gateway.StripeGateway"})
def test_unconfigured_payment_method_is_rejected_before_ordering():
    inv = _stocked_cart("s1")

    r = APIClient().post("/api/v1/checkout/", _payload("s1", payment_method="blik"), format="json")

    assert r.status_code == 400
    assert r.json() == {"payment_method": ["Payment method is not available."]}
    assert not Order.objects.exists()
    assert Inventory.objects.get(pk=inv.pk).reserved == 2


@pytest.mark.django_db
def test_checkout_replays_response_for_same_idempotency_key():
    _stocked_cart("s1")
    client = APIClient()

    with patch("stripe.checkout.Session.create", return_value=STRIPE_SESSION) as create:
        r1 = client.post("/api/v1/checkout/", _payload("s1"), format="json", HTTP_IDEMPOTENCY_KEY="idem-1")
        r2 = client.post("/api/v1/checkout/", _payload("s1"), format="json", HTTP_IDEMPOTENCY_KEY="idem-1")

    assert r1.status_code == r2.status_code == 201
    assert r1.json() == r2.json()
    assert Order.objects.count() == 1
    assert create.call_count == 1
    assert IdempotencyKey.objects.get().scope == "session:s1"


@pytest.mark.django_db
def test_checkout_idempotency_key_reuse_with_other_payload_conflicts():
    _stocked_cart("s1")
    client = APIClient()

    with patch("stripe.checkout.Session.create", return_value=STRIPE_SESSION):
        client.post("/api/v1/checkout/", _payload("s1"), format="json", HTTP_IDEMPOTENCY_KEY="idem-2")
        r = client.post(
            "/api/v1/checkout/", _payload("s1", email="other@example.com"), format="json", HTTP_IDEMPOTENCY_KEY="idem-2"
        )

    assert r.status_code == 409

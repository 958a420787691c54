from decimal import Decimal

import pytest
from orders.models import Order, RefundRequest
from orders.services import RefundError, approve_refund, reject_refund, request_refund
from orders.tests.factories import OrderFactory, RefundRequestFactory, UserFactory
from rest_framework.test import APIClient


def _client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


def _paid_order(user):
    return OrderFactory(user=user, payment_status=Order.PAYMENT_PAID, status=Order.STATUS_PROCESSING)


@pytest.mark.django_db
def test_request_refund_defaults_to_order_total():
    user = UserFactory()
    order = _paid_order(user)

    r = _client(user).post("/api/v1/orders/refunds/", {"order": order.id, "reason": "Broken"}, format="json")

    assert r.status_code == 201
    body = r.json()
    assert body["order_number"] == order.number
    assert body["amount"] == "50.00"
    assert body["status"] == RefundRequest.STATUS_PENDING

    r_list = _client(user).get("/api/v1/orders/refunds/")
    assert r_list.json()["count"] == 1


@pytest.mark.django_db
def test_partial_refund_and_bounds():
    user = UserFactory()
    order = _paid_order(user)

    r_over = _client(user).post(
        "/api/v1/orders/refunds/", {"order": order.id, "reason": "x", "amount": "60.00"}, format="json"
    )
    assert r_over.status_code == 400

    r_zero = _client(user).post(
        "/api/v1/orders/refunds/", {"order": order.id, "reason": "x", "amount": "0"}, format="json"
    )
    assert r_zero.status_code == 400

    r_ok = _client(user).post(
        "/api/v1/orders/refunds/", {"order": order.id, "reason": "x", "amount": "12.50"}, format="json"
    )
    assert r_ok.status_code == 201
    assert r_ok.json()["amount"] == "12.50"


@pytest.mark.django_db
def test_refund_rules():
    user = UserFactory()
    unpaid = OrderFactory(user=user)
    paid = _paid_order(user)

    r_unpaid = _client(user).post("/api/v1/orders/refunds/", {"order": unpaid.id, "reason": "x"}, format="json")
    assert r_unpaid.status_code == 400
    assert r_unpaid.json() == {"detail": "Order has not been paid"}

    r_foreign = _client(UserFactory()).post("/api/v1/orders/refunds/", {"order": paid.id, "reason": "x"}, format="json")
    assert r_foreign.status_code == 403

    r_first = _client(user).post("/api/v1/orders/refunds/", {"order": paid.id, "reason": "x"}, format="json")
    assert r_first.status_code == 201
    r_dup = _client(user).post("/api/v1/orders/refunds/", {"order": paid.id, "reason": "x"}, format="json")
    assert r_dup.status_code == 400
    assert r_dup.json() == {"detail": "Refund request already exists for this order"}


@pytest.mark.django_db
def test_rejected_refund_allows_new_request():
    user = UserFactory()
    order = _paid_order(user)
    refund = request_refund(order=order, user=user, reason="first")
    reject_refund(refund, note="no")

    again = request_refund(order=order, user=user, reason="second", amount=Decimal("5"))

    assert again.amount == Decimal("5.00")


@pytest.mark.django_db
def test_approve_marks_order_refunded_once():
    user = UserFactory()
    refund = RefundRequestFactory(order=_paid_order(user), user=user)

    approved = approve_refund(refund, note="ok")

    assert approved.status == RefundRequest.STATUS_APPROVED
    assert approved.admin_note == "ok"
    assert approved.processed_at is not None
    refund.order.refresh_from_db()
    assert refund.order.payment_status == Order.PAYMENT_REFUNDED
    with pytest.raises(RefundError):
        approve_refund(refund)
    with pytest.raises(RefundError):
        reject_refund(refund)


@pytest.mark.django_db
def test_admin_refund_endpoints():
    staff = UserFactory(is_staff=True)
    user = UserFactory()
    pending = RefundRequestFactory(order=_paid_order(user), user=user)
    to_reject = RefundRequestFactory(order=_paid_order(user), user=user)

    assert _client(user).get("/api/v1/admin/refunds/").status_code == 403

    r_list = _client(staff).get("/api/v1/admin/refunds/", {"status": "pending"})
    assert r_list.status_code == 200
    assert r_list.json()["count"] == 2

    r_approve = _client(staff).post(f"/api/v1/admin/refunds/{pending.id}/approve/", {"note": "fine"}, format="json")
    assert r_approve.status_code == 200
    assert r_approve.json()["status"] == RefundRequest.STATUS_APPROVED

    r_reject = _client(staff).post(f"/api/v1/admin/refunds/{to_reject.id}/reject/", {}, format="json")
    assert r_reject.status_code == 200
    assert r_reject.json()["status"] == RefundRequest.STATUS_REJECTED
    to_reject.order.refresh_from_db()
    assert to_reject.order.payment_status == Order.PAYMENT_PAID

    r_twice = _client(staff).post(f"/api/v1/admin/refunds/{pending.id}/reject/", {}, format="json")
    assert r_twice.status_code == 400
    assert _client(staff).post("/api/v1/admin/refunds/999999/approve/", {}, format="json").status_code == 404

import pytest
from django.core import mail
from orders.tests.factories import OrderFactory, UserFactory
from rest_framework.test import APIClient
from support.models import SupportTicket
from support.services import TicketError, open_ticket
from support.tests.factories import SupportTicketFactory

URL = "/api/v1/support/tickets/"


def _payload(**overrides):
    data = {
        "name": "Ann Nowak",
        "email": "ann@example.com",
        "subject": "Where is my parcel?",
        "message": "It has not shipped yet.",
    }
    data.update(overrides)
    return data


@pytest.mark.django_db
def test_guest_opens_ticket_with_defaults(django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        r = APIClient().post(URL, _payload(), format="json")

    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "open"
    assert body["priority"] == "normal"
    assert body["order"] is None
    ticket = SupportTicket.objects.get()
    assert ticket.user is None
    assert len(mail.outbox) == 1
    assert mail.outbox[0].to == ["support@shop.test"]
    assert f"[Ticket #{ticket.id}] Where is my parcel?" == mail.outbox[0].subject


@pytest.mark.django_db
def test_missing_fields_are_rejected():
    r = APIClient().post(URL, {"email": "not-an-email"}, format="json")

    assert r.status_code == 400
    assert {"name", "email", "subject", "message"} <= set(r.json())
    assert not SupportTicket.objects.exists()


@pytest.mark.django_db
def test_signed_in_user_links_own_order():
    user = UserFactory()
    order = OrderFactory(user=user)
    client = APIClient()
    client.force_authenticate(user=user)

    r = client.post(URL, _payload(order_id=order.id), format="json")

    assert r.status_code == 201
    assert r.json()["order"] == order.id
    assert r.json()["order_number"] == order.number
    assert SupportTicket.objects.get().user == user


@pytest.mark.django_db
def test_guest_links_order_of_own_session_only():
    order = OrderFactory(session_id="guest-1")
    client = APIClient()

    ok = client.post(URL, _payload(order_id=order.id), format="json", HTTP_X_SESSION_ID="guest-1")
    other = client.post(URL, _payload(order_id=order.id), format="json", HTTP_X_SESSION_ID="guest-2")
    missing = client.post(URL, _payload(order_id=999999), format="json", HTTP_X_SESSION_ID="guest-1")

    assert ok.status_code == 201
    assert other.status_code == missing.status_code == 400
    assert other.json() == {"order_id": ["Order not found."]}
    assert SupportTicket.objects.count() == 1


@pytest.mark.django_db
def test_list_returns_only_own_tickets():
    user = UserFactory()
    mine = SupportTicketFactory(user=user)
    SupportTicketFactory(user=UserFactory())
    SupportTicketFactory()
    client = APIClient()
    client.force_authenticate(user=user)

    r = client.get(URL)

    assert r.status_code == 200
    assert r.json()["count"] == 1
    assert r.json()["results"][0]["id"] == mine.id


@pytest.mark.django_db
def test_list_requires_authentication():
    assert APIClient().get(URL).status_code in (401, 403)


@pytest.mark.django_db
def test_open_ticket_service_refuses_foreign_order(caplog):
    order = OrderFactory(user=UserFactory())

    with pytest.raises(TicketError):
        open_ticket(name="Bob", email="bob@example.com", subject="Hi", message="Hello", order_id=order.id)

    with caplog.at_level("INFO", logger="storefront.support"):
        ticket = open_ticket(name="Bob", email="bob@example.com", subject="Hi", message="Hello")
    assert ticket.order is None
    assert any(getattr(r, "event", None) == "support.ticket_opened" for r in caplog.records)

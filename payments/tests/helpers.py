import hashlib
import hmac
import json
import time

STRIPE_SECRET = "whsec_test_secret"


def stripe_event(event_type, *, order_id, session_id="cs_test_1", amount_total=5000, payment_status="paid"):
    return {
        "id": "evt_test_1",
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "client_reference_id": str(order_id),
                "metadata": {"order_id": str(order_id)},
                "payment_status": payment_status,
                "amount_total": amount_total,
            }
        },
    }


def stripe_signed(event, secret=STRIPE_SECRET):
    """Return the raw payload and a valid `Stripe-Signature` header for it."""

    payload = json.dumps(event)
    timestamp = int(time.time())
    digest = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return payload, f"t={timestamp},v1={digest}"


def blik_notification(*, order_id, amount=5000, statement="success", crc="p24-test-crc", currency="PLN"):
    sign = hashlib.md5(f"11111|11111|{order_id}|{amount}|{currency}|{crc}".encode()).hexdigest()
    return {
        "merchantId": 11111,
        "posId": 11111,
        "sessionId": str(order_id),
        "amount": amount,
        "originAmount": amount,
        "currency": currency,
        "orderId": 987654,
        "methodId": 181,
        "statement": statement,
        "sign": sign,
    }

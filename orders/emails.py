"""Email utilities for the orders app.

Uses Django's email backend, with links composed from FRONTEND_URL.
"""

from django.conf import settings
from django.core.mail import send_mail


def send_order_paid_email(order) -> None:
    """Send a payment confirmation to the order's contact address.

    Links to the order on the frontend when `FRONTEND_URL` is set; no-ops
    when neither the order nor its user has an email.
    """
    to_email = order.customer_email or getattr(order.user, "email", None)
    if not to_email:
        return

    reference = order.number or order.id
    frontend = getattr(settings, "FRONTEND_URL", "")
    order_url = f"{frontend.rstrip('/')}/orders/{order.id}" if frontend else ""

    lines = [
        "Thank you for your purchase!",
        "",
        f"Order: {reference}",
        f"Total: {order.total} {order.currency}",
        f"Status: {order.status}",
    ]
    if order_url:
        lines += ["", f"You can view your order here: {order_url}"]

    send_mail(
        f"Your order {reference} is confirmed",
        "\n".join(lines) + "\n",
        getattr(settings, "DEFAULT_FROM_EMAIL", None),
        [to_email],
        fail_silently=True,
    )

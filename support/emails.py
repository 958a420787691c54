"""Staff notification for new support tickets."""

from django.conf import settings
from django.core.mail import send_mail


def send_ticket_opened_email(ticket) -> None:
    """Tell the support inbox about a new ticket; no-op without SUPPORT_EMAIL."""
    to_email = getattr(settings, "SUPPORT_EMAIL", "")
    if not to_email:
        return

    lines = [
        f"From: {ticket.name} <{ticket.email}>",
        f"Priority: {ticket.priority}",
    ]
    if ticket.order_id:
        lines.append(f"Order: {ticket.order.number or ticket.order_id}")
    lines += ["", ticket.message]

    send_mail(
        f"[Ticket #{ticket.id}] {ticket.subject}",
        "\n".join(lines) + "\n",
        getattr(settings, "DEFAULT_FROM_EMAIL", None),
        [to_email],
        fail_silently=True,
    )

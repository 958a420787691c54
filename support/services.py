"""Support ticket services."""

import logging
from typing import Optional

from django.db import transaction
from django.http import Http404
from orders.selectors import get_order_for_requester
from orders.services import OrderAccessDenied

from .emails import send_ticket_opened_email
from .models import SupportTicket

logger = logging.getLogger("storefront.support")


class TicketError(Exception):
    """Raised when a ticket cannot be opened."""


@transaction.atomic
def open_ticket(
    *,
    name: str,
    email: str,
    subject: str,
    message: str,
    order_id: Optional[int] = None,
    user=None,
    session_id: Optional[str] = None,
) -> SupportTicket:
    """Open a ticket, linking the order only when the requester may see it."""

    order = None
    if order_id is not None:
        try:
            order = get_order_for_requester(order_id=order_id, user=user, session_id=session_id)
        except (OrderAccessDenied, Http404):
            raise TicketError("Order not found for this requester")
    ticket = SupportTicket.objects.create(
        user=user if getattr(user, "is_authenticated", False) else None,
        order=order,
        name=name,
        email=email,
        subject=subject,
        message=message,
    )
    transaction.on_commit(lambda: send_ticket_opened_email(ticket))
    logger.info(
        "support.ticket_opened",
        extra={
            "event": "support.ticket_opened",
            "ticket_id": ticket.id,
            "user_id": ticket.user_id,
            "order_id": ticket.order_id,
        },
    )
    return ticket

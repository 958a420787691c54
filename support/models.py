from common.choices import TicketPriority, TicketStatus
from django.conf import settings
from django.db import models


class SupportTicket(models.Model):
    """A customer question, optionally about one of their orders.

    Guests may open tickets; `user` is set when the requester is signed in.
    """

    STATUS_OPEN = TicketStatus.OPEN
    STATUS_IN_PROGRESS = TicketStatus.IN_PROGRESS
    STATUS_RESOLVED = TicketStatus.RESOLVED
    STATUS_CLOSED = TicketStatus.CLOSED

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="support_tickets",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    order = models.ForeignKey(
        "orders.Order",
        related_name="support_tickets",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    name = models.CharField(max_length=160)
    email = models.EmailField()
    subject = models.CharField(max_length=200)
    message = models.TextField()
    status = models.CharField(max_length=16, choices=TicketStatus.choices, default=TicketStatus.OPEN, db_index=True)
    priority = models.CharField(max_length=16, choices=TicketPriority.choices, default=TicketPriority.NORMAL)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["user", "-created_at"], name="ticket_user_created_idx")]

    def __str__(self) -> str:  # pragma: no cover
        return f"Ticket#{self.id} {self.subject}"

"""Shared enumerations and choices used across apps."""

from django.db import models


class MovementType(models.TextChoices):
    INBOUND = "in", "Inbound"
    OUTBOUND = "out", "Outbound"
    ADJUST = "adjust", "Adjust"


class InventoryOperation(models.TextChoices):
    """Admin override modes for on-hand stock."""

    SET = "set", "Set"
    INCREMENT = "increment", "Increment"
    DECREMENT = "decrement", "Decrement"


class CartStatus(models.TextChoices):
    """Statuses for shopping carts."""

    ACTIVE = "active", "Active"
    ORDERED = "ordered", "Ordered"
    ABANDONED = "abandoned", "Abandoned"


class OrderStatus(models.TextChoices):
    """Fulfillment lifecycle statuses for orders."""

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class PaymentStatus(models.TextChoices):
    """Payment lifecycle statuses for orders."""

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class PaymentMethod(models.TextChoices):
    STRIPE = "stripe", "Card (Stripe)"
    BLIK = "blik", "BLIK (Przelewy24)"


class RefundStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class MarketplaceChannel(models.TextChoices):
    ALLEGRO = "allegro", "Allegro"
    AMAZON = "amazon", "Amazon"
    ALIEXPRESS = "aliexpress", "AliExpress"


class TicketStatus(models.TextChoices):
    OPEN = "open", "Open"
    IN_PROGRESS = "in_progress", "In progress"
    RESOLVED = "resolved", "Resolved"
    CLOSED = "closed", "Closed"


class TicketPriority(models.TextChoices):
    LOW = "low", "Low"
    NORMAL = "normal", "Normal"
    HIGH = "high", "High"
    URGENT = "urgent", "Urgent"

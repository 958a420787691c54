from decimal import Decimal

from common.choices import OrderStatus, PaymentMethod, PaymentStatus, RefundStatus
from django.conf import settings
from django.core.validators import RegexValidator
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class OrderAddress(TimeStampedModel):
    """Postal address captured at checkout; never edited afterwards."""

    first_name = models.CharField(max_length=80)
    last_name = models.CharField(max_length=80)
    company = models.CharField(max_length=120, blank=True)
    address1 = models.CharField(max_length=120)
    address2 = models.CharField(max_length=120, blank=True)
    city = models.CharField(max_length=80)
    state = models.CharField(max_length=40, blank=True)
    postal_code = models.CharField(max_length=12)
    country = models.CharField(
        max_length=2,
        default="PL",
        validators=[RegexValidator(r"^[A-Z]{2}$", message="Use ISO 3166-1 alpha-2 country code (e.g., PL)")],
    )
    phone = models.CharField(max_length=20, blank=True)

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.first_name} {self.last_name}, {self.address1}, {self.city}"


class Order(TimeStampedModel):
    """Purchase order capturing a price snapshot of a session's cart.

    `status` tracks fulfillment and `payment_status` tracks money; both start
    pending. Until payment settles, the order's items stay reserved in
    inventory.
    """

    STATUS_PENDING = OrderStatus.PENDING
    STATUS_PROCESSING = OrderStatus.PROCESSING
    STATUS_SHIPPED = OrderStatus.SHIPPED
    STATUS_DELIVERED = OrderStatus.DELIVERED
    STATUS_CANCELLED = OrderStatus.CANCELLED
    STATUS_CHOICES = OrderStatus.choices

    PAYMENT_PENDING = PaymentStatus.PENDING
    PAYMENT_PAID = PaymentStatus.PAID
    PAYMENT_FAILED = PaymentStatus.FAILED
    PAYMENT_REFUNDED = PaymentStatus.REFUNDED

    number = models.CharField(max_length=32, unique=True, null=True, blank=True, db_index=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, related_name="orders", null=True, blank=True, on_delete=models.SET_NULL
    )
    session_id = models.CharField(max_length=64, blank=True, db_index=True)
    customer_email = models.EmailField()
    customer_name = models.CharField(max_length=160, blank=True)
    shipping_address = models.ForeignKey(OrderAddress, related_name="+", on_delete=models.PROTECT)
    billing_address = models.ForeignKey(OrderAddress, related_name="+", on_delete=models.PROTECT)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    payment_status = models.CharField(
        max_length=16, choices=PaymentStatus.choices, default=PAYMENT_PENDING, db_index=True
    )
    payment_method = models.CharField(max_length=16, choices=PaymentMethod.choices)
    gateway_reference = models.CharField(max_length=255, blank=True, db_index=True)
    currency = models.CharField(max_length=3, default="PLN")
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    paid_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-id"]
        indexes = [
            models.Index(fields=["user", "status", "created_at"], name="order_user_status_idx"),
            models.Index(fields=["payment_status", "created_at"], name="order_payment_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(name="order_total_non_negative", condition=models.Q(total__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Order#{self.id} status={self.status} payment={self.payment_status}"


class OrderItem(TimeStampedModel):
    """Line item within an order.

    Snapshots product name, SKU and unit price so later catalog edits never
    change what the customer was charged.
    """

    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey("catalog.Product", related_name="order_items", on_delete=models.PROTECT)
    product_name = models.CharField(max_length=200, blank=True)
    sku = models.CharField(max_length=64, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["order", "product"], name="orderitem_order_product_idx"),
        ]
        constraints = [
            models.CheckConstraint(name="orderitem_price_non_negative", condition=models.Q(unit_price__gte=0)),
            models.CheckConstraint(name="orderitem_quantity_positive", condition=models.Q(quantity__gte=1)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"OrderItem#{self.id} order={self.order_id} product={self.product_id} qty={self.quantity}"

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price or Decimal("0.00")) * Decimal(int(self.quantity))


class RefundRequest(TimeStampedModel):
    """Customer request to refund a paid order; reviewed by staff."""

    STATUS_PENDING = RefundStatus.PENDING
    STATUS_APPROVED = RefundStatus.APPROVED
    STATUS_REJECTED = RefundStatus.REJECTED

    order = models.ForeignKey(Order, related_name="refund_requests", on_delete=models.CASCADE)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, related_name="refund_requests", null=True, blank=True, on_delete=models.SET_NULL
    )
    reason = models.TextField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=16, choices=RefundStatus.choices, default=STATUS_PENDING, db_index=True)
    admin_note = models.TextField(blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=models.Q(status__in=["pending", "approved"]),
                name="one_open_refund_per_order",
            ),
            models.CheckConstraint(name="refund_amount_positive", condition=models.Q(amount__gt=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Refund#{self.id} order={self.order_id} status={self.status}"


class IdempotencyKey(TimeStampedModel):
    """Stores idempotent request results to prevent duplicate processing."""

    key = models.CharField(max_length=128)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.CASCADE)
    scope = models.CharField(max_length=128)
    path = models.CharField(max_length=255)
    method = models.CharField(max_length=16)
    request_hash = models.CharField(max_length=64, null=True, blank=True)
    response_code = models.IntegerField(null=True, blank=True)
    response_json = models.JSONField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["key", "scope", "path", "method"], name="uniq_idem_scope_path_method"),
        ]

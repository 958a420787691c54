"""Payment gateway capability interface.

A gateway registers a payment for an order (returning where to send the
shopper), withdraws it when the order is cancelled, and turns an incoming
webhook into a verified `PaymentNotification`. Gateways never touch orders
or stock themselves; settlement is done by `orders.services.settle_payment`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


class GatewayError(Exception):
    """Raised when the payment provider cannot be reached or rejects a call."""


class InvalidSignature(GatewayError):
    """Raised when a webhook fails signature or server-side verification."""


class UnknownGateway(GatewayError):
    pass


class TransactionNotCancellable(GatewayError):
    """Raised when the provider reports the payment as already completed."""


class PaymentOutcome:
    PAID = "paid"
    FAILED = "failed"
    IGNORED = "ignored"


@dataclass(frozen=True)
class GatewayTransaction:
    reference: str
    redirect_url: str = ""
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentNotification:
    order_id: Optional[int]
    outcome: str
    reference: Optional[str] = None
    amount_minor: Optional[int] = None
    event: str = ""


class PaymentGateway(ABC):
    name: str = ""

    @abstractmethod
    def register_transaction(self, order, **options) -> GatewayTransaction:
        """Create the provider-side payment for `order`."""

    @abstractmethod
    def verify_notification(self, *, body: bytes, headers: Mapping[str, str]) -> PaymentNotification:
        """Authenticate a webhook and map it to a payment outcome.

        Raises InvalidSignature when the payload cannot be trusted.
        """

    def cancel_transaction(self, order) -> None:
        """Stop the provider-side payment for `order` from being completed.

        Raises TransactionNotCancellable when the shopper has already paid.
        """

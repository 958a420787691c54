"""Resolve payment gateways by name from settings.

`PAYMENT_GATEWAYS` maps a method name (as stored on `Order.payment_method`)
to a dotted gateway class path; `DEFAULT_PAYMENT_GATEWAY` picks the one
used when checkout does not ask for a specific method.
"""

from django.conf import settings
from django.utils.module_loading import import_string

from .gateways.base import PaymentGateway, UnknownGateway


def available_gateways() -> list[str]:
    return sorted(getattr(settings, "PAYMENT_GATEWAYS", {}).keys())


def get_gateway(name: str | None = None) -> PaymentGateway:
    name = (name or settings.DEFAULT_PAYMENT_GATEWAY or "").lower()
    path = getattr(settings, "PAYMENT_GATEWAYS", {}).get(name)
    if not path:
        raise UnknownGateway(f"Unknown payment gateway: {name!r}")
    return import_string(path)()

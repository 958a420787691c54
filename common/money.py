"""Money helpers shared by orders and payment gateways."""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def quantize(amount) -> Decimal:
    """Round an amount to two decimal places (half up)."""

    return Decimal(str(amount or "0")).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount) -> int:
    """Convert a decimal amount to integer minor units (e.g. grosze, cents)."""

    return int((quantize(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))

"""Selectors for inventory domain (single-location)."""

from django.db.models import F, QuerySet

from .models import Inventory, StockMovement


def list_inventory(*, low_stock: bool = False, needs_reorder: bool = False, sku: str | None = None) -> QuerySet:
    """Inventory rows with their product, optionally limited to low or reorder-level stock."""

    qs = Inventory.objects.select_related("product").order_by("product__name", "id")
    if low_stock:
        qs = qs.filter(quantity__lte=F("reserved") + F("low_stock_threshold"))
    if needs_reorder:
        qs = qs.filter(quantity__lte=F("reserved") + F("reorder_point"))
    if sku:
        qs = qs.filter(product__sku__iexact=sku)
    return qs


def list_stock_levels(product_ids=None) -> list[dict]:
    """Available stock per SKU, as pushed to marketplaces."""

    qs = Inventory.objects.select_related("product").filter(product__is_visible=True)
    if product_ids is not None:
        qs = qs.filter(product_id__in=list(product_ids))
    return [
        {
            "product_id": item.product_id,
            "sku": item.product.sku,
            "available": max(0, item.available),
        }
        for item in qs.order_by("product__sku")
    ]


def list_movements(*, product_id: int | None = None, movement_type: str | None = None) -> QuerySet:
    qs = StockMovement.objects.select_related("inventory", "inventory__product").order_by("-created_at", "id")
    if product_id:
        qs = qs.filter(inventory__product_id=product_id)
    if movement_type:
        qs = qs.filter(movement_type=movement_type)
    return qs


# EOF

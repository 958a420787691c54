"""Selectors for the catalog domain.

Expose read-only query helpers to keep views thin and allow reuse across
APIs and services. Selectors should return querysets or lightweight data
structures and avoid side effects.
"""

from typing import Iterable, Optional

from django.db.models import Q, QuerySet
from django.db.models.expressions import OuterRef, Subquery
from django.db.models.functions import Coalesce
from inventory.models import Inventory

from .models import Product


def _with_availability(qs: QuerySet[Product]) -> QuerySet[Product]:
    """Annotate ``available`` as ``quantity - reserved``; 0 without inventory."""

    qty_sub = Subquery(Inventory.objects.filter(product_id=OuterRef("pk")).values("quantity")[:1])
    res_sub = Subquery(Inventory.objects.filter(product_id=OuterRef("pk")).values("reserved")[:1])
    return qs.annotate(available=Coalesce(qty_sub, 0) - Coalesce(res_sub, 0))


def list_products(
    *,
    search: Optional[str] = None,
    ordering: Optional[Iterable[str]] = None,
    include_hidden: bool = False,
) -> QuerySet[Product]:
    """Return products annotated with availability.

    Hidden products are excluded unless ``include_hidden`` is set.
    """

    qs = Product.objects.all()
    if not include_hidden:
        qs = qs.filter(is_visible=True)
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(sku__iexact=search) | Q(description__icontains=search))
    ordering = list(ordering or ("name",))
    return _with_availability(qs).order_by(*ordering)


def get_product_by_slug(slug: str) -> Optional[Product]:
    """Return a single visible product by slug, or None if not found."""

    try:
        return _with_availability(Product.objects.filter(is_visible=True)).get(slug=slug)
    except Product.DoesNotExist:
        return None

from datetime import timedelta
from decimal import Decimal
from typing import Optional

from catalog.models import Product
from common.money import quantize
from django.db.models import Count, F, Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone

from .models import Order, OrderItem, RefundRequest
from .services import OrderAccessDenied


def _with_items(qs):
    return qs.select_related("shipping_address", "billing_address").prefetch_related("items")


def get_order_for_requester(*, order_id: int, user=None, session_id: Optional[str] = None) -> Order:
    """Return the order if the requester may see it.

    Staff see every order; a signed-in owner sees their own orders; a guest
    order is visible to the session that placed it. Anything else raises
    OrderAccessDenied, a missing order raises Http404.
    """
    order = get_object_or_404(_with_items(Order.objects.all()), pk=order_id)
    if user is not None and getattr(user, "is_staff", False):
        return order
    if order.user_id is not None:
        if getattr(user, "is_authenticated", False) and order.user_id == user.id:
            return order
        raise OrderAccessDenied("Not authorized to access this order.")
    if session_id and order.session_id and order.session_id == session_id:
        return order
    raise OrderAccessDenied("Not authorized to access this order.")


def list_orders_for_user(*, user, status: Optional[str] = None, number: Optional[str] = None):
    qs = _with_items(Order.objects.filter(user_id=user.id)).order_by("-id")
    if status:
        qs = qs.filter(status=status)
    if number:
        qs = qs.filter(number=number)
    return qs


def list_orders_for_admin():
    return _with_items(Order.objects.select_related("user")).order_by("-id")


def list_refunds_for_user(*, user):
    return RefundRequest.objects.filter(user_id=user.id).select_related("order").order_by("-created_at", "-id")


def sales_summary(*, days: int = 30, now=None, limit: int = 10) -> dict:
    """Revenue figures for orders paid within the last `days` days.

    Refunded orders are left out. Guest checkouts have no user, so customers
    are grouped by the email the order was placed with.
    """
    now = now or timezone.now()
    since = now - timedelta(days=int(days))
    paid = Order.objects.filter(payment_status=Order.PAYMENT_PAID, created_at__gte=since)

    totals = paid.aggregate(revenue=Sum("total"), orders=Count("id"), customers=Count("customer_email", distinct=True))
    revenue = totals["revenue"] or Decimal("0.00")
    orders = totals["orders"] or 0
    top_products = (
        OrderItem.objects.filter(order__in=paid)
        .values("product_id", "product__name")
        .annotate(total_sold=Sum("quantity"), revenue=Sum(F("unit_price") * F("quantity")))
        .order_by("-total_sold", "product_id")[:limit]
    )
    top_customers = (
        paid.values("customer_email")
        .annotate(total_spent=Sum("total"), order_count=Count("id"))
        .order_by("-total_spent", "customer_email")[:limit]
    )
    return {
        "period_days": int(days),
        "since": since,
        "overview": {
            "total_revenue": quantize(revenue),
            "total_orders": orders,
            "average_order_value": quantize(revenue / orders) if orders else Decimal("0.00"),
            "total_customers": totals["customers"] or 0,
            "total_products": Product.objects.filter(is_visible=True).count(),
        },
        "top_products": [
            {
                "product_id": row["product_id"],
                "product_name": row["product__name"],
                "total_sold": row["total_sold"],
                "revenue": quantize(row["revenue"]),
            }
            for row in top_products
        ],
        "top_customers": [
            {
                "email": row["customer_email"],
                "total_spent": quantize(row["total_spent"]),
                "order_count": row["order_count"],
            }
            for row in top_customers
        ],
    }

"""Staff routes for order fulfillment, refund review and sales analytics."""

from django.urls import path

from .views import (
    AdminAnalyticsView,
    AdminOrderListView,
    AdminOrderStatusView,
    AdminRefundDecisionView,
    AdminRefundListView,
)

app_name = "orders-admin"

urlpatterns = [
    path("analytics/", AdminAnalyticsView.as_view(), name="analytics"),
    path("orders/", AdminOrderListView.as_view(), name="order-list"),
    path("orders/<int:order_id>/status/", AdminOrderStatusView.as_view(), name="order-status"),
    path("refunds/", AdminRefundListView.as_view(), name="refund-list"),
    path(
        "refunds/<int:refund_id>/approve/",
        AdminRefundDecisionView.as_view(decision="approve"),
        name="refund-approve",
    ),
    path(
        "refunds/<int:refund_id>/reject/",
        AdminRefundDecisionView.as_view(decision="reject"),
        name="refund-reject",
    ),
]

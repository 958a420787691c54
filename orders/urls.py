"""URL routes for the orders app (v1)."""

from django.urls import path

from .views import OrderCancelView, OrderDetailView, OrderListView, RefundRequestListCreateView

app_name = "orders"

urlpatterns = [
    path("", OrderListView.as_view(), name="order-list"),
    path("refunds/", RefundRequestListCreateView.as_view(), name="refund-list"),
    path("<int:order_id>/", OrderDetailView.as_view(), name="order-detail"),
    path("<int:order_id>/cancel/", OrderCancelView.as_view(), name="order-cancel"),
]

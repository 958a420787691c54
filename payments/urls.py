"""URL routes for payments (v1)."""

from django.urls import path

from .views import BlikCodeView, PaymentWebhookView

app_name = "payments"

urlpatterns = [
    path("webhooks/<str:gateway>/", PaymentWebhookView.as_view(), name="webhook"),
    path("blik/<int:order_id>/code/", BlikCodeView.as_view(), name="blik-code"),
]

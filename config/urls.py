"""Root URL configuration: admin, API schema, health and versioned v1 routes."""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from orders.views import CheckoutView

from .health import health

admin.site.site_header = "Storefront Admin"
admin.site.index_title = "Admin"

urlpatterns = [
    path("admin/", admin.site.urls),
    # API schema and Swagger UI
    path("api/schema/", SpectacularAPIView.as_view(), name="api-schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="api-schema"), name="api-docs"),
    # Healthcheck
    path("health/", health, name="health"),
    # Versioned v1 routes only
    path("api/v1/catalog/", include("catalog.urls")),
    path("api/v1/admin/catalog/", include("catalog.admin_urls")),
    path("api/v1/admin/", include("orders.admin_urls")),
    path("api/v1/inventory/", include("inventory.urls")),
    path("api/v1/cart/", include("cart.urls")),
    path("api/v1/checkout/", CheckoutView.as_view(), name="checkout"),
    path("api/v1/orders/", include("orders.urls")),
    path("api/v1/payments/", include("payments.urls")),
    path("api/v1/marketplace/", include("marketplace.urls")),
    path("api/v1/support/", include("support.urls")),
]

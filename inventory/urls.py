from django.urls import path

from .views import InventoryListView, MovementListView, ProductInventoryView

app_name = "inventory"

urlpatterns = [
    path("", InventoryListView.as_view(), name="inventory-list"),
    path("products/<int:product_id>/", ProductInventoryView.as_view(), name="product-inventory"),
    path("movements/", MovementListView.as_view(), name="movement-list"),
]

# EOF

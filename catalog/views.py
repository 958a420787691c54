"""Read-only viewsets for the public product catalog."""

from django.http import Http404
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import filters as drf_filters
from rest_framework import viewsets

from . import selectors
from .serializers import ProductSerializer


@extend_schema_view(
    list=extend_schema(
        summary="List products",
        description=(
            "Returns visible products with live availability (`quantity - reserved`). "
            "Supports ordering by `name`, `price` or `created_at` and search via `search`."
        ),
        tags=["Catalog Endpoints"],
        parameters=[
            OpenApiParameter(
                "ordering", OpenApiTypes.STR, location="query", description="Order by `name`, `price`, `created_at`"
            ),
            OpenApiParameter("search", OpenApiTypes.STR, location="query", description="Search by name or SKU"),
        ],
        examples=[
            OpenApiExample(
                "Product list",
                value={
                    "count": 1,
                    "next": None,
                    "previous": None,
                    "results": [
                        {
                            "id": 1,
                            "sku": "MUG-001",
                            "name": "Enamel mug",
                            "slug": "enamel-mug",
                            "description": "",
                            "price": "39.99",
                            "available": 12,
                        }
                    ],
                },
                response_only=True,
            )
        ],
    ),
    retrieve=extend_schema(
        summary="Get product by slug",
        description="Returns a visible product with its live availability",
        tags=["Catalog Endpoints"],
    ),
)
class ProductViewSet(viewsets.ReadOnlyModelViewSet):
    lookup_field = "slug"
    lookup_value_regex = "[^/]+"
    serializer_class = ProductSerializer
    throttle_scope = "catalog"
    filter_backends = [drf_filters.OrderingFilter, drf_filters.SearchFilter]
    ordering_fields = ["name", "price", "created_at"]
    search_fields = ["name", "sku", "description"]

    def get_queryset(self):
        return selectors.list_products()

    def get_object(self):
        product = selectors.get_product_by_slug(self.kwargs[self.lookup_field])
        if product is None:
            raise Http404
        return product

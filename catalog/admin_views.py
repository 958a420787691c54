"""Admin viewsets for write endpoints in the catalog app.

Endpoints are restricted to staff users and use scoped throttling.
"""

from django.db.models import ProtectedError
from drf_spectacular.utils import OpenApiExample, extend_schema, extend_schema_view, inline_serializer
from rest_framework import permissions, status, viewsets
from rest_framework import serializers as rf_serializers
from rest_framework.response import Response

from .admin_serializers import ProductAdminSerializer
from .models import Product


class AdminBaseViewSet(viewsets.ModelViewSet):
    permission_classes = [permissions.IsAdminUser]
    throttle_scope = "catalog_admin_write"


@extend_schema_view(
    list=extend_schema(tags=["Admin Endpoints"], summary="List products (admin)"),
    retrieve=extend_schema(tags=["Admin Endpoints"], summary="Get product (admin)"),
    create=extend_schema(tags=["Admin Endpoints"], summary="Create product"),
    update=extend_schema(tags=["Admin Endpoints"], summary="Update product"),
    partial_update=extend_schema(tags=["Admin Endpoints"], summary="Partial update product"),
    destroy=extend_schema(
        tags=["Admin Endpoints"],
        summary="Delete product",
        description="Products referenced by order history cannot be deleted; hide them instead.",
        responses={
            204: None,
            409: inline_serializer(name="ProductInUseError", fields={"detail": rf_serializers.CharField()}),
        },
        examples=[OpenApiExample("In use", value={"detail": "Product has order history."}, response_only=True)],
    ),
)
class ProductAdminViewSet(AdminBaseViewSet):
    queryset = Product.objects.all().order_by("name")
    serializer_class = ProductAdminSerializer

    def destroy(self, request, *args, **kwargs):
        try:
            return super().destroy(request, *args, **kwargs)
        except ProtectedError:
            return Response({"detail": "Product has order history."}, status=status.HTTP_409_CONFLICT)

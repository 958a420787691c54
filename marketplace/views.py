"""Staff endpoints for marketplace channel connections."""

from drf_spectacular.utils import OpenApiExample, extend_schema
from rest_framework import generics
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import MarketplaceConnection
from .serializers import MarketplaceConnectionSerializer, SyncResultSerializer
from .services import sync_stock


class ConnectionListCreateView(generics.ListCreateAPIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_admin"
    serializer_class = MarketplaceConnectionSerializer
    queryset = MarketplaceConnection.objects.all().order_by("channel")

    @extend_schema(tags=["Marketplace"], summary="List marketplace connections")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=["Marketplace"],
        summary="Connect a marketplace channel",
        description="One connection per channel. `config` carries channel credentials and is never returned.",
        examples=[
            OpenApiExample(
                "Allegro",
                value={"channel": "allegro", "account_name": "shop-pl", "config": {"client_id": "..."}},
                request_only=True,
            )
        ],
    )
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)


class ConnectionSyncView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_admin"

    @extend_schema(
        tags=["Marketplace"],
        summary="Push stock levels to a channel",
        request=None,
        responses={200: SyncResultSerializer},
    )
    def post(self, request, pk: int):
        connection = generics.get_object_or_404(MarketplaceConnection, pk=pk)
        result = sync_stock(connection)
        return Response(SyncResultSerializer(result).data)

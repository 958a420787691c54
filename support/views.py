"""Support ticket endpoints: anyone may open a ticket, signed-in users list their own."""

from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from rest_framework import generics
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from .models import SupportTicket
from .serializers import OpenTicketSerializer, SupportTicketSerializer
from .services import TicketError, open_ticket

ErrorResponse = inline_serializer(name="SupportErrorResponse", fields={"detail": rf_serializers.CharField()})


class SupportTicketListCreateView(generics.ListCreateAPIView):
    serializer_class = SupportTicketSerializer
    throttle_scope = "support"

    def get_permissions(self):
        if self.request.method == "POST":
            return [AllowAny()]
        return [IsAuthenticated()]

    def get_queryset(self):
        return SupportTicket.objects.filter(user_id=self.request.user.id).select_related("order")

    @extend_schema(tags=["Support"], summary="List my support tickets")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=["Support"],
        summary="Open a support ticket",
        description=(
            "Guests and signed-in users may open tickets. An `order_id` is linked only when the requester "
            "placed that order (signed-in owner, or the guest session via `X-Session-Id`)."
        ),
        parameters=[
            OpenApiParameter(
                name="X-Session-Id",
                location=OpenApiParameter.HEADER,
                required=False,
                description="Guest session that placed the linked order",
                type=str,
            )
        ],
        request=OpenTicketSerializer,
        responses={201: SupportTicketSerializer, 400: ErrorResponse},
        examples=[
            OpenApiExample(
                "Question",
                value={
                    "name": "Ann Nowak",
                    "email": "ann@example.com",
                    "subject": "Where is my parcel?",
                    "message": "Order placed last week has not shipped yet.",
                    "order_id": 42,
                },
                request_only=True,
            )
        ],
    )
    def post(self, request, *args, **kwargs):
        ser = OpenTicketSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        session_id = request.headers.get("X-Session-Id") or data.get("session_id") or None
        try:
            ticket = open_ticket(
                name=data["name"],
                email=data["email"],
                subject=data["subject"],
                message=data["message"],
                order_id=data.get("order_id"),
                user=request.user,
                session_id=session_id,
            )
        except TicketError:
            return Response({"order_id": ["Order not found."]}, status=status.HTTP_400_BAD_REQUEST)
        return Response(SupportTicketSerializer(ticket).data, status=status.HTTP_201_CREATED)

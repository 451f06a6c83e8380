"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions propagate to ``modules.core.exception_handler``,
which renders them in the standard error envelope.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.orders.dtos import (
    AddOrderItemDTO,
    CreateOrderDTO,
    CreateOrderItemDTO,
    UpdateOrderDTO,
    UpdateStatusDTO,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.serializers import (
    CreateOrderSerializer,
    OrderItemInputSerializer,
    OrderItemSerializer,
    OrderListSerializer,
    OrderSerializer,
    UpdateOrderSerializer,
    UpdateStatusSerializer,
)
from modules.orders.services import build_order_service


class OrderViewSet(ListModelMixin, GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``; all writes go through
    the service/repository layer.
    """

    filterset_class = OrderFilter
    search_fields = ["customer__name", "notes"]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    queryset = Order.objects.all()
    serializer_class = OrderListSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_queryset(self):
        return Order.objects.select_related("customer")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._service.get_order(pk)
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=["get"])
    def count(self, request: Request) -> Response:
        """GET /api/v1/orders/count/"""
        queryset = self.filter_queryset(self.get_queryset())
        return Response({"count": queryset.count()})

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        dto = CreateOrderDTO(
            customer_id=data["customer_id"],
            items=[CreateOrderItemDTO(**item) for item in data["items"]],
            notes=data.get("notes", ""),
            status=data.get("status"),
        )
        order = self._service.create_order(dto)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT/PATCH /api/v1/orders/{pk}/"""
        serializer = UpdateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = UpdateOrderDTO(**serializer.validated_data)
        order = self._service.update_order(pk, dto)
        return Response(OrderSerializer(order).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/"""
        return self.update(request, pk)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/orders/{pk}/

        Restores stock for every item before deleting the order.
        """
        self._service.delete_order(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["patch"], url_path="status")
    def change_status(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/status/"""
        serializer = UpdateStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = UpdateStatusDTO(**serializer.validated_data)
        order = self._service.update_status(pk, dto.status)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def items(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/items/"""
        serializer = OrderItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = AddOrderItemDTO(**serializer.validated_data)
        item = self._service.add_item(pk, dto)
        return Response(OrderItemSerializer(item).data, status=status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=["delete"],
        url_path=r"items/(?P<item_id>[^/.]+)",
    )
    def remove_item(
        self, request: Request, pk: str | None = None, item_id: str | None = None
    ) -> Response:
        """DELETE /api/v1/orders/{pk}/items/{item_id}/"""
        self._service.remove_item(pk, item_id)
        return Response(status=status.HTTP_204_NO_CONTENT)

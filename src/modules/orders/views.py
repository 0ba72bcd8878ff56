"""Order API views.

Exposes ``OrderService`` and ``OrderQueryService`` via HTTP using DRF
ViewSets.  Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.discounts.repositories.django_repository import DiscountDjangoRepository
from modules.orders.dtos import CartLineDTO, PlaceOrderDTO
from modules.orders.exceptions import (
    InsufficientStock,
    InvalidDiscountCode,
    InvalidOrderStatus,
    InvalidQuantity,
    OrderNotFound,
    OrderTotalTooLarge,
    PermissionDenied,
    PersistenceConflict,
    ProductNotFound,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.queries import OrderQueryService
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CancelOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    PlaceOrderSerializer,
    UpdateStatusSerializer,
)
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository

RETRY_AFTER_SECONDS = "1"


def _not_found() -> Response:
    return Response({"detail": "Order not found."}, status=status.HTTP_404_NOT_FOUND)


def _forbidden(exc: Exception) -> Response:
    return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    search_fields = ["order_number", "discount_code"]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        order_repository = OrderDjangoRepository()
        self._service = OrderService(
            order_repository=order_repository,
            product_repository=ProductDjangoRepository(),
            discount_repository=DiscountDjangoRepository(),
        )
        self._queries = OrderQueryService(order_repository)

    def get_throttles(self) -> list[BaseThrottle]:
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header: replaying
        a key returns the order first created with it.
        """
        create_serializer = PlaceOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)

        data = create_serializer.validated_data
        try:
            dto = PlaceOrderDTO(
                user_id=request.user.pk,
                items=[
                    CartLineDTO(
                        product_id=item["product_id"],
                        quantity=item["quantity"],
                    )
                    for item in data["items"]
                ],
                shipping_address=data["shipping_address"],
                discount_code=data.get("discount_code"),
                notes=data.get("notes", ""),
                idempotency_key=request.headers.get("Idempotency-Key") or None,
            )
        except PydanticValidationError as exc:
            return Response(
                {"detail": exc.errors()[0]["msg"]},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            order = self._service.place_order(dto)
        except InvalidQuantity as exc:
            return Response(
                {
                    "detail": str(exc),
                    "product_id": exc.product_id,
                    "quantity": exc.quantity,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )
        except OrderTotalTooLarge as exc:
            return Response(
                {
                    "detail": str(exc),
                    "total": str(exc.total),
                    "max_total": str(exc.max_total),
                },
                status=status.HTTP_400_BAD_REQUEST,
            )
        except ProductNotFound as exc:
            return Response(
                {"detail": str(exc), "product_id": exc.product_id},
                status=status.HTTP_404_NOT_FOUND,
            )
        except InsufficientStock as exc:
            return Response(
                {
                    "detail": str(exc),
                    "product_id": exc.product_id,
                    "available": exc.available,
                    "requested": exc.requested,
                },
                status=status.HTTP_409_CONFLICT,
            )
        except InvalidDiscountCode as exc:
            return Response(
                {"detail": str(exc), "code": exc.code, "reason": exc.reason.value},
                status=status.HTTP_422_UNPROCESSABLE_ENTITY,
            )
        except PersistenceConflict as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
                headers={"Retry-After": RETRY_AFTER_SECONDS},
            )

        out = OrderSerializer(order)
        return Response(out.data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        return self._queries.list_orders(self.request.user)

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, date range, total range, discount code) is
        handled by ``OrderFilter`` via ``filter_backends``.  Results are
        paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._queries.get_order(pk, request.user)
        except OrderNotFound:
            return _not_found()
        except PermissionDenied as exc:
            return _forbidden(exc)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Status Update
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/ (staff only)

        Cancellations are **not** allowed via this endpoint; use
        ``POST /orders/{id}/cancel/`` so stock is returned.
        """
        serializer = UpdateStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            order = self._queries.update_status(
                order_id=pk,
                new_status=data["status"],
                actor=request.user,
                notes=data["notes"],
            )
        except PermissionDenied as exc:
            return _forbidden(exc)
        except OrderNotFound:
            return _not_found()
        except InvalidOrderStatus as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Cancel (dedicated action)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Cancels an order and returns its stock.
        """
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.cancel_order(
                order_id=pk,
                actor=request.user,
                notes=serializer.validated_data["notes"],
            )
        except OrderNotFound:
            return _not_found()
        except PermissionDenied as exc:
            return _forbidden(exc)
        except InvalidOrderStatus as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(OrderSerializer(order).data)

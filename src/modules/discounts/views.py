"""Discount API views.

``validate`` lets a shopper preview a code against a cart total; the
remaining actions are administrative.  Redemption only ever happens inside
order placement.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.discounts.dtos import CreateDiscountDTO, UpdateDiscountDTO
from modules.discounts.exceptions import (
    DiscountAlreadyExists,
    DiscountNotFound,
    InvalidDiscountCode,
    InvalidDiscountUpdate,
)
from modules.discounts.models import Discount
from modules.discounts.repositories.django_repository import DiscountDjangoRepository
from modules.discounts.serializers import (
    CreateDiscountSerializer,
    DiscountSerializer,
    UpdateDiscountSerializer,
    ValidateDiscountSerializer,
)
from modules.discounts.services import DiscountService
from modules.orders.repositories.django_repository import OrderDjangoRepository


class DiscountViewSet(GenericViewSet):
    queryset = Discount.objects.all()
    serializer_class = DiscountSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = DiscountService(
            repository=DiscountDjangoRepository(),
            redemption_lookup=OrderDjangoRepository(),
        )

    def get_permissions(self):
        if self.action == "validate":
            return [IsAuthenticated()]
        return [IsAdminUser()]

    def list(self, request: Request) -> Response:
        """GET /api/v1/discounts/"""
        discounts = self._service.list_discounts()
        page = self.paginate_queryset(discounts)
        serializer = DiscountSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/discounts/"""
        create_serializer = CreateDiscountSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)

        try:
            dto = CreateDiscountDTO(**create_serializer.validated_data)
        except PydanticValidationError as exc:
            return Response(
                {"detail": exc.errors()[0]["msg"]},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            discount = self._service.create_discount(dto)
        except DiscountAlreadyExists as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        return Response(
            DiscountSerializer(discount).data, status=status.HTTP_201_CREATED
        )

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/discounts/{pk}/"""
        update_serializer = UpdateDiscountSerializer(data=request.data, partial=True)
        update_serializer.is_valid(raise_exception=True)

        try:
            dto = UpdateDiscountDTO(**update_serializer.validated_data)
        except PydanticValidationError as exc:
            return Response(
                {"detail": exc.errors()[0]["msg"]},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            discount = self._service.update_discount(str(pk), dto)
        except DiscountNotFound:
            return Response(
                {"detail": "Discount not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except DiscountAlreadyExists as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        except InvalidDiscountUpdate as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(DiscountSerializer(discount).data)

    @action(detail=True, methods=["post"])
    def deactivate(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/discounts/{pk}/deactivate/"""
        try:
            discount = self._service.deactivate_discount(str(pk))
        except DiscountNotFound:
            return Response(
                {"detail": "Discount not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(DiscountSerializer(discount).data)

    @action(detail=False, methods=["post"])
    def validate(self, request: Request) -> Response:
        """POST /api/v1/discounts/validate/

        Always 200: ``valid`` tells whether the code would apply, and
        ``reason``/``message`` explain a rejection.
        """
        serializer = ValidateDiscountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            quote = self._service.preview(
                data["code"], data["cart_total"], request.user.pk
            )
        except InvalidDiscountCode as exc:
            return Response(
                {"valid": False, "reason": exc.reason.value, "message": str(exc)}
            )

        return Response(
            {
                "valid": True,
                "discount": DiscountSerializer(quote.discount).data,
                "discount_amount": str(quote.discount_amount),
                "new_total": str(quote.new_total),
            }
        )

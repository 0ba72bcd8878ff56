"""Discount URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.discounts.views import DiscountViewSet

router = DefaultRouter(trailing_slash=True)
router.register("discounts", DiscountViewSet, basename="discount")

urlpatterns = router.urls

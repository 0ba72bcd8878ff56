"""Order URL configuration.

/orders/              GET list, POST place order
/orders/{id}/         GET retrieve, PATCH status (staff)
/orders/{id}/cancel/  POST cancel
"""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.orders.views import OrderViewSet

router = DefaultRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")

urlpatterns = router.urls

import django_filters

from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    start_date = django_filters.DateFilter(
        field_name="created_at", lookup_expr="date__gte"
    )
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    min_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="gte"
    )
    max_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="lte"
    )
    discount_code = django_filters.CharFilter(
        field_name="discount_code", lookup_expr="iexact"
    )
    user = django_filters.NumberFilter(method="filter_user")

    class Meta:
        model = Order
        fields = [
            "status",
            "start_date",
            "end_date",
            "min_total",
            "max_total",
            "discount_code",
            "user",
        ]

    def filter_user(self, queryset, name, value):
        """Staff narrow the list to one shopper; others only match themselves."""
        user = getattr(self.request, "user", None)
        if user is None or not user.is_staff:
            if user is None or user.pk != value:
                return queryset.none()
        return queryset.filter(user_id=value)

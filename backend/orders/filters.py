import django_filters
from .models import Order


class OrderFilter(django_filters.FilterSet):
    """
    Filter for Orders by status, place type, payment method and date range.
    """

    payment_method = django_filters.CharFilter(field_name="payment_method__name")
    created_at__gte = django_filters.DateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_at__lte = django_filters.DateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Order
        fields = ["payment_status", "order_status", "place_type", "payment_method"]

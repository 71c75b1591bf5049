import django_filters
from .models import Coupon


class CouponFilter(django_filters.FilterSet):
    code = django_filters.CharFilter(lookup_expr="icontains")

    class Meta:
        model = Coupon
        fields = ["discount_type", "is_active", "is_global"]

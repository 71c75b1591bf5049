from django_filters import rest_framework as filters
from .models import Product


class ProductFilter(filters.FilterSet):
    min_price = filters.NumberFilter(field_name="price", lookup_expr="gte")
    max_price = filters.NumberFilter(field_name="price", lookup_expr="lte")
    uncategorized = filters.BooleanFilter(field_name="category", lookup_expr="isnull")

    class Meta:
        model = Product
        fields = ["category", "is_on_sale", "is_active"]

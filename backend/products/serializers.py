from rest_framework import serializers
from core_backend.base.serializers import BaseModelSerializer
from .models import Category, Product


class CategorySerializer(BaseModelSerializer):
    class Meta:
        model = Category
        fields = [
            "id",
            "name",
            "description",
            "discount_percentage",
            "is_discount_active",
            "discount_start",
            "discount_end",
            "is_active",
        ]


class ProductSerializer(BaseModelSerializer):
    category_name = serializers.CharField(source="category.name", read_only=True, default=None)
    effective_price = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "description",
            "price",
            "category",
            "category_name",
            "is_on_sale",
            "sale_price",
            "sale_start",
            "sale_end",
            "is_active",
            "effective_price",
        ]

    def get_effective_price(self, obj):
        from discounts.services import PricingService

        global_discount = self.context.get("global_discount", None)
        if "global_discount" in self.context:
            price = PricingService.effective_price(obj, global_discount=global_discount)
        else:
            price = PricingService.effective_price(obj)
        return {
            "unitPrice": str(price.unit_price),
            "originalPrice": str(price.original_price),
            "discountType": price.discount_type,
            "discountPercentage": str(price.discount_percentage),
        }

from rest_framework import serializers


class AddToCartSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class UpdateCartItemSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=0)


class ApplyCouponSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)


def cart_payload(cart, summary):
    data = summary.as_dict()
    data["id"] = str(cart.id)
    data["itemIds"] = {str(item.product_id): str(item.id) for item in cart.items.all()}
    data["couponMessage"] = summary.coupon_message or None
    return data

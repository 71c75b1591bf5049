from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import CouponViewSet, GlobalDiscountViewSet, ValidateCouponView

router = DefaultRouter()
router.register(r"coupons", CouponViewSet, basename="coupon")
router.register(r"global", GlobalDiscountViewSet, basename="global-discount")

urlpatterns = [
    path("coupons/validate/", ValidateCouponView.as_view(), name="coupon-validate"),
    path("", include(router.urls)),
]

from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import DeliveryFeeView, DeliveryLocationViewSet

router = DefaultRouter()
router.register(r"locations", DeliveryLocationViewSet, basename="delivery-location")

urlpatterns = [
    path("fee/", DeliveryFeeView.as_view(), name="delivery-fee"),
    path("", include(router.urls)),
]

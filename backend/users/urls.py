from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import AddressViewSet, MeView

router = DefaultRouter()
router.register(r"addresses", AddressViewSet, basename="address")

urlpatterns = [
    path("me/", MeView.as_view(), name="user-me"),
    path("", include(router.urls)),
]

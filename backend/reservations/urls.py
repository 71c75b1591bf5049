from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import ReservationViewSet, TableViewSet

router = SimpleRouter()
router.register(r"tables", TableViewSet, basename="table")
router.register(r"", ReservationViewSet, basename="reservation")

urlpatterns = [
    path("", include(router.urls)),
]

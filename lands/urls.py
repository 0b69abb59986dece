from __future__ import annotations

from rest_framework.routers import SimpleRouter

from .views import LandViewSet

router = SimpleRouter()
router.register("lands", LandViewSet, basename="land")

urlpatterns = router.urls

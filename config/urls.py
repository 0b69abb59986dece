"""Root URL configuration.

Routes:
- GET / -> home
- /admin/ -> Django admin
- /metrics -> Prometheus exposition (django_prometheus)
- /api/schema/, /api/docs/, /api/redoc/ -> OpenAPI
- /api/v1/lands/ -> lands.urls
- /api/v1/analyses/ -> indices.urls
- /<raster public prefix>/ -> stored raster files (DEBUG only)
"""

from __future__ import annotations

from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)

from .views import home

urlpatterns = [
    path("admin/", admin.site.urls),
    path("", home, name="home"),
    path("", include("django_prometheus.urls")),
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path(
        "api/docs/",
        SpectacularSwaggerView.as_view(url_name="schema"),
        name="swagger-ui",
    ),
    path(
        "api/redoc/",
        SpectacularRedocView.as_view(url_name="schema"),
        name="redoc",
    ),
    path("api/v1/", include("lands.urls")),
    path("api/v1/", include("indices.urls")),
]

# static() is a no-op unless DEBUG is on.
urlpatterns += static(
    f"/{settings.INDICES_RASTER_PUBLIC_PREFIX.strip('/')}/",
    document_root=settings.INDICES_RASTER_ROOT,
)

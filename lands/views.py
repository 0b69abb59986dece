from __future__ import annotations

from django.db.models import QuerySet
from rest_framework import mixins
from rest_framework.viewsets import GenericViewSet

from .models import Land
from .serializers import LandSerializer


class LandViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    GenericViewSet,
):
    """Create, list and inspect lands.

    Lands are immutable once created, so no update or delete routes exist.
    """

    serializer_class = LandSerializer

    def get_queryset(self) -> QuerySet[Land]:
        return Land.objects.order_by("-created_at")

from __future__ import annotations

from django.urls import path

from .views import AnalysisCreateView, AnalysisDetailView, LandAnalysesView

urlpatterns = [
    path(
        "analyses/",
        AnalysisCreateView.as_view(),
        name="analysis-create",
    ),
    path(
        "analyses/<uuid:analysis_id>/",
        AnalysisDetailView.as_view(),
        name="analysis-detail",
    ),
    path(
        "lands/<uuid:land_id>/analyses/",
        LandAnalysesView.as_view(),
        name="land-analyses",
    ),
]

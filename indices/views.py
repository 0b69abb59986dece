"""Vegetation and water index analysis endpoints.

All successful responses use `config.api.responses.success_response`
with the standard envelope:

    {"status": 0, "message": "<str>", "data": <object|null>, "errors": null}
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema, inline_serializer
from rest_framework import serializers, status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from config.api.openapi import (
    error_envelope_serializer,
    success_envelope_serializer,
)
from config.api.responses import success_response
from lands.models import Land

from .models import Analysis
from .serializers import (
    AnalysisCreateSerializer,
    AnalysisSerializer,
    DailyIndexRasterSerializer,
    DailyIndexStatSerializer,
)
from .services import analysis_daily_payload, create_analysis

indices_error_response = error_envelope_serializer("IndicesErrorResponse")

analysis_created_response = success_envelope_serializer(
    "AnalysisCreatedSuccess", data=AnalysisSerializer()
)

analysis_list_item_schema = inline_serializer(
    name="AnalysisListItem",
    fields={
        "analysis": AnalysisSerializer(),
        "daily": DailyIndexStatSerializer(many=True, allow_null=True),
    },
    many=True,
)
analysis_list_response = success_envelope_serializer(
    "AnalysisListSuccess",
    data=inline_serializer(
        name="AnalysisListData",
        fields={
            "land": serializers.UUIDField(),
            "analyses": analysis_list_item_schema,
        },
    ),
)

analysis_detail_response = success_envelope_serializer(
    "AnalysisDetailSuccess",
    data=inline_serializer(
        name="AnalysisDetailData",
        fields={
            "analysis": AnalysisSerializer(),
            "daily": DailyIndexStatSerializer(many=True, allow_null=True),
            "rasters": DailyIndexRasterSerializer(
                many=True, allow_null=True
            ),
        },
    ),
)


def _analysis_payload(
    analysis: Analysis, *, include_rasters: bool = False
) -> dict[str, Any]:
    payload: dict[str, Any] = {"analysis": AnalysisSerializer(analysis).data}
    payload.update(
        analysis_daily_payload(analysis, include_rasters=include_rasters)
    )
    return payload


class AnalysisCreateView(APIView):
    """Queue an index analysis for a land over an inclusive day range."""

    @extend_schema(
        request=AnalysisCreateSerializer,
        responses={
            201: analysis_created_response,
            400: indices_error_response,
        },
    )
    def post(self, request: Request) -> Response:
        """Create a pending analysis and schedule it.

        Body: land, index_type (NDVI|EVI|SAVI|NDWI), date_from, date_to.
        Returns immediately; progress is visible through the detail
        endpoint.
        """

        serializer = AnalysisCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        analysis = create_analysis(**serializer.validated_data)
        return success_response(
            AnalysisSerializer(analysis).data,
            message="Analysis queued",
            status_code=status.HTTP_201_CREATED,
        )


class LandAnalysesView(APIView):
    """List analyses for one land, newest first."""

    @extend_schema(
        responses={
            200: analysis_list_response,
            404: indices_error_response,
        }
    )
    def get(self, request: Request, land_id: UUID) -> Response:
        land = get_object_or_404(Land, id=land_id)
        analyses = Analysis.objects.filter(land=land).order_by(
            "-created_at"
        )
        return success_response(
            {
                "land": str(land.id),
                "analyses": [
                    _analysis_payload(analysis) for analysis in analyses
                ],
            },
            message="Analyses",
        )


class AnalysisDetailView(APIView):
    """Status of one analysis with its daily values and rasters."""

    @extend_schema(
        responses={
            200: analysis_detail_response,
            404: indices_error_response,
        }
    )
    def get(self, request: Request, analysis_id: UUID) -> Response:
        analysis = get_object_or_404(Analysis, id=analysis_id)
        return success_response(
            _analysis_payload(analysis, include_rasters=True),
            message="Analysis",
        )

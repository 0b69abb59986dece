from __future__ import annotations

from datetime import date, datetime
from typing import Any

from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import serializers

from lands.models import Land

from .days import to_utc_day
from .models import Analysis, DailyIndexRaster, DailyIndexStat
from .services import normalize_index_type, validate_date_range


class UtcDayField(serializers.Field):
    """Accept a date or an ISO timestamp and keep only its UTC day."""

    default_error_messages = {
        "invalid": "Expected a date (YYYY-MM-DD) or an ISO 8601 timestamp.",
    }

    def to_internal_value(self, data: Any) -> date:
        if isinstance(data, date):
            return to_utc_day(data)
        if not isinstance(data, str):
            self.fail("invalid")
        value = data.strip()
        try:
            parsed: date | datetime | None = parse_datetime(value)
            if parsed is None:
                parsed = parse_date(value)
        except ValueError:
            parsed = None
        if parsed is None:
            self.fail("invalid")
        return to_utc_day(parsed)

    def to_representation(self, value: date) -> str:
        return value.isoformat()


class AnalysisCreateSerializer(serializers.Serializer):
    land = serializers.PrimaryKeyRelatedField(queryset=Land.objects.all())
    index_type = serializers.CharField()
    date_from = UtcDayField()
    date_to = UtcDayField()

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        attrs["index_type"] = normalize_index_type(attrs["index_type"])
        validate_date_range(attrs["date_from"], attrs["date_to"])
        return attrs


class AnalysisSerializer(serializers.ModelSerializer):
    land = serializers.UUIDField(source="land_id", read_only=True)

    class Meta:
        model = Analysis
        fields = [
            "id",
            "land",
            "index_type",
            "date_from",
            "date_to",
            "status",
            "result",
            "error",
            "created_at",
            "started_at",
            "finished_at",
        ]
        read_only_fields = fields


class DailyIndexStatSerializer(serializers.ModelSerializer):
    class Meta:
        model = DailyIndexStat
        fields = ["date", "data"]


class DailyIndexRasterSerializer(serializers.ModelSerializer):
    class Meta:
        model = DailyIndexRaster
        fields = ["date", "png_path", "tiff_path"]

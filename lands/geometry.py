"""Polygon checks and metric projection for land geometries.

Geometries are GeoJSON ``Polygon`` mappings in WGS84 (``[lon, lat]``).
Metric work (area, 10 m raster requests) happens in the polygon's local UTM
zone, picked from the centroid.
"""

from __future__ import annotations

from typing import Any, Final

import shapely
from django.core.exceptions import ValidationError
from pyproj import Transformer
from shapely.geometry import mapping, shape
from shapely.geometry.base import BaseGeometry

MIN_AREA_M2: Final[float] = 10.0
MIN_RING_POSITIONS: Final[int] = 4

_LON_MIN: Final[float] = -180.0
_LON_MAX: Final[float] = 180.0
_LAT_MIN: Final[float] = -90.0
_LAT_MAX: Final[float] = 90.0


def utm_epsg(lon: float, lat: float) -> int:
    """Return the EPSG code of the WGS84 UTM zone containing a point."""

    zone = min(int((lon + 180) / 6) + 1, 60)
    return (32600 if lat >= 0 else 32700) + zone


def to_shape(geometry: dict[str, Any]) -> BaseGeometry:
    return shape(geometry)


def project_to_utm(geometry: dict[str, Any]) -> tuple[dict[str, Any], int]:
    """Reproject a WGS84 polygon into its UTM zone.

    Returns the projected GeoJSON mapping and the EPSG code used.
    """

    geom = to_shape(geometry)
    centroid = geom.centroid
    epsg = utm_epsg(centroid.x, centroid.y)
    transformer = Transformer.from_crs(
        "EPSG:4326", f"EPSG:{epsg}", always_xy=True
    )
    projected = shapely.transform(
        geom, transformer.transform, interleaved=False
    )
    return dict(mapping(projected)), epsg


def area_m2(geometry: dict[str, Any]) -> float:
    projected, _ = project_to_utm(geometry)
    return float(shape(projected).area)


def _check_position(position: Any) -> None:
    if not isinstance(position, list | tuple) or len(position) < 2:
        raise ValidationError("Each coordinate must be a [lon, lat] pair.")
    lon, lat = position[0], position[1]
    if not all(
        isinstance(v, int | float) and not isinstance(v, bool)
        for v in (lon, lat)
    ):
        raise ValidationError("Coordinates must be numbers.")
    if not _LON_MIN <= lon <= _LON_MAX:
        raise ValidationError("Longitude must be between -180 and 180.")
    if not _LAT_MIN <= lat <= _LAT_MAX:
        raise ValidationError("Latitude must be between -90 and 90.")


def validate_polygon(geometry: Any) -> None:
    """Raise ``ValidationError`` unless ``geometry`` is a usable land polygon.

    A usable polygon is a GeoJSON Polygon whose rings hold at least four
    positions, whose outer ring is closed, which is simple (no
    self-intersection) and which covers at least ``MIN_AREA_M2``.
    """

    if not isinstance(geometry, dict) or geometry.get("type") != "Polygon":
        raise ValidationError("Geometry must be a GeoJSON Polygon.")

    rings = geometry.get("coordinates")
    if not isinstance(rings, list) or not rings:
        raise ValidationError("Polygon must contain at least one ring.")
    for ring in rings:
        if not isinstance(ring, list) or len(ring) < MIN_RING_POSITIONS:
            raise ValidationError(
                "Each polygon ring needs at least four positions."
            )
        for position in ring:
            _check_position(position)

    outer = rings[0]
    if list(outer[0][:2]) != list(outer[-1][:2]):
        raise ValidationError(
            "Polygon ring must be closed "
            "(first and last coordinate must match)."
        )

    try:
        geom = to_shape(geometry)
    except (ValueError, TypeError) as exc:
        raise ValidationError("Invalid polygon structure.") from exc
    if not geom.is_valid:
        raise ValidationError("Polygon is self-intersecting or invalid.")

    if area_m2(geometry) < MIN_AREA_M2:
        raise ValidationError("Polygon area is too small.")

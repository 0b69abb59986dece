"""Index strategies: one per supported remote-sensing index.

Each strategy fixes the Sentinel-2 bands it reads, the per-pixel formula and
the colour ramp used for the visual raster. Everything else (payload shapes,
response normalization, evalscript assembly) lives on the shared base class,
so the caching engine never branches on index type.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar, Final

from django.conf import settings

from lands.geometry import project_to_utm

from .days import day_bounds_utc, enumerate_days, isoformat_utc, to_utc_day
from .exceptions import ImageryProviderError
from .models import IndexType

RGBA = tuple[int, int, int, int]
Ramp = tuple[tuple[float | None, tuple[int, int, int]], ...]

DATA_COLLECTION: Final[str] = "sentinel-2-l2a"
TRANSPARENT: Final[RGBA] = (0, 0, 0, 0)


class RasterFormat(Enum):
    VISUAL = "image/png"
    RAW = "image/tiff"

    @property
    def mime_type(self) -> str:
        return self.value


@dataclass(frozen=True)
class DayValue:
    """Normalized statistics for one day; ``value`` is None for no data."""

    day: date
    value: dict[str, Any] | None


def _ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return math.nan
    return numerator / denominator


def _parse_interval_day(item: dict[str, Any]) -> date | None:
    interval = item.get("interval") or {}
    raw_from = interval.get("from")
    if not raw_from:
        return None
    try:
        parsed = datetime.fromisoformat(str(raw_from).replace("Z", "+00:00"))
    except ValueError:
        return None
    return to_utc_day(parsed)


class IndexStrategy(ABC):
    """Request builders and normalizer shared by every index."""

    index_type: ClassVar[IndexType]
    output_id: ClassVar[str]
    bands: ClassVar[tuple[str, ...]]
    # evalscript expression over the sample `s`
    expression: ClassVar[str]
    color_ramp: ClassVar[Ramp]

    def __init__(self, *, resolution_m: float | None = None) -> None:
        self.resolution_m = resolution_m or float(
            getattr(settings, "INDICES_RASTER_RESOLUTION_M", 10)
        )

    @abstractmethod
    def compute(self, **reflectance: float) -> float:
        """Return the index value for one pixel's band reflectances."""

    # ---- classification -------------------------------------------------

    def classify(self, value: float | None) -> RGBA:
        if value is None or math.isnan(value):
            return TRANSPARENT
        for upper, rgb in self.color_ramp:
            if upper is None or value < upper:
                return (*rgb, 255)
        return TRANSPARENT

    # ---- evalscripts ----------------------------------------------------

    def _input_bands(self) -> str:
        return ", ".join(f'"{band}"' for band in (*self.bands, "dataMask"))

    def stats_evalscript(self) -> str:
        return f"""//VERSION=3
function setup() {{
  return {{
    input: [{{ bands: [{self._input_bands()}] }}],
    output: [
      {{ id: "{self.output_id}", bands: 1, sampleType: "FLOAT32" }},
      {{ id: "dataMask", bands: 1 }}
    ]
  }};
}}

function evaluatePixel(s) {{
  let value = {self.expression};
  let mask = isFinite(value) ? s.dataMask : 0;
  return {{ {self.output_id}: [value], dataMask: [mask] }};
}}
"""

    def visual_evalscript(self) -> str:
        branches = []
        for upper, (r, g, b) in self.color_ramp:
            if upper is None:
                branches.append(f"  return [{r}, {g}, {b}, 255];")
            else:
                branches.append(
                    f"  if (v < {upper}) return [{r}, {g}, {b}, 255];"
                )
        ramp = "\n".join(branches)
        return f"""//VERSION=3
function setup() {{
  return {{
    input: [{{ bands: [{self._input_bands()}] }}],
    output: [{{ id: "default", bands: 4, sampleType: "UINT8" }}]
  }};
}}

function colorRamp(v) {{
{ramp}
}}

function evaluatePixel(s) {{
  if (s.dataMask === 0) return [0, 0, 0, 0];
  let value = {self.expression};
  if (!isFinite(value)) return [0, 0, 0, 0];
  return colorRamp(value);
}}
"""

    def raw_evalscript(self) -> str:
        return f"""//VERSION=3
function setup() {{
  return {{
    input: [{{ bands: [{self._input_bands()}] }}],
    output: [{{ id: "default", bands: 1, sampleType: "FLOAT32" }}]
  }};
}}

function evaluatePixel(s) {{
  if (s.dataMask === 0) return [NaN];
  return [{self.expression}];
}}
"""

    # ---- payload builders -----------------------------------------------

    def _bounds(self, geometry: dict[str, Any]) -> dict[str, Any]:
        projected, epsg = project_to_utm(geometry)
        return {
            "geometry": projected,
            "properties": {
                "crs": f"http://www.opengis.net/def/crs/EPSG/0/{epsg}"
            },
        }

    def _input(
        self, geometry: dict[str, Any], start: datetime, end: datetime
    ) -> dict[str, Any]:
        time_range = {"from": isoformat_utc(start), "to": isoformat_utc(end)}
        return {
            "bounds": self._bounds(geometry),
            "data": [
                {
                    "type": DATA_COLLECTION,
                    "dataFilter": {"timeRange": time_range},
                }
            ],
        }

    def build_stats_request(
        self, geometry: dict[str, Any], start: date, end: date
    ) -> dict[str, Any]:
        """Statistical API payload with one daily bucket per day."""

        range_start, _ = day_bounds_utc(start)
        _, range_end = day_bounds_utc(end)
        return {
            "input": self._input(geometry, range_start, range_end),
            "aggregation": {
                "timeRange": {
                    "from": isoformat_utc(range_start),
                    "to": isoformat_utc(range_end),
                },
                "aggregationInterval": {"of": "P1D"},
                "resx": self.resolution_m,
                "resy": self.resolution_m,
                "evalscript": self.stats_evalscript(),
            },
        }

    def build_raster_request(
        self, geometry: dict[str, Any], day: date, fmt: RasterFormat
    ) -> dict[str, Any]:
        """Process API payload for a single UTC day in the given format."""

        day_start, day_end = day_bounds_utc(day)
        evalscript = (
            self.visual_evalscript()
            if fmt is RasterFormat.VISUAL
            else self.raw_evalscript()
        )
        return {
            "input": self._input(geometry, day_start, day_end),
            "output": {
                "resx": self.resolution_m,
                "resy": self.resolution_m,
                "responses": [
                    {
                        "identifier": "default",
                        "format": {"type": fmt.mime_type},
                    }
                ],
            },
            "evalscript": evalscript,
        }

    # ---- response normalization -----------------------------------------

    def normalize_stats(
        self, start: date, end: date, raw: Any
    ) -> list[DayValue]:
        """Map a Statistical API response onto exactly one entry per day.

        Days the provider did not return stay in the result with a null
        value so they are recorded as attempted.
        """

        if not isinstance(raw, dict) or not isinstance(
            raw.get("data", []), list
        ):
            raise ImageryProviderError("Unparseable statistics response")

        by_day: dict[date, dict[str, Any] | None] = {}
        for item in raw.get("data", []):
            if not isinstance(item, dict):
                continue
            day = _parse_interval_day(item)
            if day is None:
                continue
            output = (item.get("outputs") or {}).get(self.output_id) or {}
            stats = ((output.get("bands") or {}).get("B0") or {}).get("stats")
            by_day[day] = stats if isinstance(stats, dict) else None

        return [
            DayValue(day=day, value=by_day.get(day))
            for day in enumerate_days(start, end)
        ]


class VegetationIndex(IndexStrategy):
    """NDVI = (NIR - RED) / (NIR + RED)."""

    index_type = IndexType.NDVI
    output_id = "ndvi"
    bands = ("B04", "B08")
    expression = "(s.B08 - s.B04) / (s.B08 + s.B04)"
    color_ramp: ClassVar[Ramp] = (
        (0.0, (255, 0, 0)),
        (0.2, (255, 255, 0)),
        (0.4, (144, 238, 144)),
        (0.6, (0, 128, 0)),
        (None, (0, 100, 0)),
    )

    def compute(self, **reflectance: float) -> float:
        nir, red = reflectance["nir"], reflectance["red"]
        return _ratio(nir - red, nir + red)


class EnhancedVegetationIndex(IndexStrategy):
    """EVI = 2.5 * (NIR - RED) / (NIR + 6 RED - 7.5 BLUE + 1)."""

    index_type = IndexType.EVI
    output_id = "evi"
    bands = ("B02", "B04", "B08")
    expression = (
        "2.5 * (s.B08 - s.B04) / (s.B08 + 6.0 * s.B04 - 7.5 * s.B02 + 1.0)"
    )
    color_ramp: ClassVar[Ramp] = (
        (0.0, (0, 0, 120)),
        (0.2, (139, 69, 19)),
        (0.4, (173, 205, 50)),
        (0.6, (34, 139, 34)),
        (None, (0, 100, 0)),
    )

    def compute(self, **reflectance: float) -> float:
        nir, red, blue = (
            reflectance["nir"],
            reflectance["red"],
            reflectance["blue"],
        )
        return 2.5 * _ratio(nir - red, nir + 6.0 * red - 7.5 * blue + 1.0)


class SoilAdjustedVegetationIndex(IndexStrategy):
    """SAVI = (1 + L) * (NIR - RED) / (NIR + RED + L), L = 0.5."""

    index_type = IndexType.SAVI
    output_id = "savi"
    bands = ("B04", "B08")
    soil_factor: ClassVar[float] = 0.5
    expression = "(1 + 0.5) * (s.B08 - s.B04) / (s.B08 + s.B04 + 0.5)"
    color_ramp: ClassVar[Ramp] = (
        (0.0, (165, 42, 42)),
        (0.2, (210, 180, 140)),
        (0.4, (144, 238, 144)),
        (0.6, (34, 139, 34)),
        (None, (0, 100, 0)),
    )

    def compute(self, **reflectance: float) -> float:
        nir, red = reflectance["nir"], reflectance["red"]
        factor = self.soil_factor
        return (1 + factor) * _ratio(nir - red, nir + red + factor)


class WaterIndex(IndexStrategy):
    """NDWI = (GREEN - NIR) / (GREEN + NIR), McFeeters form."""

    index_type = IndexType.NDWI
    output_id = "ndwi"
    bands = ("B03", "B08")
    expression = "(s.B03 - s.B08) / (s.B03 + s.B08)"
    color_ramp: ClassVar[Ramp] = (
        (-0.2, (139, 69, 19)),
        (0.0, (210, 180, 140)),
        (0.2, (173, 216, 230)),
        (0.4, (100, 149, 237)),
        (None, (0, 0, 139)),
    )

    def compute(self, **reflectance: float) -> float:
        green, nir = reflectance["green"], reflectance["nir"]
        return _ratio(green - nir, green + nir)


STRATEGIES: Final[dict[str, type[IndexStrategy]]] = {
    cls.index_type.value: cls
    for cls in (
        VegetationIndex,
        EnhancedVegetationIndex,
        SoilAdjustedVegetationIndex,
        WaterIndex,
    )
}


def get_strategy(index_type: str) -> IndexStrategy:
    strategy_cls = STRATEGIES.get(str(index_type).upper())
    if strategy_cls is None:
        raise ValueError(f"Unsupported index type: {index_type}")
    return strategy_cls()

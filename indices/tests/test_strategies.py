from __future__ import annotations

# ruff: noqa: S101
import math
from datetime import date

import pytest

from indices.exceptions import ImageryProviderError
from indices.strategies import (
    STRATEGIES,
    EnhancedVegetationIndex,
    RasterFormat,
    SoilAdjustedVegetationIndex,
    VegetationIndex,
    WaterIndex,
    get_strategy,
)

from .fakes import square_polygon, stats_item


def test_get_strategy_covers_every_index_case_insensitively() -> None:
    assert set(STRATEGIES) == {"NDVI", "EVI", "SAVI", "NDWI"}
    assert isinstance(get_strategy("ndvi"), VegetationIndex)
    assert isinstance(get_strategy("EVI"), EnhancedVegetationIndex)
    assert isinstance(get_strategy("Savi"), SoilAdjustedVegetationIndex)
    assert isinstance(get_strategy("ndwi"), WaterIndex)


def test_get_strategy_rejects_unknown_index() -> None:
    with pytest.raises(ValueError, match="Unsupported index type: LAI"):
        get_strategy("LAI")


def test_formulas() -> None:
    assert VegetationIndex().compute(nir=0.6, red=0.2) == pytest.approx(0.5)
    assert EnhancedVegetationIndex().compute(
        nir=0.5, red=0.1, blue=0.05
    ) == pytest.approx(2.5 * 0.4 / (0.5 + 0.6 - 0.375 + 1.0))
    assert SoilAdjustedVegetationIndex().compute(
        nir=0.5, red=0.1
    ) == pytest.approx(1.5 * 0.4 / 1.1)
    assert WaterIndex().compute(green=0.3, nir=0.1) == pytest.approx(0.5)


def test_zero_denominator_is_not_a_number() -> None:
    assert math.isnan(VegetationIndex().compute(nir=0.0, red=0.0))
    assert math.isnan(WaterIndex().compute(green=0.0, nir=0.0))


def test_water_index_reads_green_and_nir() -> None:
    strategy = WaterIndex()
    assert strategy.bands == ("B03", "B08")
    assert "s.B03" in strategy.stats_evalscript()
    assert "B11" not in strategy.stats_evalscript()


def test_classify_is_deterministic_and_transparent_for_no_data() -> None:
    strategy = VegetationIndex()
    assert strategy.classify(None) == (0, 0, 0, 0)
    assert strategy.classify(math.nan) == (0, 0, 0, 0)
    assert strategy.classify(-0.5) == (255, 0, 0, 255)
    assert strategy.classify(0.1) == (255, 255, 0, 255)
    assert strategy.classify(0.9) == (0, 100, 0, 255)
    assert strategy.classify(0.3) == strategy.classify(0.3)


@pytest.mark.parametrize("index_type", sorted(STRATEGIES))
def test_evalscripts_mask_no_data(index_type: str) -> None:
    strategy = get_strategy(index_type)
    for script in (
        strategy.stats_evalscript(),
        strategy.visual_evalscript(),
        strategy.raw_evalscript(),
    ):
        assert script.startswith("//VERSION=3")
        assert "dataMask" in script
        for band in strategy.bands:
            assert f'"{band}"' in script


def test_stats_request_covers_whole_days_in_utm() -> None:
    payload = VegetationIndex().build_stats_request(
        square_polygon(), date(2024, 1, 1), date(2024, 1, 5)
    )

    aggregation = payload["aggregation"]
    assert aggregation["timeRange"] == {
        "from": "2024-01-01T00:00:00Z",
        "to": "2024-01-06T00:00:00Z",
    }
    assert aggregation["aggregationInterval"] == {"of": "P1D"}
    assert aggregation["resx"] == 10
    assert aggregation["resy"] == 10

    bounds = payload["input"]["bounds"]
    assert bounds["properties"]["crs"].endswith("/32737")
    assert bounds["geometry"]["type"] == "Polygon"
    assert payload["input"]["data"][0]["type"] == "sentinel-2-l2a"


def test_raster_request_targets_single_day_and_format() -> None:
    strategy = VegetationIndex()
    visual = strategy.build_raster_request(
        square_polygon(), date(2024, 1, 3), RasterFormat.VISUAL
    )
    raw = strategy.build_raster_request(
        square_polygon(), date(2024, 1, 3), RasterFormat.RAW
    )

    time_range = visual["input"]["data"][0]["dataFilter"]["timeRange"]
    assert time_range == {
        "from": "2024-01-03T00:00:00Z",
        "to": "2024-01-04T00:00:00Z",
    }
    assert visual["output"]["responses"][0]["format"] == {
        "type": "image/png"
    }
    assert raw["output"]["responses"][0]["format"] == {"type": "image/tiff"}
    assert visual["evalscript"] != raw["evalscript"]


def test_normalize_stats_returns_one_entry_per_day() -> None:
    strategy = VegetationIndex()
    raw = {
        "data": [
            stats_item(date(2024, 1, 2), 0.4),
            stats_item(date(2024, 1, 4), 0.6),
            # Outside the requested range.
            stats_item(date(2024, 2, 1), 0.9),
            {"interval": {}, "outputs": {}},
        ]
    }

    values = strategy.normalize_stats(
        date(2024, 1, 1), date(2024, 1, 5), raw
    )

    assert [value.day for value in values] == [
        date(2024, 1, day) for day in range(1, 6)
    ]
    by_day = {value.day: value.value for value in values}
    assert by_day[date(2024, 1, 1)] is None
    assert by_day[date(2024, 1, 2)] is not None
    assert by_day[date(2024, 1, 2)]["mean"] == pytest.approx(0.4)
    assert by_day[date(2024, 1, 3)] is None
    assert by_day[date(2024, 1, 4)]["mean"] == pytest.approx(0.6)
    assert by_day[date(2024, 1, 5)] is None


def test_normalize_stats_empty_response_yields_all_null_days() -> None:
    values = WaterIndex().normalize_stats(
        date(2024, 1, 1), date(2024, 1, 3), {"data": []}
    )
    assert [value.value for value in values] == [None, None, None]


def test_normalize_stats_rejects_malformed_payload() -> None:
    with pytest.raises(ImageryProviderError, match="Unparseable"):
        VegetationIndex().normalize_stats(
            date(2024, 1, 1), date(2024, 1, 1), {"data": "nope"}
        )
    with pytest.raises(ImageryProviderError):
        VegetationIndex().normalize_stats(
            date(2024, 1, 1), date(2024, 1, 1), ["not", "a", "dict"]
        )

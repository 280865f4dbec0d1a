from __future__ import annotations

from datetime import datetime, timezone

import pytest
from PIL import Image

from errors import SummaryGenerationFailure
from reconcile import ReconciledCountry
from summary import SummaryGenerator, format_gdp, render_summary, top_by_gdp

NOW = datetime(2025, 10, 30, 12, 0, tzinfo=timezone.utc)


def rec(name, gdp) -> ReconciledCountry:
    return ReconciledCountry(
        name=name,
        capital=None,
        region=None,
        population=1,
        currency_code="USD",
        exchange_rate=1.0,
        estimated_gdp=gdp,
        flag_url=None,
        last_refreshed_at=NOW,
    )


def test_top_by_gdp_orders_descending_with_unknown_last() -> None:
    records = [rec("A", None), rec("B", 10.0), rec("C", 0), rec("D", 30.0), rec("E", None), rec("F", 20.0)]
    assert [r.name for r in top_by_gdp(records, 5)] == ["D", "F", "B", "C", "A"]


def test_top_by_gdp_ties_keep_input_order() -> None:
    records = [rec("X", 5.0), rec("Y", 5.0), rec("Z", 5.0)]
    assert [r.name for r in top_by_gdp(records, 2)] == ["X", "Y"]


def test_format_gdp() -> None:
    assert format_gdp(None) == "N/A"
    assert format_gdp(1234567.891) == "1,234,567.89"


def test_render_summary_writes_png_and_overwrites(tmp_path) -> None:
    path = tmp_path / "cache" / "summary.png"
    path.parent.mkdir()
    path.write_bytes(b"stale")

    out = render_summary(path, 250, [rec("D", 30.0), rec("A", None)], NOW)

    assert out == path
    with Image.open(path) as im:
        assert im.format == "PNG"
        assert im.size == (800, 450)


def test_generator_creates_missing_directory(tmp_path) -> None:
    path = tmp_path / "nested" / "dir" / "summary.png"
    assert SummaryGenerator(path).generate([], 0, NOW) == path
    assert path.exists()


def test_generator_wraps_filesystem_errors(tmp_path) -> None:
    # a directory where the image should go makes the save fail
    path = tmp_path / "summary.png"
    path.mkdir()

    with pytest.raises(SummaryGenerationFailure):
        SummaryGenerator(path).generate([rec("A", 1.0)], 1, NOW)

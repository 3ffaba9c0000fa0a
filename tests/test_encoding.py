from __future__ import annotations

import pytest

from boundary_atlas.map.encoding import ColorEncoder, hex_to_rgba
from boundary_atlas.map.normalization import summarise_collection
from boundary_atlas.map.states import Category, NormalizationRange, WinningRecord

from conftest import units


@pytest.fixture
def encoder(bundle) -> ColorEncoder:
    return ColorEncoder(bundle.vote_share, bundle.risk_grid, bundle.boundaries)


def _opacities(encoder, bundle, *rows):
    summary = summarise_collection(units(*rows), bundle.vote_share)
    return [encoder.opacity_for(record, summary.range) for record in summary.records]


def test_relative_opacity_spans_floor_to_full(encoder, bundle):
    assert _opacities(encoder, bundle, (40, 30, 20), (60, 10, 10)) == [pytest.approx(0.2), 1.0]


def test_degenerate_span_is_fully_opaque(encoder, bundle):
    assert _opacities(encoder, bundle, (50, 50, 50)) == [1.0]


def test_opacity_interpolates_linearly(encoder, bundle):
    opacities = _opacities(encoder, bundle, (40, 0, 0), (50, 0, 0), (60, 0, 0))
    assert opacities == [pytest.approx(0.2), pytest.approx(0.6), 1.0]


def test_opacity_bounds_hold_for_mixed_collection(encoder, bundle):
    rows = [(12.5, 40.1, 47.4), (33.3, 33.3, 33.4), (70, 20, 10), (41, 41, 18), (55.5, 4.5, 40)]
    summary = summarise_collection(units(*rows), bundle.vote_share)
    for record in summary.records:
        opacity = encoder.opacity_for(record, summary.range)
        assert 0.2 <= opacity <= 1.0
        assert (opacity == 1.0) == (abs(record.winning_share - summary.range.max) < 1e-9)


def test_stale_range_is_clamped(encoder):
    record = WinningRecord(leading_category=Category.A, winning_share=10.0)
    assert encoder.opacity_for(record, NormalizationRange(min=40.0, max=60.0)) == 0.0


def test_color_follows_leading_category(encoder):
    colors = [encoder.color_for(WinningRecord(category, 50.0)) for category in Category]
    assert colors == ["#00A8AC", "#4CAF50", "#1976D2"]


def test_unknown_category_gets_neutral_color(encoder):
    record = WinningRecord(leading_category="Z", winning_share=50.0)  # type: ignore[arg-type]
    assert encoder.color_for(record) == "#9e9e9e"


def test_risk_levels_use_five_step_scale(encoder):
    assert [encoder.risk_color(level) for level in (1, 2, 3, 4, 5)] == [
        "#1a237e",
        "#4caf50",
        "#fbc02d",
        "#ff6f00",
        "#d32f2f",
    ]
    assert encoder.risk_color(9) == "#9e9e9e"
    assert encoder.risk_color(None) == "#9e9e9e"


def test_boundary_strokes_and_dashes(encoder):
    assert encoder.boundary_stroke("紅線") == "#e53935"
    assert encoder.boundary_stroke("紫線") == "#8e24aa"
    assert encoder.boundary_stroke("藍線暫定界") == "#1e88e5"
    assert encoder.boundary_stroke("unknown") == "#999999"
    assert encoder.boundary_stroke(None) == "#999999"
    assert encoder.boundary_dash("藍線暫定界") == "6,4"
    assert encoder.boundary_dash("紅線") is None


def test_hex_to_rgba():
    assert hex_to_rgba("#ff6f00", 0.5) == [255, 111, 0, 128]
    assert hex_to_rgba("#fff") == [255, 255, 255, 255]

import numpy as np
import pytest

from config import COLOR_SCALE, DEFAULT_THRESHOLDS
from thresholds import (
    color_for,
    compute_thresholds,
    jenks_breaks,
    nice_ceil,
    plotly_colorscale,
    proportional_breaks,
    quantile_breaks,
    threshold_colors,
)


def assert_well_formed(thresholds, maximum):
    assert thresholds[0] == 0
    assert thresholds[-1] == maximum
    assert thresholds == sorted(set(thresholds)), "thresholds must be unique and ascending"


@pytest.mark.parametrize("value, expected", [(2340, 3000), (100, 100), (0.3, 0.3), (50_000.0, 50_000), (250_000, 300_000)])
def test_nice_ceil(value, expected):
    assert nice_ceil(value) == pytest.approx(expected)


def test_proportional_breaks_example():
    assert proportional_breaks([0, 500, 2000, 1_000_000]) == [
        0, 100, 1000, 10_000, 50_000, 100_000, 300_000, 500_000, 1_000_000,
    ]


def test_no_positive_values_gives_defaults():
    for method in ("proportional", "quantile", "jenks"):
        assert compute_thresholds([0, 0, float("nan")], method=method) == list(DEFAULT_THRESHOLDS)
        assert compute_thresholds([], method=method) == list(DEFAULT_THRESHOLDS)


@pytest.mark.parametrize("method", ["proportional", "quantile", "jenks"])
def test_thresholds_well_formed_on_skewed_data(method):
    rng = np.random.default_rng(7)
    values = np.round(rng.lognormal(mean=15, sigma=3, size=60), 2).tolist() + [0, 0]
    assert_well_formed(compute_thresholds(values, method=method), max(values))


@pytest.mark.parametrize("method", ["proportional", "quantile", "jenks"])
def test_single_value(method):
    assert_well_formed(compute_thresholds([123_456.0], method=method), 123_456.0)


def test_few_unique_values_fall_back():
    assert quantile_breaks([5, 5, 10, 20]) == [0, 5, 10, 20]
    assert jenks_breaks([5, 10, 20]) == [0, 5, 10, 20]


def test_quantile_breaks_wide_range_is_log_spaced():
    values = [1, 10, 100, 1e3, 1e4, 1e5, 1e6, 1e7, 1e8, 1e9]
    thresholds = quantile_breaks(values)
    assert_well_formed(thresholds, 1e9)
    assert len(thresholds) == 9


def test_jenks_finds_natural_gap():
    values = [1, 2, 3, 100, 101, 102]
    assert jenks_breaks(values, num_classes=2) == [0, 1, 3, 102]


def test_unknown_method():
    with pytest.raises(ValueError):
        compute_thresholds([1, 2, 3], method="equal")


def test_colors():
    thresholds = proportional_breaks([0, 500, 2000, 1_000_000])
    assert threshold_colors(thresholds) == list(COLOR_SCALE)
    assert color_for(0, thresholds) == COLOR_SCALE[0]
    assert color_for(1_000_000, thresholds) == COLOR_SCALE[-1]
    assert color_for(150, thresholds) == COLOR_SCALE[1]
    # more breaks than colours reuses the darkest
    assert threshold_colors(list(range(12)))[-1] == COLOR_SCALE[-1]


def test_plotly_colorscale():
    scale = plotly_colorscale([0, 250, 500, 1000])
    assert [stop for stop, _ in scale] == [0.0, 0.25, 0.5, 1.0]
    assert scale[0][1] == COLOR_SCALE[0]
    assert plotly_colorscale(list(DEFAULT_THRESHOLDS))[-1][0] == 1.0


def test_compute_thresholds_passes_class_count():
    assert compute_thresholds([1, 2, 3, 100, 101, 102], method="jenks", num_classes=2) == [0, 1, 3, 102]


def test_bucket_colours_match_map_stops():
    thresholds = proportional_breaks([0, 500, 2000, 1_000_000])
    stops = dict((stop, colour) for stop, colour in plotly_colorscale(thresholds))
    for t in thresholds:
        assert color_for(t, thresholds) == stops[t / thresholds[-1]]
    assert color_for(-5, thresholds) == COLOR_SCALE[0]

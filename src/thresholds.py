"""
Map colour thresholds.

Turns per-region funding totals into an ascending list of break values that
start at 0 and end at the largest total, one palette colour per break. The
proportional ladder is what the map uses; quantile and Jenks breaks are kept as
alternative classifications.
"""

import bisect
import logging
import math

import numpy as np
from config import COLOR_SCALE, DEFAULT_THRESHOLDS

logger = logging.getLogger(__name__)

PROPORTIONS = (0, 0.0001, 0.001, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0)
NUM_CLASSES = len(COLOR_SCALE) - 1


def nice_ceil(value: float) -> float:
    """Round up to a power-of-ten aligned number, e.g. 2_340 -> 3_000."""
    if value <= 0:
        return 0
    magnitude = 10 ** math.floor(math.log10(value))
    # round() absorbs float noise such as 0.1 * 3 == 0.30000000000000004
    return math.ceil(round(value / magnitude, 9)) * magnitude


def _positive_sorted(values) -> list[float]:
    arr = np.asarray(list(values), dtype=float)
    arr = arr[np.isfinite(arr) & (arr > 0)]
    return sorted(arr.tolist())


def _finish(breaks, maximum: float) -> list[float]:
    """Clip to the maximum, pin the maximum exactly, deduplicate and sort."""
    clipped = {min(b, maximum) for b in breaks}
    clipped.add(0)
    clipped.add(maximum)
    return sorted(clipped)


def proportional_breaks(values) -> list[float]:
    positive = _positive_sorted(values)
    if not positive:
        return list(DEFAULT_THRESHOLDS)

    maximum = positive[-1]
    breaks = [nice_ceil(maximum * p) for p in PROPORTIONS[:-1]]
    thresholds = _finish(breaks, maximum)
    logger.debug("Proportional thresholds for max=%s: %s", maximum, thresholds)
    return thresholds


def quantile_breaks(values, num_classes: int = NUM_CLASSES) -> list[float]:
    positive = _positive_sorted(values)
    if not positive:
        return list(DEFAULT_THRESHOLDS)

    unique = sorted(set(positive))
    if len(unique) <= num_classes:
        return [0, *unique]

    low, high = positive[0], positive[-1]
    breaks = []
    if high / low > 1_000_000:
        # Very wide range: space the breaks evenly in log space
        log_low = math.log10(max(1.0, low))
        log_high = math.log10(high)
        for i in range(1, num_classes + 1):
            breaks.append(10 ** (log_low + (i / num_classes) * (log_high - log_low)))
    else:
        n = len(positive)
        for i in range(1, num_classes + 1):
            index = math.floor((i / num_classes) * n) - 1
            breaks.append(positive[max(0, index)])

    return _finish([nice_ceil(b) for b in breaks], high)


def jenks_breaks(values, num_classes: int = NUM_CLASSES) -> list[float]:
    """Fisher-Jenks natural breaks over the non-zero values."""
    positive = _positive_sorted(values)
    if not positive:
        return list(DEFAULT_THRESHOLDS)

    data = sorted(set(positive))
    if len(data) <= num_classes:
        return [0, *data]

    n = len(data)
    lower_limits = np.zeros((n + 1, num_classes + 1), dtype=int)
    variances = np.full((n + 1, num_classes + 1), np.inf)
    lower_limits[1, 1:] = 1
    variances[1, 1:] = 0.0

    for m in range(2, n + 1):
        s1 = s2 = w = 0.0
        for ll in range(1, m + 1):
            i3 = m - ll + 1
            val = data[i3 - 1]
            s1 += val
            s2 += val * val
            w += 1
            variance = s2 - (s1 * s1) / w
            i4 = i3 - 1
            if i4 != 0:
                for j in range(2, num_classes + 1):
                    candidate = variance + variances[i4, j - 1]
                    if variances[m, j] >= candidate:
                        lower_limits[m, j] = i3
                        variances[m, j] = candidate
        lower_limits[m, 1] = 1
        variances[m, 1] = variance

    breaks = [0.0] * (num_classes + 1)
    breaks[num_classes] = data[-1]
    k = n
    for j in range(num_classes, 1, -1):
        idx = int(lower_limits[k, j]) - 2
        breaks[j - 1] = data[idx]
        k = int(lower_limits[k, j]) - 1
    breaks[0] = data[0]

    return _finish(breaks, data[-1])


METHODS = {
    "proportional": proportional_breaks,
    "quantile": quantile_breaks,
    "jenks": jenks_breaks,
}


def compute_thresholds(values, method: str = "proportional", num_classes: int = NUM_CLASSES) -> list[float]:
    if method not in METHODS:
        raise ValueError(f"Unknown threshold method {method!r}; choose from {sorted(METHODS)}")
    if method == "proportional":
        # fixed ladder, one break per palette colour
        return proportional_breaks(values)
    return METHODS[method](values, num_classes)


def threshold_colors(thresholds) -> list[str]:
    colors = list(COLOR_SCALE[: len(thresholds)])
    while len(colors) < len(thresholds):
        colors.append(COLOR_SCALE[-1])
    return colors


def color_bucket(value: float, thresholds) -> int:
    """Index of the highest threshold not above value (0 for no funding)."""
    if value <= 0:
        return 0
    return max(0, bisect.bisect_right(list(thresholds), value) - 1)


def color_for(value: float, thresholds) -> str:
    return threshold_colors(thresholds)[color_bucket(value, thresholds)]


def plotly_colorscale(thresholds) -> list[list]:
    """
    Continuous Plotly colour scale with one stop per threshold, positioned at
    threshold / max so colours interpolate linearly between breaks.
    """
    top = thresholds[-1]
    colors = threshold_colors(thresholds)
    if top <= 0 or len(thresholds) < 2:
        return [[0.0, colors[0]], [1.0, colors[-1]]]
    return [[t / top, c] for t, c in zip(thresholds, colors)]

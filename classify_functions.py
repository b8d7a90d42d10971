# Load logging to report break values.
import logging

# Load math for the logarithms behind "pretty" steps.
import math

# Load sys for the float limits used by the "pretty" rule.
import sys

# Load mapclassify for quantile, equal-interval and natural-break schemes.
import mapclassify

# Load numpy for break arrays.
import numpy as np

# Load pandas to bin values into classes.
import pandas as pd

from spatial_constants import N_CLASSES, CLASS_SCHEME

logger = logging.getLogger(__name__)

# Bias towards larger units; these are R's defaults (high.u.bias, u5.bias).
_HIGH_U_BIAS = 1.5
_U5_BIAS = 0.5 + 1.5 * _HIGH_U_BIAS
_SHRINK = 0.75
_ROUNDING_EPS = 1e-10

#______________________________________________________________________________

def _finite(values):
    arr = np.asarray(pd.to_numeric(pd.Series(values), errors = "coerce"), dtype = float)
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        raise ValueError("Cannot compute class breaks: no finite values")
    return arr

#______________________________________________________________________________

def pretty_breaks(values, n = N_CLASSES):
    """
    Compute about n + 1 equally spaced round break values covering the
    range of values, with steps of 1, 2, 5 or 10 times a power of ten
    (the rule of R's pretty()).

    Args:
        values: numeric array-like
        n: desired number of intervals (int)

    Returns:
        numpy array of breaks, first <= min(values), last >= max(values)

    Raises:
        ValueError: If values has no finite entries
    """
    arr = _finite(values)
    lo, hi = float(arr.min()), float(arr.max())
    min_n = n // 3
    dx = hi - lo

    if dx == 0 and hi == 0:
        cell = 1.0
        small = True
    else:
        cell = max(abs(lo), abs(hi))
        if _U5_BIAS >= 1.5 * _HIGH_U_BIAS + 0.5:
            u = 1 + 1 / (1 + _HIGH_U_BIAS)
        else:
            u = 1 + 1.5 / (1 + _U5_BIAS)
        u *= max(1, n) * sys.float_info.epsilon
        small = dx < cell * u * 3

    if small:
        if cell > 10:
            cell = 9 + cell / 10
        cell *= _SHRINK
        if min_n > 1:
            cell /= min_n
    else:
        cell = dx
        if n > 1:
            cell /= n

    if cell < 20 * sys.float_info.min:
        cell = 20 * sys.float_info.min
    elif cell * 10 > sys.float_info.max:
        cell = 0.1 * sys.float_info.max

    base = 10.0 ** math.floor(math.log10(cell))
    unit = base
    if 2 * base - cell < _HIGH_U_BIAS * (cell - unit):
        unit = 2 * base
        if 5 * base - cell < _U5_BIAS * (cell - unit):
            unit = 5 * base
            if 10 * base - cell < _HIGH_U_BIAS * (cell - unit):
                unit = 10 * base

    ns = math.floor(lo / unit + 1e-7)
    nu = math.ceil(hi / unit - 1e-7)
    while ns * unit > lo + _ROUNDING_EPS * unit:
        ns -= 1
    while nu * unit < hi - _ROUNDING_EPS * unit:
        nu += 1

    k = int(0.5 + nu - ns)
    if k < min_n:
        k = min_n - k
        if ns >= 0:
            nu += k // 2
            ns -= k // 2 + k % 2
        else:
            ns -= k // 2
            nu += k // 2 + k % 2

    breaks = np.arange(ns, nu + 1) * unit
    # Avoid values like 0.30000000000000004 in legends.
    return np.round(breaks, max(0, -int(math.floor(math.log10(unit)))) + 1)

#______________________________________________________________________________

def class_breaks(values, scheme = CLASS_SCHEME, k = N_CLASSES):
    """
    Break values for a classification scheme.
    Args:
        values: numeric array-like
        scheme: "pretty" for pretty_breaks(), or any mapclassify scheme
            name such as "quantiles", "equal_interval", "natural_breaks"
        k: number of classes (int)
    Returns:
        numpy array of at least two breaks, starting at or below the
        minimum and ending at or above the maximum
    """
    arr = _finite(values)
    breaks = None
    if scheme != "pretty" and arr.min() < arr.max():
        classifier = mapclassify.classify(arr, scheme, k = k)
        # mapclassify bins are upper bounds only.
        breaks = np.unique(
            np.concatenate([[arr.min()], np.asarray(classifier.bins, dtype = float)])
        )

    if breaks is None or len(breaks) < 2:
        if scheme != "pretty":
            logger.warning(
                f"{scheme} cannot split a single value ({arr.min():g}); "
                "using pretty breaks instead"
            )
        breaks = pretty_breaks(arr, n = k)

    logger.debug(f"{scheme} breaks for {arr.size} values: {breaks.tolist()}")
    return breaks

#______________________________________________________________________________

def pad_breaks(breaks, min_classes):
    """
    Extend breaks upwards at the last step until they make at least
    min_classes intervals. Breaks that are already long enough are
    returned unchanged.
    """
    breaks = np.asarray(breaks, dtype = float)
    missing = min_classes - (len(breaks) - 1)
    if missing <= 0:
        return breaks

    step = breaks[-1] - breaks[-2]
    extra = breaks[-1] + step * np.arange(1, missing + 1)
    return np.concatenate([breaks, extra])

#______________________________________________________________________________

def class_labels(breaks):
    """Legend labels for consecutive break pairs, e.g. ["0 - 10", "10 - 20"]."""
    return [f"{lo:g} - {hi:g}" for lo, hi in zip(breaks[:-1], breaks[1:])]

#______________________________________________________________________________

def classify_column(gdf, column, scheme = CLASS_SCHEME, k = N_CLASSES,
                    label_col = None, breaks = None):
    """
    Add an ordered categorical column binning column into classes.

    Intervals are closed on the right and the lowest interval includes its
    left edge, so every finite value falls in exactly one class.

    Args:
        gdf: a pandas DataFrame or geopandas GeoDataFrame
        column: Numeric column to classify (string)
        scheme: Classification scheme (string, default = "pretty")
        k: Number of classes (int)
        label_col: Name of the class column (string, default =
            "<column>_class")
        breaks: Precomputed break values used instead of scheme
            (array-like, optional)

    Returns:
        new table with the class column; labels look like "10 - 20" and
        missing values stay missing

    Raises:
        ValueError: If column does not exist
    """
    if column not in gdf.columns:
        raise ValueError(
            f"Column '{column}' not found in DataFrame. "
            f"Available columns: {gdf.columns.tolist()}"
        )
    if breaks is None:
        breaks = class_breaks(gdf[column], scheme = scheme, k = k)
    label_col = label_col or f"{column}_class"

    out = gdf.copy()
    out[label_col] = pd.cut(
        out[column],
        bins = np.asarray(breaks, dtype = float),
        labels = class_labels(breaks),
        include_lowest = True,
        right = True,
        ordered = True
    )
    logger.info(f"Classified '{column}' into {len(breaks) - 1} classes")
    return out

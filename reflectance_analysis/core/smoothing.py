"""Uniform window smoothing of reflectance curves."""

from enum import Enum
from typing import Union

import numpy as np


class SmoothingMethod(Enum):
    """How the window sum is computed.

    SLIDING keeps a running sum, removing the value leaving the window and
    adding the one entering it. DIRECT re-sums the full window at every index,
    which reproduces the historical reference output bit for bit. Both give
    the same averages up to floating point rounding.
    """
    SLIDING = 'sliding'
    DIRECT = 'direct'

    @classmethod
    def from_name(cls, name: Union[str, "SmoothingMethod"]) -> "SmoothingMethod":
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown smoothing method: {name}")


def smoothing_bounds(length: int, half_window: int) -> tuple:
    """Return (start, stop) of the smoothed region; stop is excluded.

    Points before start and from stop onwards do not have enough neighbours.
    Returns (half_window, half_window) when nothing can be smoothed.
    """
    start = half_window
    stop = length - half_window
    if stop <= start:
        return start, start
    return start, stop


def _smooth_sliding(values: np.ndarray, out: np.ndarray, start: int, stop: int,
                    half_window: int, size: int):
    # Initial window [0, size) is centred on `start`
    total = 0.0
    for idx in range(size):
        total += float(values[idx])
    out[start] = total / size

    for idx in range(start + 1, stop):
        total = total - float(values[idx - half_window - 1]) + float(values[idx + half_window])
        out[idx] = total / size


def _smooth_direct(values: np.ndarray, out: np.ndarray, start: int, stop: int,
                   half_window: int, size: int):
    for idx in range(start, stop):
        total = 0.0
        for idx2 in range(idx - half_window, idx + half_window + 1):
            total += float(values[idx2])
        out[idx] = total / size


def smooth_reflectance(reflectance: np.ndarray, half_window: int,
                       method: Union[str, SmoothingMethod] = SmoothingMethod.SLIDING) -> np.ndarray:
    """Smooth a reflectance curve with a uniformly weighted moving average.

    Every point in [half_window, N - half_window) becomes the mean of the
    2*half_window + 1 raw values centred on it. This is not a Gaussian kernel.
    The half_window points at each end cannot be averaged and are set to 0.

    Args:
        reflectance: Raw reflectance values
        half_window: Number of neighbours on each side of a point
        method: SmoothingMethod or its name

    Returns:
        New array of the same length as `reflectance`
    """
    if half_window < 0:
        raise ValueError(f"half_window must be >= 0, got {half_window}")
    method = SmoothingMethod.from_name(method)

    values = np.asarray(reflectance, dtype=float)
    out = np.zeros(values.size, dtype=float)
    start, stop = smoothing_bounds(values.size, half_window)
    if stop <= start:
        return out

    size = 2 * half_window + 1
    if method is SmoothingMethod.SLIDING:
        _smooth_sliding(values, out, start, stop, half_window, size)
    else:
        _smooth_direct(values, out, start, stop, half_window, size)
    return out

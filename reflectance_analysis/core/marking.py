"""Gradient criterion and marker point placement on smoothed segments."""

import math
from typing import Optional, Tuple

import numpy as np


def find_qualifying_subsegment(wavelength: np.ndarray, reflectance: np.ndarray,
                               begin: int, end: int,
                               amplitude: float, max_range: float) -> Optional[Tuple[int, int]]:
    """Search [begin, end] for a sub-segment that is both tall and steep enough.

    Sub-segments are tried by increasing start, then increasing end. Those with
    a vertical change below `amplitude` are skipped. The first one reaching
    `amplitude` is tested against the gradient amplitude / max_range:

    - steep enough: it is returned and the search stops;
    - too shallow: the remaining ends for this start are not tried, the search
      moves on to the next start.

    The second rule is a pruning heuristic, not an exhaustive search: a steep
    but shorter step starting at the same point can be hidden behind a shallow
    one. The detector relies on this exact behaviour to stay compatible with
    the historical results.

    Returns:
        (sub_begin, sub_end) of the qualifying sub-segment, or None
    """
    min_gradient = amplitude / max_range
    full_vrange = abs(float(reflectance[end]) - float(reflectance[begin]))
    if full_vrange < amplitude:
        return None

    for sub_begin in range(begin, end):
        r_begin = float(reflectance[sub_begin])
        for sub_end in range(sub_begin + 1, end + 1):
            vrange = abs(float(reflectance[sub_end]) - r_begin)
            if vrange < amplitude:
                continue
            hrange = float(wavelength[sub_end]) - float(wavelength[sub_begin])
            gradient = 0.0 if hrange == 0 else vrange / hrange
            if gradient >= min_gradient:
                return sub_begin, sub_end
            break
    return None


def select_center_point(reflectance: np.ndarray, begin: int, end: int) -> int:
    """Index in [begin, end] whose value is closest to the segment's mid height.

    Mid height is the mean of the two end values. Ties go to the lowest index.
    """
    mid_height = (float(reflectance[begin]) + float(reflectance[end])) / 2
    closest_distance = math.inf
    closest_idx = begin
    for idx in range(begin, end + 1):
        delta = abs(float(reflectance[idx]) - mid_height)
        if delta < closest_distance:
            closest_distance = delta
            closest_idx = idx
    return closest_idx


def mark_segment(wavelength: np.ndarray, reflectance: np.ndarray,
                 monotonic_change: np.ndarray, marker_point: np.ndarray,
                 begin: int, end: int,
                 amplitude: float, max_range: float) -> Optional[int]:
    """Flag segment [begin, end] if it contains a qualifying step change.

    On success the whole segment gets monotonic_change=True and exactly one
    point gets marker_point=True. The flag arrays are modified in place.

    Returns:
        Index of the marker point, or None when the segment does not qualify
    """
    if find_qualifying_subsegment(wavelength, reflectance, begin, end, amplitude, max_range) is None:
        return None
    monotonic_change[begin:end + 1] = True
    marker_idx = select_center_point(reflectance, begin, end)
    marker_point[marker_idx] = True
    return marker_idx

"""Numeric core of the marker point detection.

Modules:
- smoothing: uniform moving average with zeroed boundaries
- segmentation: lookahead slope direction segments
- marking: gradient criterion and marker point placement
- pipeline: batch loading, analysis and export of many files
"""

from .smoothing import SmoothingMethod, smooth_reflectance, smoothing_bounds
from .segmentation import Segment, SlopeDirection, iter_segments
from .marking import find_qualifying_subsegment, mark_segment, select_center_point

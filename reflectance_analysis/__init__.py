"""
Reflectance Analysis Package
----------------------------
Marker point detection on spectral reflectance curves: replicate averaging,
uniform smoothing, slope segmentation and gradient based marker placement.
"""

__version__ = "1.0.0"

# Import key components for easier access
from .curve import CurveSeries, Sample
from .data_loader import (
    CurveParser,
    EmptyParseError,
    NumericParseError,
    ParseError,
    ParsingMode,
    load_curve_file,
    parse_curve,
)
from .analyzer import AnalyzedCurve, AnnotatedPoint, Curve, DetectionParameters
from .core.smoothing import SmoothingMethod
from .summary import HistogramRange, list_markers, marker_histogram

__all__ = [
    'CurveSeries',
    'Sample',
    'CurveParser',
    'ParsingMode',
    'ParseError',
    'NumericParseError',
    'EmptyParseError',
    'parse_curve',
    'load_curve_file',
    'DetectionParameters',
    'AnnotatedPoint',
    'AnalyzedCurve',
    'Curve',
    'SmoothingMethod',
    'HistogramRange',
    'list_markers',
    'marker_histogram',
]

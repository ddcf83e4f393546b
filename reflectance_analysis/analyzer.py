"""
Marker point detection on reflectance curves.
"""
from typing import Any, Dict, List, Optional, Union
from dataclasses import dataclass, asdict
import logging

import numpy as np
import pandas as pd

from .curve import CurveSeries
from .core.smoothing import SmoothingMethod, smooth_reflectance
from .core.segmentation import Segment, iter_segments
from .core.marking import mark_segment

logger = logging.getLogger(__name__)


def _is_count(value) -> bool:
    # Window sizes index arrays: floats such as 2.0 are rejected, not coerced
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool) and value >= 0


@dataclass(frozen=True)
class DetectionParameters:
    """Marker detection parameters."""
    amplitude: float = 20.0      # (0, 100] reflectance change triggering a detection
    range: float = 50.0          # (0, ...) wavelength span over which the change must occur
    smoothing_window: int = 10   # [0, ...) half width of the smoothing window, in points
    lookahead: int = 5           # [0, ...) points averaged ahead to decide the slope direction

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "DetectionParameters":
        """Build parameters from the 'analysis' section of the configuration."""
        cfg = (config or {}).get('analysis', {}) or {}
        defaults = cls()
        return cls(
            amplitude=float(cfg.get('amplitude', defaults.amplitude)),
            range=float(cfg.get('range', defaults.range)),
            smoothing_window=int(cfg.get('smoothing_window', defaults.smoothing_window)),
            lookahead=int(cfg.get('lookahead', defaults.lookahead)),
        )

    def errors(self) -> List[str]:
        errs = []
        if not 0 < self.amplitude <= 100:
            errs.append(f"amplitude must be in (0, 100], got {self.amplitude}")
        if not self.range > 0:
            errs.append(f"range must be positive, got {self.range}")
        if not _is_count(self.smoothing_window):
            errs.append(f"smoothing_window must be a non-negative integer, got {self.smoothing_window}")
        if not _is_count(self.lookahead):
            errs.append(f"lookahead must be a non-negative integer, got {self.lookahead}")
        return errs

    def validate(self) -> "DetectionParameters":
        """Raise ValueError if any parameter is out of its domain."""
        errs = self.errors()
        if errs:
            raise ValueError("Invalid detection parameters: " + "; ".join(errs))
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AnnotatedPoint:
    """One point of an analysed curve."""
    wavelength: float
    reflectance: float           # smoothed
    monotonic_change: bool
    marker_point: bool


class AnalyzedCurve:
    """Smoothed and annotated version of a CurveSeries.

    The annotation is a set of arrays indexed like the series: smoothed
    reflectance, monotonic_change and marker_point flags. It is recomputed as a
    whole by reanalyze(), never partially.
    """

    def __init__(self, series: CurveSeries, parameters: DetectionParameters,
                 smoothing_method: Union[str, SmoothingMethod] = SmoothingMethod.SLIDING):
        self.series = series
        self.parameters = parameters.validate()
        self.smoothing_method = SmoothingMethod.from_name(smoothing_method)
        self.smoothed: np.ndarray = np.zeros(len(series))
        self.monotonic_change: np.ndarray = np.zeros(len(series), dtype=bool)
        self.marker_point: np.ndarray = np.zeros(len(series), dtype=bool)
        self.segments: List[Segment] = []
        self._smooth()
        self._mark()

    # --- recompute

    def reanalyze(self, parameters: DetectionParameters,
                  smoothing_method: Optional[Union[str, SmoothingMethod]] = None) -> "AnalyzedCurve":
        """Recompute the annotation for new parameters.

        A different smoothing window (or method) rebuilds the smoothed curve,
        discarding the previous annotation. Otherwise the flags are reset in
        place and only segmentation and marking run again.
        """
        parameters.validate()
        method = self.smoothing_method if smoothing_method is None else SmoothingMethod.from_name(smoothing_method)
        resmooth = (parameters.smoothing_window != self.parameters.smoothing_window
                    or method is not self.smoothing_method)
        self.parameters = parameters
        self.smoothing_method = method
        if resmooth:
            self._smooth()
        else:
            self._reset_flags()
        self._mark()
        return self

    def _smooth(self):
        self.smoothed = smooth_reflectance(
            self.series.reflectance, self.parameters.smoothing_window, self.smoothing_method
        )
        self.monotonic_change = np.zeros(len(self.series), dtype=bool)
        self.marker_point = np.zeros(len(self.series), dtype=bool)

    def _reset_flags(self):
        self.monotonic_change[:] = False
        self.marker_point[:] = False

    def _mark(self):
        params = self.parameters
        wavelength = self.series.wavelength
        self.segments = []
        for segment in iter_segments(self.smoothed, params.lookahead):
            self.segments.append(segment)
            mark_segment(
                wavelength, self.smoothed, self.monotonic_change, self.marker_point,
                segment.begin, segment.end, params.amplitude, params.range,
            )
        logger.debug(
            f"{len(self.segments)} segments, {int(self.marker_point.sum())} marker points "
            f"(amplitude={params.amplitude}, range={params.range}, "
            f"smoothing_window={params.smoothing_window}, lookahead={params.lookahead})"
        )

    # --- access

    @property
    def wavelength(self) -> np.ndarray:
        return self.series.wavelength

    @property
    def raw(self) -> np.ndarray:
        return self.series.reflectance

    def __len__(self) -> int:
        return len(self.series)

    def __getitem__(self, idx: int) -> AnnotatedPoint:
        return AnnotatedPoint(
            wavelength=float(self.series.wavelength[idx]),
            reflectance=float(self.smoothed[idx]),
            monotonic_change=bool(self.monotonic_change[idx]),
            marker_point=bool(self.marker_point[idx]),
        )

    @property
    def points(self) -> List[AnnotatedPoint]:
        return [self[idx] for idx in range(len(self))]

    def marker_indices(self) -> np.ndarray:
        return np.flatnonzero(self.marker_point)

    def marked_segments(self) -> List[Segment]:
        """Segments whose points carry the monotonic_change flag."""
        return [s for s in self.segments if self.monotonic_change[s.begin]]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            'wavelength': self.series.wavelength,
            'raw': self.series.reflectance,
            'smoothed': self.smoothed,
            'monotonic_change': self.monotonic_change,
            'marker_point': self.marker_point,
        })


class Curve:
    """A named raw curve with its (optional) analysis result."""

    def __init__(self, name: str, series: CurveSeries):
        self.name = name
        self.series = series
        self._result: Optional[AnalyzedCurve] = None

    def analyse(self, parameters: DetectionParameters,
                smoothing_method: Optional[Union[str, SmoothingMethod]] = None) -> AnalyzedCurve:
        """Run the analysis, reusing the previous result when there is one."""
        if self._result is None:
            self._result = AnalyzedCurve(
                self.series, parameters,
                smoothing_method if smoothing_method is not None else SmoothingMethod.SLIDING,
            )
        else:
            self._result.reanalyze(parameters, smoothing_method)
        return self._result

    @property
    def result(self) -> Optional[AnalyzedCurve]:
        """Analysis result, or None if analyse() was never called."""
        return self._result

    def __repr__(self) -> str:
        state = 'analysed' if self._result is not None else 'not analysed'
        return f"Curve({self.name!r}, {len(self.series)} points, {state})"

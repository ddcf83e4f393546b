"""Marker queries and histograms over analysed curves."""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from .analyzer import AnalyzedCurve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistogramRange:
    """Wavelength window and bin width of the marker histogram."""
    start: float = 300.0
    end: float = 700.0
    bin_width: float = 10.0

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "HistogramRange":
        cfg = (config or {}).get('histogram', {}) or {}
        defaults = cls()
        return cls(
            start=float(cfg.get('start', defaults.start)),
            end=float(cfg.get('end', defaults.end)),
            bin_width=float(cfg.get('bin_width', defaults.bin_width)),
        )

    def validate(self) -> "HistogramRange":
        if self.bin_width <= 0:
            raise ValueError(f"bin_width must be positive, got {self.bin_width}")
        if self.end < self.start:
            raise ValueError(f"end ({self.end}) must not be lower than start ({self.start})")
        return self

    @property
    def n_bins(self) -> int:
        return int(math.floor((self.end - self.start) / self.bin_width))


def list_markers(curve: AnalyzedCurve, start: float, end: float) -> List[float]:
    """Wavelengths of the marker points with start <= wavelength <= end + 1.

    The one unit of slack above `end` is part of the historical output format.
    """
    wl = curve.wavelength
    mask = curve.marker_point & (wl >= start) & (wl <= end + 1)
    return [float(w) for w in wl[mask]]


def marker_histogram(curves: Iterable[AnalyzedCurve], start: float, end: float,
                     bin_width: float) -> np.ndarray:
    """
    Count marker points per wavelength bin over several curves.

    Args:
        curves: Analysed curves
        start: Lower wavelength bound, included
        end: Upper wavelength bound, included
        bin_width: Width of a bin

    Returns:
        Integer array of floor((end - start) / bin_width) bins. A marker at w
        lands in bin floor((w - start) / bin_width).
    """
    hist_range = HistogramRange(start, end, bin_width).validate()
    counts = np.zeros(hist_range.n_bins, dtype=int)
    for curve in curves:
        for w in curve.wavelength[curve.marker_point]:
            if not start <= w <= end:
                continue
            idx = int(math.floor((w - start) / bin_width))
            if idx >= counts.size:
                # `end` itself when the window is a whole number of bins
                logger.debug(f"Marker at {w:g} is past the last bin, not counted")
                continue
            counts[idx] += 1
    return counts


def histogram_labels(start: float, end: float, bin_width: float) -> List[str]:
    """Bin labels: the lower bound of each bin, e.g. '300', '310', ..."""
    n_bins = HistogramRange(start, end, bin_width).validate().n_bins
    return [f"{start + idx * bin_width:g}" for idx in range(n_bins)]


def histogram_frame(curves: Iterable[AnalyzedCurve], hist_range: HistogramRange) -> pd.DataFrame:
    """Histogram as a DataFrame with 'label', 'bin_start' and 'count' columns."""
    counts = marker_histogram(curves, hist_range.start, hist_range.end, hist_range.bin_width)
    starts = hist_range.start + np.arange(counts.size) * hist_range.bin_width
    return pd.DataFrame({
        'label': histogram_labels(hist_range.start, hist_range.end, hist_range.bin_width),
        'bin_start': starts,
        'count': counts,
    })

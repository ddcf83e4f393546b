"""
Visualization functions for analysed reflectance curves.
"""
from typing import List, Optional, Sequence, Union
from pathlib import Path
import logging

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from .analyzer import AnalyzedCurve
from .summary import list_markers

logger = logging.getLogger(__name__)


def _save(fig: Figure, save_path: Optional[Union[str, Path]], dpi: int = 200):
    if save_path:
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, dpi=dpi, bbox_inches='tight')
        logger.info(f"Figure saved to {save_path}")


def plot_curve(curve: AnalyzedCurve,
               start: float = 300.0,
               end: float = 700.0,
               title: str = 'Reflectance',
               annotate: bool = True,
               save_path: Optional[Union[str, Path]] = None) -> Figure:
    """
    Plot raw and smoothed reflectance with detected segments and marker points.

    Args:
        curve: Analysed curve
        start: Lower wavelength limit of the plot
        end: Upper wavelength limit of the plot
        title: Plot title
        annotate: Write the marker wavelengths next to the marker points
        save_path: If provided, save the figure to this path

    Returns:
        Matplotlib Figure object
    """
    wl = curve.wavelength
    fig, ax = plt.subplots(figsize=(10, 6))

    ax.plot(wl, curve.raw, color='0.6', lw=1, label='Raw')
    ax.plot(wl, curve.smoothed, color='tab:blue', lw=1.5, label='Smoothed')

    # NaN breaks the line between separate segments
    change = np.where(curve.monotonic_change, curve.smoothed, np.nan)
    if np.any(curve.monotonic_change):
        ax.plot(wl, change, color='tab:orange', lw=3, label='Monotonic change')

    markers = curve.marker_indices()
    if markers.size:
        ax.plot(wl[markers], curve.smoothed[markers], 'ro', label='Marker points')
        if annotate:
            for idx in markers:
                ax.annotate(f"{wl[idx]:.2f}", (wl[idx], curve.smoothed[idx]),
                            textcoords='offset points', xytext=(4, -12), fontsize=8)

    ax.set_xlim(start, end)
    ax.set_ylim(0, 100)
    ax.set_xlabel('Wavelength (nm)')
    ax.set_ylabel('Reflectance (%)')
    found = ", ".join(f"{w:.2f}" for w in list_markers(curve, start, end))
    ax.set_title(f"{title}\nMarkers: {found or 'none'}")
    ax.legend(loc='upper left')
    ax.grid(True, alpha=0.3)

    _save(fig, save_path)
    return fig


def plot_marker_histogram(labels: Sequence[str],
                          counts: Sequence[int],
                          horizontal: bool = False,
                          title: str = 'Marker points',
                          save_path: Optional[Union[str, Path]] = None) -> Figure:
    """
    Bar plot of the marker histogram.

    Args:
        labels: Bin labels (lower bound of each bin)
        counts: Number of markers per bin
        horizontal: Draw horizontal bars, bins on the y axis
        title: Plot title
        save_path: If provided, save the figure to this path

    Returns:
        Matplotlib Figure object
    """
    positions = np.arange(len(labels))
    if horizontal:
        fig, ax = plt.subplots(figsize=(6, 10))
        ax.barh(positions, counts, align='edge', height=1.0, edgecolor='k')
        ax.set_yticks(positions)
        ax.set_yticklabels(labels, fontsize=7)
        ax.set_xlabel('Count')
        ax.set_ylabel('Wavelength (nm)')
        ax.grid(True, axis='x', alpha=0.3)
    else:
        fig, ax = plt.subplots(figsize=(10, 6))
        ax.bar(positions, counts, align='edge', width=1.0, edgecolor='k')
        ax.set_xticks(positions)
        ax.set_xticklabels(labels, rotation=90, fontsize=7)
        ax.set_xlabel('Wavelength (nm)')
        ax.set_ylabel('Count')
        ax.grid(True, axis='y', alpha=0.3)
    ax.set_title(title)
    fig.tight_layout()

    _save(fig, save_path)
    return fig


def close_figures(figures: List[Figure]):
    for fig in figures:
        plt.close(fig)

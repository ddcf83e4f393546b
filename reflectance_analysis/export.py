"""Text and file outputs of the marker analysis."""

import json
import logging
import os
import re
import zipfile
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import numpy as np

from .analyzer import AnalyzedCurve, DetectionParameters
from .summary import HistogramRange, histogram_labels, marker_histogram

logger = logging.getLogger(__name__)

# Wavelength window of the detailed output, kept for compatibility with
# existing result files. Unrelated to the smoothing boundaries.
DISPLAY_WINDOW: Tuple[float, float] = (300.0, 701.0)

RESERVED_NAMES = ('parameters.json', 'histogram.csv', 'curves.zip', 'Histogram_H.png', 'Histogram_V.png')


def format_point(curve: AnalyzedCurve, idx: int, precision: int = 20) -> str:
    """wavelength,raw,smoothed,monotonic,marker for one point.

    The last two fields hold the smoothed value when the flag is set and are
    empty otherwise.
    """
    smoothed = f"{curve.smoothed[idx]:.{precision}f}"
    fields = [
        f"{curve.wavelength[idx]:.{precision}f}",
        f"{curve.raw[idx]:.{precision}f}",
        smoothed,
        smoothed if curve.monotonic_change[idx] else "",
        smoothed if curve.marker_point[idx] else "",
    ]
    return ",".join(fields)


def format_detailed_curve(curve: AnalyzedCurve,
                          window: Tuple[float, float] = DISPLAY_WINDOW,
                          precision: int = 20) -> str:
    """Detailed curve text, one line per point inside `window`.

    Every line is preceded by a newline, so the text starts with an empty line.
    """
    low, high = window
    parts = []
    for idx in range(len(curve)):
        wl = curve.wavelength[idx]
        if low <= wl <= high:
            parts.append("\n" + format_point(curve, idx, precision))
    return "".join(parts)


def histogram_to_csv(labels: Sequence[str], counts: Sequence[int]) -> str:
    return "".join(f"{label}, {int(count)}\n" for label, count in zip(labels, counts))


def _safe_name(name: str) -> str:
    base = os.path.basename(name)
    return re.sub(r"[^A-Za-z0-9._-]+", "_", base) or 'curve'


def unique_name(name: str, taken: Set[str]) -> str:
    """Return `name`, or `stem_2.ext`, `stem_3.ext`, ... if it is already in `taken`.

    Comparison ignores case. The returned name is added to `taken`.
    """
    stem, ext = os.path.splitext(name)
    candidate = name
    n = 2
    while candidate.lower() in taken:
        candidate = f"{stem}_{n}{ext}"
        n += 1
    taken.add(candidate.lower())
    return candidate


def _curve_file_names(names: Iterable[str]) -> Dict[str, str]:
    # Output file per curve, never one of the bundle files or another curve's file
    taken = {n.lower() for n in RESERVED_NAMES}
    files: Dict[str, str] = {}
    for name in names:
        file_name = _safe_name(name)
        while True:
            file_name = unique_name(file_name, taken)
            if f"{file_name}.png".lower() not in taken:
                break
        taken.add(f"{file_name}.png".lower())
        files[name] = file_name
    return files


def _write_json(path: Path, payload: Dict[str, object]):
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open('w', encoding='utf-8') as f:
        json.dump(payload, f, indent=2)


def save_outputs(curves: Mapping[str, AnalyzedCurve],
                 parameters: DetectionParameters,
                 hist_range: HistogramRange,
                 out_root: str,
                 window: Tuple[float, float] = DISPLAY_WINDOW,
                 precision: int = 20,
                 plots: bool = True,
                 make_zip: bool = False,
                 counts: Optional[np.ndarray] = None) -> Dict[str, object]:
    """
    Write parameters, histogram and detailed curves under `out_root`.

    Args:
        curves: Mapping of file name -> analysed curve
        parameters: Parameters used for the analysis
        hist_range: Histogram window and bin width
        out_root: Output directory, created if needed
        window: Wavelength window of the detailed curve files
        precision: Number of decimals in the detailed curve files
        plots: Also render PNG figures
        make_zip: Bundle everything written into curves.zip
        counts: Histogram counts already computed for `curves`; recomputed when None

    Returns:
        Dict with keys 'parameters', 'histogram', 'curves' (name -> path),
        'plots' (name -> path), 'histogram_plots' (paths) and 'zip' (path or None).
        Every curve gets its own file, renamed with a numeric suffix when its
        name clashes with another curve or with a bundle file.
    """
    out_dir = Path(out_root)
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []

    params_path = out_dir / 'parameters.json'
    _write_json(params_path, parameters.to_dict())
    written.append(params_path)

    labels = histogram_labels(hist_range.start, hist_range.end, hist_range.bin_width)
    if counts is None:
        counts = marker_histogram(curves.values(), hist_range.start, hist_range.end, hist_range.bin_width)
    hist_path = out_dir / 'histogram.csv'
    hist_path.write_text(histogram_to_csv(labels, counts), encoding='utf-8')
    written.append(hist_path)

    file_names = _curve_file_names(curves)
    curve_paths: Dict[str, str] = {}
    for name, curve in curves.items():
        path = out_dir / file_names[name]
        path.write_text(format_detailed_curve(curve, window, precision), encoding='utf-8')
        curve_paths[name] = str(path)
        written.append(path)
    logger.info(f"Saved {len(curve_paths)} detailed curves to {out_dir}")

    plot_paths: Dict[str, str] = {}
    histogram_plots: List[str] = []
    if plots:
        from .visualization import close_figures, plot_curve, plot_marker_histogram

        figures = [
            plot_marker_histogram(labels, counts, horizontal=True, save_path=out_dir / 'Histogram_H.png'),
            plot_marker_histogram(labels, counts, horizontal=False, save_path=out_dir / 'Histogram_V.png'),
        ]
        histogram_plots = [str(out_dir / 'Histogram_H.png'), str(out_dir / 'Histogram_V.png')]
        for name, curve in curves.items():
            path = out_dir / f"{file_names[name]}.png"
            figures.append(plot_curve(curve, hist_range.start, hist_range.end, title=name, save_path=path))
            plot_paths[name] = str(path)
        close_figures(figures)
        written.extend(Path(p) for p in histogram_plots + list(plot_paths.values()))

    zip_path: Optional[str] = None
    if make_zip:
        zip_path = str(out_dir / 'curves.zip')
        with zipfile.ZipFile(zip_path, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
            for path in written:
                zf.write(path, arcname=path.name)
        logger.info(f"Archive saved to {zip_path}")

    return {
        'parameters': str(params_path),
        'histogram': str(hist_path),
        'curves': curve_paths,
        'plots': plot_paths,
        'histogram_plots': histogram_plots,
        'zip': zip_path,
    }

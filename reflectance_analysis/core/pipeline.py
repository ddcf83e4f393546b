"""Batch processing: many files -> parsed curves -> analysis -> outputs."""

import hashlib
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Union

from ..analyzer import AnalyzedCurve, Curve, DetectionParameters
from ..data_loader import CurveParser, ParseError
from ..export import DISPLAY_WINDOW, save_outputs, unique_name
from ..summary import HistogramRange, marker_histogram
from .smoothing import SmoothingMethod

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    curves: List[Curve] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)


def _timestamp() -> str:
    return datetime.now().strftime('%Y%m%d_%H%M%S')


def content_hash(content: str) -> str:
    return hashlib.sha1(content.encode('utf-8')).hexdigest()


def load_curve_files(paths: Iterable[Union[str, os.PathLike]],
                     parser: Optional[CurveParser] = None) -> BatchResult:
    """Read and parse every file, skipping files whose content was already seen.

    A file that cannot be read or parsed is reported in `errors` and does not
    stop the batch. Curves are named after their file; a name already used by
    an earlier curve (same file name in another directory) gets a `_2`, `_3`,
    ... suffix before the extension.
    """
    parser = parser or CurveParser()
    result = BatchResult()
    seen: Dict[str, str] = {}
    names: Set[str] = set()

    for path in paths:
        path = os.fspath(path)
        name = os.path.basename(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Could not load file {path}: {e}")
            result.errors.append(f"Could not load file '{name}'")
            continue

        digest = content_hash(content)
        if digest in seen:
            logger.info(f"Skipping {path}: same content as {seen[digest]}")
            result.duplicates.append(path)
            continue

        parsed = parser.try_parse(content)
        if isinstance(parsed, ParseError):
            logger.error(f"Error processing {name}: {parsed}")
            result.errors.append(f"Parsing error. File '{name}': {parsed}")
            continue

        seen[digest] = path
        result.curves.append(Curve(unique_name(name, names), parsed))
        logger.info(f"Loaded {len(parsed)} points from {path}")

    return result


def analyze_batch(curves: Iterable[Curve], parameters: DetectionParameters,
                  smoothing_method: Optional[Union[str, SmoothingMethod]] = None) -> List[AnalyzedCurve]:
    """Analyse (or re-analyse) every curve with the same parameters."""
    return [curve.analyse(parameters, smoothing_method) for curve in curves]


def run_marker_pipeline(paths: Iterable[Union[str, os.PathLike]],
                        out_root: Optional[str],
                        parameters: DetectionParameters,
                        hist_range: Optional[HistogramRange] = None,
                        parser: Optional[CurveParser] = None,
                        smoothing_method: Union[str, SmoothingMethod] = SmoothingMethod.SLIDING,
                        config: Optional[Dict[str, object]] = None) -> Dict[str, object]:
    """Run: load → parse → analyse → histogram → persistence.

    Args:
        paths: Input CSV files
        out_root: Output directory; nothing is written when None
        parameters: Detection parameters
        hist_range: Histogram window, defaults to the configured one
        parser: CSV parser, defaults to the configured one
        smoothing_method: 'sliding' or 'direct'
        config: Configuration mapping (see config/config.yaml)

    Returns:
        Dict with 'curves' (name -> AnalyzedCurve), 'errors', 'duplicates',
        'histogram' (counts array), 'outputs' (paths, empty without out_root)
    """
    config = config or {}
    parameters.validate()
    hist_range = (hist_range or HistogramRange.from_config(config)).validate()
    parser = parser or CurveParser.from_config(config)

    batch = load_curve_files(paths, parser)
    analysed = analyze_batch(batch.curves, parameters, smoothing_method)
    by_name = {curve.name: result for curve, result in zip(batch.curves, analysed)}
    counts = marker_histogram(analysed, hist_range.start, hist_range.end, hist_range.bin_width)

    outputs: Dict[str, object] = {}
    if out_root:
        out_cfg = config.get('output', {}) or {}
        window = tuple(out_cfg.get('display_window', DISPLAY_WINDOW))
        outputs = save_outputs(
            by_name,
            parameters,
            hist_range,
            out_root,
            window=(float(window[0]), float(window[1])),
            precision=int(out_cfg.get('precision', 20)),
            plots=bool(out_cfg.get('plots', True)),
            make_zip=bool(out_cfg.get('zip', False)),
            counts=counts,
        )

    logger.info(
        f"[{_timestamp()}] {len(analysed)} curves analysed, {len(batch.errors)} errors, "
        f"{int(counts.sum())} markers in [{hist_range.start:g}, {hist_range.end:g}]"
    )
    return {
        'curves': by_name,
        'errors': list(batch.errors),
        'duplicates': list(batch.duplicates),
        'histogram': counts,
        'outputs': outputs,
    }

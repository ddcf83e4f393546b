import argparse
import logging
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running from anywhere
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config.config_loader import apply_overrides, load_config  # noqa: E402
from reflectance_analysis.analyzer import AnalyzedCurve, DetectionParameters  # noqa: E402
from reflectance_analysis.core.pipeline import run_marker_pipeline  # noqa: E402
from reflectance_analysis.data_loader import CurveParser, ParseError, ParsingMode  # noqa: E402
from reflectance_analysis.export import DISPLAY_WINDOW, format_detailed_curve  # noqa: E402
from reflectance_analysis.summary import HistogramRange, list_markers  # noqa: E402


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Spectral reflectance marker points: smoothing → slope detection → marker points",
        usage="%(prog)s -a <n> -r <n> [options] [files]",
    )
    parser.add_argument("files", nargs="*", help="CSV reflectance files")
    parser.add_argument("-a", "--amplitude", type=int, help="Amplitude to detect, in percentage [0, 100]")
    parser.add_argument("-r", "--range", type=int, dest="range", help="Range over which to perform the detection")
    parser.add_argument("-l", "--lookahead", type=int, help="Slope detection lookahead")
    parser.add_argument("-s", "--smooth", type=int, help="Smoothing window size")
    layout = parser.add_mutually_exclusive_group()
    layout.add_argument("-m", "--multi", action="store_true", help="Select the multi wavelength column format")
    layout.add_argument("--single", action="store_true",
                        help="Select the single wavelength column format (default: detect from the first row)")
    parser.add_argument("-H", "--header", action="store_true", help="Skip header")
    parser.add_argument("-c", "--cpp", action="store_true",
                        help="Re-sum every smoothing window, as the legacy C++ tool does")
    parser.add_argument("--config", type=str, help="Path to a YAML configuration file")
    parser.add_argument("--out", type=str,
                        help="Output directory. If omitted, detailed curves are printed to stdout")
    parser.add_argument("--zip", action="store_true", default=None, help="Also bundle outputs in curves.zip")
    parser.add_argument("--no-plots", action="store_false", dest="plots", default=None,
                        help="Do not render PNG figures")
    parser.add_argument("--start", type=float, help="Histogram start wavelength")
    parser.add_argument("--end", type=float, help="Histogram end wavelength")
    parser.add_argument("--bin-width", type=float, dest="bin_width", help="Histogram bin width")
    return parser


def _configure_logging(config):
    log_cfg = config.get('logging', {}) or {}
    logging.basicConfig(
        level=getattr(logging, str(log_cfg.get('level', 'INFO')).upper(), logging.INFO),
        format=log_cfg.get('format', "%(asctime)s %(levelname)s %(name)s: %(message)s"),
    )


def _resolve_config(args):
    config = load_config(args.config)
    mode = None
    if args.multi:
        mode = ParsingMode.MULTI.value
    elif args.single:
        mode = ParsingMode.SINGLE.value
    return apply_overrides(config, {
        'analysis.amplitude': args.amplitude,
        'analysis.range': args.range,
        'analysis.lookahead': args.lookahead,
        'analysis.smoothing_window': args.smooth,
        'analysis.smoothing_method': 'direct' if args.cpp else None,
        'parser.skip_header': True if args.header else None,
        'parser.parsing_mode': mode,
        'histogram.start': args.start,
        'histogram.end': args.end,
        'histogram.bin_width': args.bin_width,
        'output.zip': args.zip,
        'output.plots': args.plots,
    })


def _print_detailed(paths, parser, params, method, window, precision):
    for file_path in paths:
        try:
            content = Path(file_path).read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            print(f"Error reading file {file_path}:   {e}")
            continue
        parsed = parser.try_parse(content)
        if isinstance(parsed, ParseError):
            print(f"Error reading file {file_path}:   {parsed}")
            continue
        curve = AnalyzedCurve(parsed, params, method)
        print(format_detailed_curve(curve, window, precision))


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = _resolve_config(args)
    _configure_logging(config)

    try:
        params = DetectionParameters.from_config(config).validate()
        hist_range = HistogramRange.from_config(config).validate()
    except ValueError as e:
        print(f"\n  error: {e}\n", file=sys.stderr)
        return 1

    curve_parser = CurveParser.from_config(config)
    method = config.get('analysis', {}).get('smoothing_method', 'sliding')
    out_cfg = config.get('output', {}) or {}
    window = tuple(float(w) for w in out_cfg.get('display_window', DISPLAY_WINDOW))
    precision = int(out_cfg.get('precision', 20))

    if not args.out:
        _print_detailed(args.files, curve_parser, params, method, window, precision)
        return 0

    print("Running marker point analysis...")
    print(f"  files: {len(args.files)}")
    print(f"  parameters: {params.to_dict()}")
    print(f"  out_root: {args.out}")

    result = run_marker_pipeline(
        args.files,
        args.out,
        params,
        hist_range=hist_range,
        parser=curve_parser,
        smoothing_method=method,
        config=config,
    )

    print("\nMarker points")
    print("-------------")
    for name, curve in result['curves'].items():
        markers = ", ".join(f"{w:.2f}" for w in list_markers(curve, hist_range.start, hist_range.end))
        print(f"{name}: {markers or 'none'}")
    for message in result['errors']:
        print(message)

    print("\nOutputs written under:", args.out)
    return 0


if __name__ == "__main__":
    sys.exit(main())

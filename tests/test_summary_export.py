import json
import zipfile
from pathlib import Path

import numpy as np
import pytest

from reflectance_analysis.analyzer import AnalyzedCurve, DetectionParameters
from reflectance_analysis.curve import CurveSeries
from reflectance_analysis.export import (
    format_detailed_curve,
    format_point,
    histogram_to_csv,
    save_outputs,
)
from reflectance_analysis.summary import (
    HistogramRange,
    histogram_frame,
    histogram_labels,
    list_markers,
    marker_histogram,
)

UNSMOOTHED = DetectionParameters(amplitude=40, range=100, smoothing_window=0, lookahead=0)
RAMP_PARAMS = DetectionParameters(amplitude=20, range=50, smoothing_window=0, lookahead=5)


def test_list_markers_allows_one_unit_past_end(three_point_series):
    curve = AnalyzedCurve(three_point_series, UNSMOOTHED)
    assert list_markers(curve, 300, 400) == [350.0]
    assert list_markers(curve, 300, 349) == [350.0]
    assert list_markers(curve, 300, 348) == []
    assert list_markers(curve, 351, 400) == []


def test_marker_histogram_counts(three_point_series, ramp_series):
    curves = [AnalyzedCurve(three_point_series, UNSMOOTHED), AnalyzedCurve(ramp_series, RAMP_PARAMS)]
    counts = marker_histogram(curves, 300, 700, 10)
    assert counts.shape == (40,)
    assert counts.dtype.kind == 'i'
    assert counts[5] == 1     # 350
    assert counts[25] == 1    # 555
    assert counts.sum() == 2


def test_marker_on_histogram_end_is_dropped(three_point_series):
    curve = AnalyzedCurve(three_point_series, UNSMOOTHED)
    counts = marker_histogram([curve], 300, 350, 10)
    assert counts.shape == (5,)
    assert counts.sum() == 0
    # counted once the window extends past it
    assert marker_histogram([curve], 300, 360, 10).sum() == 1


def test_histogram_labels_and_frame(three_point_series):
    labels = histogram_labels(300, 700, 10)
    assert len(labels) == 40
    assert labels[:3] == ['300', '310', '320']
    assert histogram_labels(0, 1, 0.25) == ['0', '0.25', '0.5', '0.75']

    df = histogram_frame([AnalyzedCurve(three_point_series, UNSMOOTHED)], HistogramRange())
    assert list(df.columns) == ['label', 'bin_start', 'count']
    assert df.loc[df['count'] > 0, 'bin_start'].tolist() == [350.0]


def test_histogram_range_validation():
    assert HistogramRange.from_config({'histogram': {'start': 400, 'bin_width': 5}}) == HistogramRange(400.0, 700.0, 5.0)
    assert HistogramRange(300, 700, 10).n_bins == 40
    with pytest.raises(ValueError):
        HistogramRange(300, 700, 0).validate()
    with pytest.raises(ValueError):
        HistogramRange(700, 300, 10).validate()
    with pytest.raises(ValueError):
        marker_histogram([], 300, 700, -1)


def test_detailed_output_format(three_point_series):
    curve = AnalyzedCurve(three_point_series, UNSMOOTHED)
    text = format_detailed_curve(curve)
    assert text.startswith("\n")
    lines = text.split("\n")[1:]
    assert len(lines) == 3
    assert lines[0] == ",".join(["300.00000000000000000000"] + ["0.00000000000000000000"] * 3) + ","
    assert lines[1] == ",".join(["350.00000000000000000000"] + ["50.00000000000000000000"] * 4)


def test_detailed_output_window():
    series = CurveSeries([299.0, 300.0, 701.0, 702.0], [1.0, 2.0, 3.0, 4.0])
    curve = AnalyzedCurve(series, DetectionParameters(amplitude=50, range=50, smoothing_window=0, lookahead=0))
    lines = format_detailed_curve(curve).split("\n")[1:]
    assert [line.split(",")[0] for line in lines] == ["300.00000000000000000000", "701.00000000000000000000"]
    assert all(line.endswith(",,") for line in lines)
    assert format_point(curve, 0, precision=2) == "299.00,1.00,1.00,,"
    assert format_detailed_curve(curve, window=(0.0, 299.5), precision=1) == "\n299.0,1.0,1.0,,"


def test_histogram_csv():
    assert histogram_to_csv(['300', '310'], np.array([1, 0])) == "300, 1\n310, 0\n"


def test_save_outputs(tmp_path, three_point_series, ramp_series):
    curves = {
        'three.csv': AnalyzedCurve(three_point_series, UNSMOOTHED),
        'ramp data.csv': AnalyzedCurve(ramp_series, RAMP_PARAMS),
    }
    out = save_outputs(curves, UNSMOOTHED, HistogramRange(), str(tmp_path / 'out'), plots=True, make_zip=True)

    params = json.loads((tmp_path / 'out' / 'parameters.json').read_text())
    assert params == {'amplitude': 40, 'range': 100, 'smoothing_window': 0, 'lookahead': 0}

    hist_lines = (tmp_path / 'out' / 'histogram.csv').read_text().splitlines()
    assert len(hist_lines) == 40
    assert hist_lines[5] == "350, 1"

    assert set(out['curves']) == {'three.csv', 'ramp data.csv'}
    assert out['curves']['ramp data.csv'].endswith('ramp_data.csv')
    assert set(out['plots']) == {'three.csv', 'ramp data.csv'}
    for path in list(out['plots'].values()) + out['histogram_plots']:
        assert Path(path).is_file()

    with zipfile.ZipFile(out['zip']) as zf:
        names = set(zf.namelist())
    assert {'parameters.json', 'histogram.csv', 'three.csv', 'ramp_data.csv',
            'Histogram_H.png', 'Histogram_V.png', 'three.csv.png', 'ramp_data.csv.png'} <= names


def test_save_outputs_without_plots(tmp_path, three_point_series):
    curves = {'three.csv': AnalyzedCurve(three_point_series, UNSMOOTHED)}
    out = save_outputs(curves, UNSMOOTHED, HistogramRange(), str(tmp_path), plots=False)
    assert out['plots'] == {} and out['histogram_plots'] == []
    assert out['zip'] is None
    assert not list(tmp_path.glob('*.png'))
    assert (tmp_path / 'three.csv').read_text().startswith("\n300.")


def test_save_outputs_keeps_every_curve_file(tmp_path, three_point_series, ramp_series):
    curves = {
        'a b.csv': AnalyzedCurve(three_point_series, UNSMOOTHED),
        'a_b.csv': AnalyzedCurve(ramp_series, RAMP_PARAMS),
        'histogram.csv': AnalyzedCurve(three_point_series, UNSMOOTHED),
        'Histogram_H': AnalyzedCurve(ramp_series, RAMP_PARAMS),
    }
    out = save_outputs(curves, UNSMOOTHED, HistogramRange(), str(tmp_path), plots=True)

    assert {name: Path(path).name for name, path in out['curves'].items()} == {
        'a b.csv': 'a_b.csv',
        'a_b.csv': 'a_b_2.csv',
        'histogram.csv': 'histogram_2.csv',
        'Histogram_H': 'Histogram_H_2',
    }
    assert Path(out['plots']['Histogram_H']).name == 'Histogram_H_2.png'
    assert (tmp_path / 'a_b_2.csv').read_text().startswith("\n300.00000000000000000000,5.0")
    assert (tmp_path / 'histogram.csv').read_text().splitlines()[5] == "350, 2"
    assert len(list(tmp_path.glob('*.png'))) == 6


def test_save_outputs_writes_given_counts(tmp_path, three_point_series):
    curves = {'three.csv': AnalyzedCurve(three_point_series, UNSMOOTHED)}
    counts = np.arange(4)
    save_outputs(curves, UNSMOOTHED, HistogramRange(300, 340, 10), str(tmp_path), plots=False, counts=counts)
    assert (tmp_path / 'histogram.csv').read_text() == "300, 0\n310, 1\n320, 2\n330, 3\n"

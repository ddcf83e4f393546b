import numpy as np
import pytest

from reflectance_analysis.analyzer import AnalyzedCurve, Curve, DetectionParameters
from reflectance_analysis.core.smoothing import SmoothingMethod
from reflectance_analysis.curve import CurveSeries


def _random_series(n=400, seed=0):
    rng = np.random.default_rng(seed)
    wl = np.linspace(300.0, 700.0, n)
    refl = np.clip(50.0 + np.cumsum(rng.normal(0.0, 2.0, size=n)), 0.0, 100.0)
    return CurveSeries(wl, refl)


def test_three_point_example(three_point_series):
    params = DetectionParameters(amplitude=40, range=100, smoothing_window=0, lookahead=0)
    curve = AnalyzedCurve(three_point_series, params)
    assert list(curve.smoothed) == [0.0, 50.0, 100.0]
    assert curve.monotonic_change.all()
    assert list(curve.wavelength[curve.marker_point]) == [350.0]
    point = curve[1]
    assert point.wavelength == 350.0 and point.marker_point and point.monotonic_change


def test_step_marker_on_ramp(ramp_series):
    params = DetectionParameters(amplitude=20, range=50, smoothing_window=0, lookahead=5)
    curve = AnalyzedCurve(ramp_series, params)
    assert [s.begin for s in curve.segments] == [0]
    assert list(curve.wavelength[curve.marker_indices()]) == [555.0]
    # the lookahead tail is never part of a segment
    assert not curve.monotonic_change[-5:].any()
    assert curve.monotonic_change[:-5].all()


def test_direct_smoothing_gives_same_markers(ramp_series):
    params = DetectionParameters(amplitude=20, range=50, smoothing_window=0, lookahead=5)
    sliding = AnalyzedCurve(ramp_series, params, SmoothingMethod.SLIDING)
    direct = AnalyzedCurve(ramp_series, params, 'direct')
    assert np.array_equal(sliding.marker_point, direct.marker_point)


def test_markers_follow_marked_segments():
    params = DetectionParameters(amplitude=10, range=30, smoothing_window=3, lookahead=2)
    for seed in range(5):
        curve = AnalyzedCurve(_random_series(seed=seed), params)
        in_marked = np.zeros(len(curve), dtype=bool)
        for segment in curve.marked_segments():
            idx = list(segment.indices())
            assert curve.marker_point[idx].sum() == 1
            in_marked[idx] = True
        assert np.array_equal(in_marked, curve.monotonic_change)
        assert not curve.marker_point[~in_marked].any()
        for segment in curve.segments:
            if abs(curve.smoothed[segment.end] - curve.smoothed[segment.begin]) < params.amplitude:
                assert not curve.monotonic_change[segment.begin]


def test_reanalyze_is_idempotent():
    series = _random_series(seed=7)
    params = DetectionParameters(amplitude=10, range=30, smoothing_window=3, lookahead=2)
    curve = AnalyzedCurve(series, params)
    markers = curve.marker_point.copy()
    change = curve.monotonic_change.copy()
    curve.reanalyze(params)
    curve.reanalyze(params)
    assert np.array_equal(curve.marker_point, markers)
    assert np.array_equal(curve.monotonic_change, change)


def test_reanalyze_keeps_smoothing_when_window_unchanged(ramp_series):
    params = DetectionParameters(amplitude=20, range=50, smoothing_window=0, lookahead=5)
    curve = AnalyzedCurve(ramp_series, params)
    smoothed, change, marker = curve.smoothed, curve.monotonic_change, curve.marker_point

    curve.reanalyze(DetectionParameters(amplitude=90, range=50, smoothing_window=0, lookahead=5))
    assert curve.smoothed is smoothed
    assert curve.monotonic_change is change and curve.marker_point is marker
    assert not marker.any() and not change.any()

    curve.reanalyze(params)
    assert list(curve.wavelength[curve.marker_point]) == [555.0]


def test_reanalyze_resmooths_on_window_change(ramp_series):
    params = DetectionParameters(amplitude=20, range=50, smoothing_window=0, lookahead=5)
    curve = AnalyzedCurve(ramp_series, params)
    before = curve.smoothed

    new_params = DetectionParameters(amplitude=20, range=50, smoothing_window=2, lookahead=5)
    curve.reanalyze(new_params)
    assert curve.smoothed is not before
    assert np.all(curve.smoothed[:2] == 0.0)
    fresh = AnalyzedCurve(ramp_series, new_params)
    assert np.array_equal(curve.smoothed, fresh.smoothed)
    assert np.array_equal(curve.marker_point, fresh.marker_point)

    curve.reanalyze(new_params, 'direct')
    assert curve.smoothing_method is SmoothingMethod.DIRECT


def test_curve_shorter_than_windows():
    curve = AnalyzedCurve(CurveSeries([400.0, 401.0, 402.0], [10.0, 50.0, 90.0]), DetectionParameters())
    assert list(curve.smoothed) == [0.0, 0.0, 0.0]
    assert curve.segments == []
    assert not curve.marker_point.any()


def test_parameter_validation():
    assert DetectionParameters().validate() == DetectionParameters()
    for bad in (
        DetectionParameters(amplitude=0),
        DetectionParameters(amplitude=120),
        DetectionParameters(range=0),
        DetectionParameters(smoothing_window=-1),
        DetectionParameters(lookahead=-2),
    ):
        assert bad.errors()
        with pytest.raises(ValueError):
            bad.validate()
    with pytest.raises(ValueError):
        AnalyzedCurve(CurveSeries([1.0], [1.0]), DetectionParameters(range=-5))


def test_parameters_from_config():
    params = DetectionParameters.from_config({'analysis': {'amplitude': 15, 'lookahead': 3}})
    assert params.amplitude == 15.0
    assert params.lookahead == 3
    assert params.range == 50.0
    assert params.to_dict() == {'amplitude': 15.0, 'range': 50.0, 'smoothing_window': 10, 'lookahead': 3}


def test_curve_wrapper(three_point_series):
    curve = Curve('a.csv', three_point_series)
    assert curve.result is None
    assert 'not analysed' in repr(curve)
    params = DetectionParameters(amplitude=40, range=100, smoothing_window=0, lookahead=0)
    result = curve.analyse(params)
    assert curve.result is result
    # 50 points over 50 nm is too shallow for a 10 nm range
    assert curve.analyse(DetectionParameters(amplitude=40, range=10, smoothing_window=0, lookahead=0)) is result
    assert not result.marker_point.any()


def test_to_frame(three_point_series):
    params = DetectionParameters(amplitude=40, range=100, smoothing_window=0, lookahead=0)
    df = AnalyzedCurve(three_point_series, params).to_frame()
    assert list(df.columns) == ['wavelength', 'raw', 'smoothed', 'monotonic_change', 'marker_point']
    assert df['marker_point'].sum() == 1


def test_window_sizes_must_be_integers():
    assert DetectionParameters(smoothing_window=1.0).errors()
    assert DetectionParameters(lookahead=2.0).errors()
    assert DetectionParameters(lookahead=True).errors()
    assert DetectionParameters(smoothing_window=np.int64(3), lookahead=np.int32(1)).errors() == []
    with pytest.raises(ValueError):
        AnalyzedCurve(CurveSeries([300.0, 350.0], [0.0, 50.0]),
                      DetectionParameters(amplitude=40, range=100, smoothing_window=1.0, lookahead=0))

import numpy as np
import pytest

from reflectance_analysis.curve import CurveSeries


def build_ramp_series(step_start=530.0, step_end=580.0, low=5.0, high=80.0):
    """1 nm grid over [250, 750] with a linear step between step_start and step_end.

    Values are multiples of 0.5 so that every window sum is exact in floating point.
    """
    wl = np.arange(250.0, 751.0, 1.0)
    slope = (high - low) / (step_end - step_start)
    refl = np.clip(low + slope * (wl - step_start), low, high)
    return CurveSeries(wl, refl)


def build_three_point_series():
    return CurveSeries([300.0, 350.0, 400.0], [0.0, 50.0, 100.0])


@pytest.fixture
def ramp_series():
    return build_ramp_series()


@pytest.fixture
def three_point_series():
    return build_three_point_series()

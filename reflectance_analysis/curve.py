"""
Raw reflectance curve container.
"""
from dataclasses import dataclass
from typing import Iterator, Sequence, Union

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class Sample:
    """One (wavelength, reflectance) measurement."""
    wavelength: float
    reflectance: float


class CurveSeries:
    """Ordered, fixed length sequence of samples.

    Index order is the order of the input records. Wavelengths are expected to
    be non-decreasing but this is not enforced: every algorithm working on the
    series addresses points by index only.
    """

    def __init__(self, wavelength: Union[Sequence[float], np.ndarray],
                 reflectance: Union[Sequence[float], np.ndarray]):
        wl = np.array(wavelength, dtype=float)
        refl = np.array(reflectance, dtype=float)
        if wl.ndim != 1 or refl.ndim != 1:
            raise ValueError("wavelength and reflectance must be one dimensional")
        if wl.shape != refl.shape:
            raise ValueError(
                f"wavelength and reflectance lengths differ: {wl.size} != {refl.size}"
            )
        wl.flags.writeable = False
        refl.flags.writeable = False
        self._wavelength = wl
        self._reflectance = refl

    @classmethod
    def from_samples(cls, samples: Sequence[Sample]) -> "CurveSeries":
        return cls([s.wavelength for s in samples], [s.reflectance for s in samples])

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "CurveSeries":
        """Build a series from a DataFrame with 'wavelength' and 'reflectance' columns."""
        missing = {'wavelength', 'reflectance'} - set(df.columns)
        if missing:
            raise ValueError(f"Missing columns: {sorted(missing)}")
        return cls(df['wavelength'].to_numpy(), df['reflectance'].to_numpy())

    @property
    def wavelength(self) -> np.ndarray:
        """Read-only view of the wavelengths."""
        return self._wavelength

    @property
    def reflectance(self) -> np.ndarray:
        """Read-only view of the reflectances."""
        return self._reflectance

    def __len__(self) -> int:
        return int(self._wavelength.size)

    def __getitem__(self, idx: int) -> Sample:
        return Sample(float(self._wavelength[idx]), float(self._reflectance[idx]))

    def __iter__(self) -> Iterator[Sample]:
        for idx in range(len(self)):
            yield self[idx]

    def __repr__(self) -> str:
        if len(self) == 0:
            return "CurveSeries(empty)"
        return (f"CurveSeries(n={len(self)}, "
                f"wavelength={self._wavelength[0]:g}..{self._wavelength[-1]:g})")

    def is_sorted(self) -> bool:
        """True when the wavelengths are non-decreasing."""
        return bool(np.all(np.diff(self._wavelength) >= 0))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            'wavelength': self._wavelength.copy(),
            'reflectance': self._reflectance.copy(),
        })

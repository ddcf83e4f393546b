"""Lookahead based monotonicity segmentation of a smoothed curve."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

import numpy as np


class SlopeDirection(Enum):
    RISING = 'rising'
    FALLING = 'falling'


@dataclass(frozen=True)
class Segment:
    """Inclusive index range [begin, end] sharing one slope direction."""
    begin: int
    end: int
    direction: SlopeDirection

    def __len__(self) -> int:
        return self.end - self.begin + 1

    def indices(self) -> range:
        return range(self.begin, self.end + 1)


def iter_segments(reflectance: np.ndarray, lookahead: int) -> Iterator[Segment]:
    """Split [0, N - lookahead) into contiguous segments of constant slope direction.

    The direction at a point compares its value with the mean of the window
    [idx, idx + lookahead]: a point above that mean starts falling, anything
    else (ties included) is rising. A segment closes at the first point whose
    direction differs from the running one, that point included, or at the last
    point with a full lookahead window. The next segment begins right after; its
    first point is not evaluated and the running direction becomes the one
    just computed.

    The lookahead sum is kept incrementally across the whole scan. Points with
    index >= N - lookahead are never part of a segment.
    """
    if lookahead < 0:
        raise ValueError(f"lookahead must be >= 0, got {lookahead}")

    values = np.asarray(reflectance, dtype=float)
    length = values.size
    la_size = lookahead + 1
    stop = length - lookahead
    if stop <= 0:
        return

    # Window [0, lookahead]; the first step below slides it to [1, lookahead + 1]
    la_sum = 0.0
    for idx in range(la_size):
        la_sum += float(values[idx])

    begin = 0
    direction = SlopeDirection.RISING
    slope_end = 1
    while slope_end < stop:
        la_sum = la_sum - float(values[slope_end - 1]) + float(values[slope_end + lookahead])
        average = la_sum / la_size

        end_dir = SlopeDirection.FALLING if float(values[slope_end]) > average else SlopeDirection.RISING
        is_last = slope_end == stop - 1

        if end_dir is not direction or is_last:
            yield Segment(begin, slope_end, direction)
            if is_last:
                return
            begin = slope_end + 1
            direction = end_dir
            # Skip the new segment's first point, keeping the window in sync
            slope_end += 1
            la_sum = la_sum - float(values[slope_end - 1]) + float(values[slope_end + lookahead])
        slope_end += 1

    # A new segment opened on the last evaluable point cannot be closed
    if begin < stop:
        yield Segment(begin, stop - 1, direction)

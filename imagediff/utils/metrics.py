"""Pointwise error metrics between luminance buffers.

Provides:
    - MSE / RMSE: Mean (root mean) squared error
    - Max absolute difference: location and magnitude of the worst pixel
    - Absolute difference buffer: per-pixel |a - b|

Used by:
    - pipeline.compare: RMSE reporting and diff image generation
    - Tests: reference-vs-candidate checks

All metrics operate on 1-D numpy buffers of equal, non-zero length
(row-major luminance, see imaging.luminance). Inputs are never modified;
returned buffers are freshly allocated and read-only.

Reproducibility:
    Sums use math.fsum, which is correctly rounded and independent of
    summation order. Identical inputs give bit-identical results on every
    platform.
"""

import math
from typing import NamedTuple, Tuple

import numpy as np


class MaxDiffResult(NamedTuple):
    """Flat index and magnitude of the largest absolute difference."""
    index: int
    value: float

    def position(self, width: int) -> Tuple[int, int]:
        """Return (x, y) of ``index`` in a row-major image of given width."""
        if width <= 0:
            raise ValueError(f"width must be positive, got {width}")
        return self.index % width, self.index // width


def _check_pair(a, b) -> Tuple[np.ndarray, np.ndarray]:
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    if a.shape != b.shape:
        raise ValueError(
            f"Buffer length mismatch: {a.size} vs {b.size}"
        )
    if a.size == 0:
        raise ValueError("Metrics are undefined for empty buffers")
    return a, b


def mse(a, b) -> float:
    """Compute Mean Squared Error between two buffers.

    Parameters
    ----------
    a : array_like
        First buffer, 1-D (or flattened), float
    b : array_like
        Second buffer, same length as a

    Returns
    -------
    float
        (1/n) * sum((a[i] - b[i])^2)

    Raises
    ------
    ValueError
        If lengths differ or buffers are empty
    """
    a, b = _check_pair(a, b)
    d = a - b
    return math.fsum(d * d) / d.size


def rmse(a, b) -> float:
    """Compute Root Mean Squared Error between two buffers.

    Parameters
    ----------
    a : array_like
        First buffer, 1-D (or flattened), float
    b : array_like
        Second buffer, same length as a

    Returns
    -------
    float
        sqrt((1/n) * sum((a[i] - b[i])^2)), 0.0 for identical buffers

    Notes
    -----
    Symmetric in its arguments. For buffers that differ by a constant k
    in every element the result is |k| up to rounding of k^2.

    Examples
    --------
    >>> rmse([0.0, 0.0], [0.1, 0.1])
    0.1
    """
    return math.sqrt(mse(a, b))


def max_abs_diff(a, b) -> MaxDiffResult:
    """Locate the largest absolute difference.

    Parameters
    ----------
    a : array_like
        First buffer
    b : array_like
        Second buffer, same length as a

    Returns
    -------
    MaxDiffResult
        (index, value); on ties the lowest index wins
    """
    a, b = _check_pair(a, b)
    d = np.abs(a - b)
    # argmax returns the first occurrence of the maximum
    idx = int(np.argmax(d))
    return MaxDiffResult(idx, float(d[idx]))


def abs_diff(a, b) -> np.ndarray:
    """Compute elementwise absolute difference |a[i] - b[i]|.

    Returns
    -------
    np.ndarray
        Read-only float64 buffer, same length and order as the inputs
    """
    a, b = _check_pair(a, b)
    d = np.abs(a - b)
    d.setflags(write=False)
    return d

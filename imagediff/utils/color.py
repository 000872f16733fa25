"""Luminance weights for linear RGB.

Provides:
    - LUMA_WEIGHTS: Rec. 709 derived (R, G, B) weights
    - luminance(): Weighted channel sum over an (..., 3+) array

All conversions operate on numpy arrays with channels in the last axis,
ordered R, G, B (, A). Alpha is never read.

Invariants:
    - Weights sum to 1.0, so a neutral pixel (v, v, v) has luminance v
    - Computation happens in float64 regardless of input dtype
"""

import numpy as np


# Y = 0.212671 R + 0.715160 G + 0.072169 B
LUMA_WEIGHTS = (0.212671, 0.715160, 0.072169)


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Calculate luminance from linear RGB(A).

    Parameters
    ----------
    rgb : np.ndarray
        Linear RGB or RGBA samples, shape (..., C) with C >= 3

    Returns
    -------
    np.ndarray
        Luminance, shape (...), dtype float64

    Raises
    ------
    ValueError
        If the last axis has fewer than 3 channels
    """
    rgb = np.asarray(rgb)
    if rgb.ndim == 0 or rgb.shape[-1] < 3:
        raise ValueError(f"Expected shape (..., 3) or (..., 4), got {rgb.shape}")

    r = rgb[..., 0].astype(np.float64)
    g = rgb[..., 1].astype(np.float64)
    b = rgb[..., 2].astype(np.float64)
    wr, wg, wb = LUMA_WEIGHTS
    return wr * r + wg * g + wb * b

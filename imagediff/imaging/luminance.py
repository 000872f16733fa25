"""Luminance extraction from decoded float images, and the reverse.

Provides:
    - LuminanceImage: read-only float64 luminance buffer with its size
    - extract_luminance(): PixelGrid (RGBF / RGBAF) → LuminanceImage
    - scalar_image(): scalar-per-pixel buffer → RGBA PixelGrid (R=G=B=value)

Buffer layout:
    values[y * width + x] is the pixel at row y (counted from the top) and
    column x, whatever the scanline orientation of the source grid.

Both functions are pure: no logging, no file access. The pipeline layer
does the reporting.
"""

from dataclasses import dataclass

import numpy as np

from imagediff.imaging.codec import PixelGrid
from imagediff.imaging.errors import CorruptSample, PixelTypeUnsupported
from imagediff.utils import color


@dataclass(frozen=True)
class LuminanceImage:
    """Row-major luminance of one image."""
    width: int
    height: int
    values: np.ndarray

    def __len__(self) -> int:
        return self.values.size

    @property
    def shape(self):
        return (self.height, self.width)

    def as_2d(self) -> np.ndarray:
        """Read-only (height, width) view of the buffer."""
        return self.values.reshape(self.height, self.width)


def extract_luminance(grid: PixelGrid) -> LuminanceImage:
    """Convert an RGB(A) float32 grid to a luminance buffer.

    Parameters
    ----------
    grid : PixelGrid
        3-channel (RGBF) or 4-channel (RGBAF) 32-bit float grid

    Returns
    -------
    LuminanceImage
        width * height float64 values, top-to-bottom scan order.
        Y = 0.212671 R + 0.715160 G + 0.072169 B, alpha ignored.

    Raises
    ------
    PixelTypeUnsupported
        If the grid is not 3- or 4-channel float32
    CorruptSample
        If any R, G or B sample is NaN or infinite
    """
    if grid.samples.dtype != np.float32 or grid.channels not in (3, 4):
        raise PixelTypeUnsupported(
            f"Type of the image is {grid.image_type}, only RGBF and RGBAF are supported"
        )

    rgb = grid.top_down()[:, :, :3]

    finite = np.isfinite(rgb).all(axis=2)
    if not finite.all():
        y, x = np.argwhere(~finite)[0]
        raise CorruptSample(
            f"Non-finite sample {rgb[y, x].tolist()} at pixel (x={x}, y={y})"
        )

    values = color.luminance(rgb).reshape(-1)
    values.setflags(write=False)
    assert values.size == grid.width * grid.height
    return LuminanceImage(grid.width, grid.height, values)


def scalar_image(buffer, width: int, height: int, alpha: float = 1.0) -> PixelGrid:
    """Build an RGBA float32 grid from one scalar per pixel.

    Parameters
    ----------
    buffer : array_like
        width * height values in row-major, top-to-bottom order
    width, height : int
        Image size
    alpha : float
        Constant alpha channel value, default 1.0

    Returns
    -------
    PixelGrid
        4-channel float32 grid with R = G = B = buffer value

    Raises
    ------
    ValueError
        If the buffer length is not width * height
    """
    buf = np.asarray(buffer, dtype=np.float64).ravel()
    if buf.size != width * height:
        raise ValueError(
            f"Buffer has {buf.size} values, expected {width}x{height} = {width * height}"
        )

    samples = np.empty((height, width, 4), dtype=np.float32)
    samples[:, :, :3] = buf.reshape(height, width, 1)
    samples[:, :, 3] = alpha
    return PixelGrid(width, height, 4, samples)

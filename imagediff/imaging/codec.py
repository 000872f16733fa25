"""Floating-point image codec adapter (Radiance HDR / OpenEXR via OpenCV).

Provides:
    - ImageFormat / detect_format(): extension-based eligibility check
    - PixelGrid: decoded float image (H, W, C), channels ordered R, G, B (, A)
    - decode_image(): file → PixelGrid
    - open_image(): scoped decoded-image handle (context manager)
    - encode_image(): PixelGrid → 32-bit float OpenEXR

OpenCV stores channels as B, G, R (, A); the adapter swaps to R, G, B (, A)
on decode and back on encode so that nothing above this module ever sees
BGR order.

Scanline orientation:
    OpenCV returns rows top-down, so decoded grids carry bottom_up=False.
    Grids built elsewhere may set bottom_up=True; encode_image() and the
    luminance extractor flip such grids before use.

OpenEXR support in OpenCV is opt-in; OPENCV_IO_ENABLE_OPENEXR is set
before cv2 is imported.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import numpy as np

os.environ.setdefault("OPENCV_IO_ENABLE_OPENEXR", "1")
import cv2  # noqa: E402

from imagediff.imaging.errors import (  # noqa: E402
    DecodeFailure,
    EncodeFailure,
    FormatUnsupported,
    PixelTypeUnsupported,
)
from imagediff.utils import fs  # noqa: E402

logger = logging.getLogger(__name__)


class ImageFormat(Enum):
    """Containers accepted for luminance comparison."""
    HDR = "hdr"
    EXR = "exr"


_EXTENSIONS = {
    "hdr": ImageFormat.HDR,
    "exr": ImageFormat.EXR,
}


def detect_format(path: Union[str, Path]) -> ImageFormat:
    """Map a file extension (case-insensitive) to an ImageFormat.

    Raises
    ------
    FormatUnsupported
        If the extension is neither .hdr nor .exr. The file is not opened.
    """
    ext = Path(path).suffix.lower().lstrip('.')
    try:
        return _EXTENSIONS[ext]
    except KeyError:
        raise FormatUnsupported(
            f"{path}: format is neither HDR nor EXR, not supported for RMSE computation"
        ) from None


@dataclass(frozen=True)
class PixelGrid:
    """Decoded floating-point image.

    ``samples`` has shape (height, width, channels). Row 0 is the top row
    unless ``bottom_up`` is set, in which case row 0 is the bottom row.
    """
    width: int
    height: int
    channels: int
    samples: np.ndarray
    image_type: str = ""
    bits_per_pixel: int = 0
    bottom_up: bool = False

    def __post_init__(self):
        expected = (self.height, self.width, self.channels)
        if self.samples.shape != expected:
            raise ValueError(
                f"Sample array shape {self.samples.shape} does not match "
                f"(height, width, channels) = {expected}"
            )
        if not self.image_type:
            object.__setattr__(self, 'image_type', _image_type(self.samples))
        if not self.bits_per_pixel:
            object.__setattr__(
                self, 'bits_per_pixel', self.samples.dtype.itemsize * 8 * self.channels
            )

    def top_down(self) -> np.ndarray:
        """Samples with row 0 at the top (a view, never a copy)."""
        return self.samples[::-1] if self.bottom_up else self.samples


def _image_type(samples: np.ndarray) -> str:
    """FreeImage-style type label: RGBF, RGBAF, FLOAT, or dtype x channels."""
    channels = samples.shape[2]
    if samples.dtype == np.float32:
        label = {1: "FLOAT", 3: "RGBF", 4: "RGBAF"}.get(channels)
        if label:
            return label
    return f"{samples.dtype.name}x{channels}"


def decode_image(path: Union[str, Path]) -> PixelGrid:
    """Decode an HDR/EXR file into a PixelGrid.

    Parameters
    ----------
    path : Union[str, Path]
        Image path

    Returns
    -------
    PixelGrid
        Top-down grid, channels R, G, B (, A), dtype as stored by the codec

    Raises
    ------
    DecodeFailure
        If the file is missing or OpenCV cannot decode it
    """
    path = Path(path)
    if not path.is_file():
        raise DecodeFailure(f"{path}: file not found")

    img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise DecodeFailure(f"{path}: codec could not decode image")

    if img.ndim == 2:
        img = img[:, :, np.newaxis]

    channels = img.shape[2]
    if channels == 3:
        img = img[:, :, [2, 1, 0]]
    elif channels == 4:
        img = img[:, :, [2, 1, 0, 3]]

    height, width = img.shape[:2]
    logger.debug(f"Decoded {path}: {width}x{height}x{channels} {img.dtype}")
    return PixelGrid(width, height, channels, np.ascontiguousarray(img))


class DecodedImage:
    """Scoped handle on a decoded image.

    The pixel data is dropped on close(); use as a context manager so the
    release happens on every exit path.

    Examples
    --------
    >>> with open_image("ref.exr") as handle:
    ...     lum = extract_luminance(handle.grid)
    """

    def __init__(self, path: Path, grid: PixelGrid):
        self.path = path
        self._grid: Optional[PixelGrid] = grid

    @property
    def closed(self) -> bool:
        return self._grid is None

    @property
    def grid(self) -> PixelGrid:
        if self._grid is None:
            raise ValueError(f"Image handle for {self.path} is closed")
        return self._grid

    def close(self) -> None:
        self._grid = None

    def __enter__(self) -> "DecodedImage":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_image(path: Union[str, Path]) -> DecodedImage:
    """Check the extension, decode, and wrap the result in a handle.

    Raises
    ------
    FormatUnsupported
        If the extension is not HDR/EXR (nothing is decoded)
    DecodeFailure
        If decoding fails
    """
    path = Path(path)
    detect_format(path)
    return DecodedImage(path, decode_image(path))


def encode_image(grid: PixelGrid, path: Union[str, Path]) -> Path:
    """Write a PixelGrid as a 32-bit float OpenEXR file (atomically).

    Parameters
    ----------
    grid : PixelGrid
        1-, 3- or 4-channel float32 grid (R, G, B (, A) order)
    path : Union[str, Path]
        Target path; must end in .exr

    Returns
    -------
    Path
        Written file path

    Raises
    ------
    FormatUnsupported
        If the target is not an .exr path
    PixelTypeUnsupported
        If the grid is not float32 with 1, 3 or 4 channels
    EncodeFailure
        If OpenCV fails to write the file
    """
    path = Path(path)
    if detect_format(path) is not ImageFormat.EXR:
        raise FormatUnsupported(f"{path}: only OpenEXR output is supported")
    if grid.samples.dtype != np.float32 or grid.channels not in (1, 3, 4):
        raise PixelTypeUnsupported(
            f"Cannot encode {grid.image_type} grid; expected 1, 3 or 4 float32 channels"
        )

    img = grid.top_down()
    if grid.channels == 3:
        img = img[:, :, [2, 1, 0]]
    elif grid.channels == 4:
        img = img[:, :, [2, 1, 0, 3]]
    img = np.ascontiguousarray(img)

    params = [cv2.IMWRITE_EXR_TYPE, cv2.IMWRITE_EXR_TYPE_FLOAT]
    try:
        fs.atomic_write_via(path, lambda tmp: cv2.imwrite(str(tmp), img, params))
    except RuntimeError as e:
        raise EncodeFailure(f"{path}: {e}") from e

    logger.debug(f"Encoded {path}: {grid.width}x{grid.height}x{grid.channels}")
    return path

"""Image decoding/encoding and luminance conversion.

Depends only on imagediff.utils.
"""

from imagediff.imaging.codec import (
    DecodedImage,
    ImageFormat,
    PixelGrid,
    decode_image,
    detect_format,
    encode_image,
    open_image,
)
from imagediff.imaging.errors import (
    ComparisonUnavailable,
    CorruptSample,
    DecodeFailure,
    DimensionMismatch,
    EncodeFailure,
    FormatUnsupported,
    ImageDiffError,
    PixelTypeUnsupported,
)
from imagediff.imaging.luminance import LuminanceImage, extract_luminance, scalar_image

__all__ = [
    "ComparisonUnavailable",
    "CorruptSample",
    "DecodeFailure",
    "DecodedImage",
    "DimensionMismatch",
    "EncodeFailure",
    "FormatUnsupported",
    "ImageDiffError",
    "ImageFormat",
    "LuminanceImage",
    "PixelGrid",
    "PixelTypeUnsupported",
    "decode_image",
    "detect_format",
    "encode_image",
    "extract_luminance",
    "open_image",
    "scalar_image",
]

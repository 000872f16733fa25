"""Exception hierarchy for image loading and comparison.

Recoverable (the loader logs them and returns no luminance):
    FormatUnsupported, PixelTypeUnsupported

Fatal (propagate to the caller and stop the run):
    DecodeFailure, CorruptSample, EncodeFailure, DimensionMismatch,
    ComparisonUnavailable
"""


class ImageDiffError(Exception):
    """Base class for all imagediff errors."""


class FormatUnsupported(ImageDiffError):
    """File extension is neither Radiance HDR nor OpenEXR."""


class DecodeFailure(ImageDiffError):
    """The codec could not produce an image from the file."""


class EncodeFailure(ImageDiffError):
    """The codec could not write the image."""


class PixelTypeUnsupported(ImageDiffError):
    """Decoded grid is not 3- or 4-channel 32-bit float."""


class CorruptSample(ImageDiffError):
    """A colour sample is NaN or infinite."""


class DimensionMismatch(ImageDiffError):
    """Two images that must be compared have different sizes."""


class ComparisonUnavailable(ImageDiffError):
    """A required image produced no luminance, so nothing can be compared."""

"""imagediff: luminance RMSE comparison for HDR/OpenEXR renders.

Compares two candidate floating-point images against a reference image and
reports the root-mean-square error of their luminance channels, optionally
writing per-pixel absolute-difference images.

Architecture layers (strict one-way dependency):
    imagediff/scripts/ → imagediff/pipeline/ → imagediff/imaging/ → imagediff/utils/

Key invariants:
    - Luminance buffers are float64, row-major, top-to-bottom scan order
    - Metric functions are pure and bit-reproducible
    - Only the pipeline layer reports (through an injected logger)
    - Diff images are always written as 32-bit float OpenEXR
"""

__version__ = "1.0.0"

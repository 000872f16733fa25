"""Comparison pipeline: image loading, RMSE reporting, diff image output."""

from imagediff.pipeline.compare import (
    PairResult,
    ThreeWayReport,
    compare_three,
    compare_two,
    load_luminance,
    write_report,
)

__all__ = [
    "PairResult",
    "ThreeWayReport",
    "compare_three",
    "compare_two",
    "load_luminance",
    "write_report",
]

"""Luminance RMSE comparison of candidate renders against a reference.

Runs the comparison pipeline:
    1. Check each file's extension (Radiance HDR / OpenEXR only)
    2. Decode inside a scoped handle and extract luminance
    3. Compute RMSE of each candidate against the reference
    4. Optionally locate the worst pixel and write |candidate - reference|
       as a 32-bit float RGBA OpenEXR image (R=G=B=diff, A=alpha)
    5. Optionally persist a YAML report with input hashes

Public API:
    - compare_three(candidate1, candidate2, reference, emit_diff=False) → ThreeWayReport
    - compare_two(image1, image2) → float
    - load_luminance(path) → LuminanceImage | None
    - write_report(report, path)

Partial failure:
    An image whose format or pixel type is unsupported yields no luminance.
    Each comparison that needs such an image is skipped and reported; the
    others still run. If no comparison is left, ComparisonUnavailable is
    raised. Decode failures, corrupt samples and size mismatches are fatal.

Reporting:
    Everything is reported through the ``log`` argument (defaults to this
    module's logger). RMSE values use 17 significant digits by default,
    enough to round-trip a double.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from imagediff import __version__
from imagediff.imaging.codec import encode_image, open_image
from imagediff.imaging.errors import (
    ComparisonUnavailable,
    DimensionMismatch,
    FormatUnsupported,
    PixelTypeUnsupported,
)
from imagediff.imaging.luminance import LuminanceImage, extract_luminance, scalar_image
from imagediff.utils import fs, hashing, metrics
from imagediff.utils.logging_config import pop_context, push_context

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# max_digits10 for IEEE 754 double
FULL_PRECISION = 17


def format_value(value: float, precision: int = FULL_PRECISION) -> str:
    """Format a float with ``precision`` significant digits."""
    return f"{value:.{precision}g}"


@dataclass
class PairResult:
    """Outcome of one candidate-vs-reference comparison."""
    label: str
    candidate: str
    reference: str
    rmse: Optional[float] = None
    max_diff: Optional[metrics.MaxDiffResult] = None
    max_diff_xy: Optional[Tuple[int, int]] = None
    diff_path: Optional[str] = None
    skipped_reason: Optional[str] = None

    @property
    def computed(self) -> bool:
        return self.rmse is not None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            'label': self.label,
            'candidate': self.candidate,
            'reference': self.reference,
            'rmse': self.rmse,
        }
        if self.max_diff is not None:
            d['max_diff'] = {
                'index': self.max_diff.index,
                'x': self.max_diff_xy[0],
                'y': self.max_diff_xy[1],
                'value': self.max_diff.value,
            }
        if self.diff_path is not None:
            d['diff_image'] = self.diff_path
        if self.skipped_reason is not None:
            d['skipped'] = self.skipped_reason
        return d


@dataclass
class ThreeWayReport:
    """Results of compare_three()."""
    candidate1: str
    candidate2: str
    reference: str
    pairs: List[PairResult] = field(default_factory=list)

    @property
    def rmse1(self) -> Optional[float]:
        return self.pairs[0].rmse

    @property
    def rmse2(self) -> Optional[float]:
        return self.pairs[1].rmse

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tool': 'imagediff',
            'version': __version__,
            'candidate1': self.candidate1,
            'candidate2': self.candidate2,
            'reference': self.reference,
            'comparisons': [p.to_dict() for p in self.pairs],
        }


def load_luminance(
    path: PathLike,
    log: Optional[logging.Logger] = None
) -> Optional[LuminanceImage]:
    """Load an HDR/EXR image and convert it to luminance.

    Parameters
    ----------
    path : PathLike
        Image path
    log : logging.Logger, optional
        Reporting channel, defaults to the module logger

    Returns
    -------
    Optional[LuminanceImage]
        None if the format or pixel type is unsupported (logged as error)

    Raises
    ------
    DecodeFailure
        If the file cannot be decoded
    CorruptSample
        If the image contains NaN or infinite samples
    """
    log = log or logger
    push_context(image=Path(path).name)
    try:
        try:
            handle = open_image(path)
        except FormatUnsupported as e:
            log.error(str(e))
            return None

        with handle:
            grid = handle.grid
            log.info(
                f"Image: {path} is size: {grid.width}x{grid.height} "
                f"with {grid.bits_per_pixel} bits per pixel."
            )
            log.info(f"Image Type: {grid.image_type}")
            log.info(f"Image components: {grid.channels}")
            try:
                return extract_luminance(grid)
            except PixelTypeUnsupported as e:
                log.error(f"{path}: {e}")
                return None
    finally:
        pop_context(keys=["image"])


def _require_same_size(
    lum_a: LuminanceImage,
    lum_b: LuminanceImage,
    path_a: PathLike,
    path_b: PathLike
) -> None:
    if lum_a.shape != lum_b.shape:
        raise DimensionMismatch(
            f"{path_a} is {lum_a.width}x{lum_a.height} but "
            f"{path_b} is {lum_b.width}x{lum_b.height}"
        )


def _emit_diff(
    pair: PairResult,
    lum: LuminanceImage,
    lum_ref: LuminanceImage,
    out_path: Path,
    alpha: float,
    precision: int,
    log: logging.Logger
) -> None:
    """Record the worst pixel of a pair and write its diff image."""
    pair.max_diff = metrics.max_abs_diff(lum.values, lum_ref.values)
    pair.max_diff_xy = pair.max_diff.position(lum.width)
    x, y = pair.max_diff_xy
    log.info(
        f"{pair.label} max difference: {format_value(pair.max_diff.value, precision)} "
        f"at pixel (x={x}, y={y}), index {pair.max_diff.index}"
    )

    diff = metrics.abs_diff(lum.values, lum_ref.values)
    encode_image(scalar_image(diff, lum.width, lum.height, alpha), out_path)
    pair.diff_path = str(out_path)
    log.info(f"{pair.label} diff image written to {out_path}")


def compare_three(
    path_a: PathLike,
    path_b: PathLike,
    path_ref: PathLike,
    emit_diff: bool = False,
    *,
    output_dir: PathLike = ".",
    diff_names: Sequence[str] = ("diff1", "diff2"),
    extension: str = "exr",
    alpha: float = 1.0,
    precision: int = FULL_PRECISION,
    log: Optional[logging.Logger] = None
) -> ThreeWayReport:
    """Compare two candidates against a reference by luminance RMSE.

    Parameters
    ----------
    path_a, path_b : PathLike
        Candidate images
    path_ref : PathLike
        Reference image
    emit_diff : bool
        Also report the max difference and write diff images, default False
    output_dir : PathLike
        Directory for diff images, default current directory
    diff_names : Sequence[str]
        File stems of the two diff images, default ("diff1", "diff2")
    extension : str
        Diff image extension, default "exr"
    alpha : float
        Alpha value of diff images, default 1.0
    precision : int
        Significant digits used when reporting values, default 17
    log : logging.Logger, optional
        Reporting channel, defaults to the module logger

    Returns
    -------
    ThreeWayReport
        One PairResult per candidate; skipped pairs have rmse None

    Raises
    ------
    ComparisonUnavailable
        If neither candidate can be compared with the reference
    DimensionMismatch
        If a candidate and the reference differ in size
    DecodeFailure, CorruptSample, EncodeFailure
        Propagated from loading/writing
    """
    log = log or logger

    lum_a = load_luminance(path_a, log)
    lum_b = load_luminance(path_b, log)
    lum_ref = load_luminance(path_ref, log)

    report = ThreeWayReport(str(path_a), str(path_b), str(path_ref))
    candidates = (
        ("Image1", path_a, lum_a, diff_names[0]),
        ("Image2", path_b, lum_b, diff_names[1]),
    )

    for label, path, lum, stem in candidates:
        pair = PairResult(label, str(path), str(path_ref))
        report.pairs.append(pair)

        missing = [str(p) for p, l in ((path, lum), (path_ref, lum_ref)) if l is None]
        if missing:
            pair.skipped_reason = f"no luminance for {', '.join(missing)}"
            log.warning(f"{label} RMSE skipped: {pair.skipped_reason}")
            continue

        _require_same_size(lum, lum_ref, path, path_ref)
        pair.rmse = metrics.rmse(lum.values, lum_ref.values)

    if not any(p.computed for p in report.pairs):
        raise ComparisonUnavailable(
            f"No comparison possible between {path_a}, {path_b} and reference {path_ref}"
        )

    for pair in report.pairs:
        if pair.computed:
            log.info(f"{pair.label} RMSE: {format_value(pair.rmse, precision)}")

    if emit_diff:
        out_dir = fs.ensure_dir(output_dir)
        for (label, path, lum, stem), pair in zip(candidates, report.pairs):
            if pair.computed:
                _emit_diff(
                    pair, lum, lum_ref, out_dir / f"{stem}.{extension}",
                    alpha, precision, log
                )

    return report


def compare_two(
    path_a: PathLike,
    path_b: PathLike,
    log: Optional[logging.Logger] = None,
    precision: int = FULL_PRECISION
) -> float:
    """Return the luminance RMSE between two HDR/EXR images.

    Raises
    ------
    ComparisonUnavailable
        If either image yields no luminance
    DimensionMismatch
        If the images differ in size
    """
    log = log or logger

    lum_a = load_luminance(path_a, log)
    lum_b = load_luminance(path_b, log)
    missing = [str(p) for p, l in ((path_a, lum_a), (path_b, lum_b)) if l is None]
    if missing:
        raise ComparisonUnavailable(f"No luminance for {', '.join(missing)}")

    _require_same_size(lum_a, lum_b, path_a, path_b)
    value = metrics.rmse(lum_a.values, lum_b.values)
    log.info(f"RMSE: {format_value(value, precision)}")
    return value


def write_report(
    report: ThreeWayReport,
    path: PathLike,
    config: Optional[Dict[str, Any]] = None
) -> Path:
    """Persist a ThreeWayReport as YAML, with SHA-256 of each input file.

    If ``config`` is given, its hash is stored as ``config_sha256``.
    """
    data = report.to_dict()
    inputs = {}
    for key in ('candidate1', 'candidate2', 'reference'):
        p = Path(data[key])
        inputs[key] = hashing.sha256_file(p) if p.is_file() else None
    data['sha256'] = inputs
    if config is not None:
        data['config_sha256'] = hashing.hash_dict(config)

    path = Path(path)
    fs.atomic_yaml_dump(data, path)
    return path

"""End-to-end tests for the comparison pipeline.

Tests for imagediff.pipeline.compare:
    - compare_two(): identical images → exactly 0.0, +0.1 offset → 0.1
    - compare_three(): both RMSE values, full-precision reporting
    - compare_three(emit_diff=True): diff1.exr/diff2.exr contents and max-diff location
    - Partial failure: unsupported inputs skip only the affected comparison
    - Fatal errors: missing file, corrupt sample, size mismatch
    - Decoded image handles released on every path
    - write_report(): YAML with input hashes

Run:
    pytest tests/test_compare.py -v
"""

import logging

import numpy as np
import pytest

from imagediff.imaging import codec
from imagediff.imaging.codec import PixelGrid
from imagediff.imaging.errors import (
    ComparisonUnavailable,
    CorruptSample,
    DecodeFailure,
    DimensionMismatch,
)
from imagediff.pipeline import compare
from imagediff.utils import fs, hashing


def write_exr(path, rgb):
    rgb = np.asarray(rgb, dtype=np.float32)
    h, w, c = rgb.shape
    codec.encode_image(PixelGrid(w, h, c, rgb), path)
    return path


@pytest.fixture
def reference_rgb():
    rng = np.random.default_rng(42)
    return rng.uniform(0.0, 1.0, size=(6, 8, 3)).astype(np.float32)


@pytest.fixture
def images(tmp_path, reference_rgb):
    """Reference, an identical candidate, and a candidate offset by +0.1."""
    ref = write_exr(tmp_path / "ref.exr", reference_rgb)
    same = write_exr(tmp_path / "same.exr", reference_rgb)
    offset = write_exr(tmp_path / "offset.exr", reference_rgb + np.float32(0.1))
    return {"ref": ref, "same": same, "offset": offset}


@pytest.fixture
def unsupported(tmp_path):
    p = tmp_path / "candidate.png"
    p.write_bytes(b"\x89PNG\r\n\x1a\n")
    return p


# ============================================================================
# TWO-WAY
# ============================================================================

def test_compare_two_identical_is_zero(images):
    assert compare.compare_two(images["same"], images["ref"]) == 0.0


def test_compare_two_uniform_offset(images):
    value = compare.compare_two(images["offset"], images["ref"])
    assert value == pytest.approx(0.1, abs=1e-6)


def test_compare_two_symmetric(images):
    assert compare.compare_two(images["offset"], images["ref"]) == \
        compare.compare_two(images["ref"], images["offset"])


def test_compare_two_unsupported_raises(images, unsupported):
    with pytest.raises(ComparisonUnavailable, match="candidate.png"):
        compare.compare_two(unsupported, images["ref"])


def test_compare_two_reports_full_precision(images, caplog):
    caplog.set_level(logging.INFO)
    value = compare.compare_two(images["offset"], images["ref"])
    assert f"RMSE: {value:.17g}" in caplog.text


# ============================================================================
# THREE-WAY
# ============================================================================

def test_compare_three_values(images, tmp_path):
    report = compare.compare_three(images["same"], images["offset"], images["ref"])
    assert report.rmse1 == 0.0
    assert report.rmse2 == pytest.approx(0.1, abs=1e-6)
    assert [p.label for p in report.pairs] == ["Image1", "Image2"]
    # No diff images without emit_diff
    assert not list(tmp_path.glob("diff*.exr"))


def test_compare_three_logs_image_info(images, caplog):
    caplog.set_level(logging.INFO)
    report = compare.compare_three(images["same"], images["offset"], images["ref"])
    assert "is size: 8x6 with 96 bits per pixel" in caplog.text
    assert "Image Type: RGBF" in caplog.text
    assert "Image components: 3" in caplog.text
    assert "Image1 RMSE: 0" in caplog.messages
    assert f"Image2 RMSE: {report.rmse2:.17g}" in caplog.messages


def test_compare_three_injected_logger(images, caplog):
    reporter = logging.getLogger("tests.reporter")
    caplog.set_level(logging.INFO, logger="tests.reporter")
    compare.compare_three(images["same"], images["offset"], images["ref"], log=reporter)
    names = {r.name for r in caplog.records}
    assert "tests.reporter" in names
    assert "imagediff.pipeline.compare" not in names


def test_compare_three_emit_diff(tmp_path, reference_rgb):
    ref = write_exr(tmp_path / "ref.exr", reference_rgb)
    cand = reference_rgb.copy()
    cand[:, :, :] += np.float32(0.1)
    cand[1, 2, :] += np.float32(2.0)  # worst pixel at x=2, y=1
    cand_path = write_exr(tmp_path / "cand.exr", cand)
    out_dir = tmp_path / "out"

    report = compare.compare_three(ref, cand_path, ref, emit_diff=True, output_dir=out_dir)

    assert (out_dir / "diff1.exr").exists()
    assert (out_dir / "diff2.exr").exists()

    pair1, pair2 = report.pairs
    assert pair1.max_diff.value == 0.0
    assert pair1.max_diff.index == 0
    assert pair2.max_diff_xy == (2, 1)
    assert pair2.max_diff.index == 1 * 8 + 2
    assert pair2.max_diff.value == pytest.approx(2.1, abs=1e-5)

    diff2 = codec.decode_image(out_dir / "diff2.exr")
    assert diff2.channels == 4
    assert np.all(diff2.samples[:, :, 3] == 1.0)
    assert np.array_equal(diff2.samples[:, :, 0], diff2.samples[:, :, 1])
    assert np.array_equal(diff2.samples[:, :, 0], diff2.samples[:, :, 2])
    # Row order preserved: worst pixel at row 1 (from the top), column 2
    assert np.unravel_index(np.argmax(diff2.samples[:, :, 0]), (6, 8)) == (1, 2)

    diff1 = codec.decode_image(out_dir / "diff1.exr")
    assert np.all(diff1.samples[:, :, :3] == 0.0)


def test_compare_three_custom_diff_names(images, tmp_path):
    out_dir = tmp_path / "named"
    report = compare.compare_three(
        images["same"], images["offset"], images["ref"],
        emit_diff=True, output_dir=out_dir, diff_names=("a", "b"),
    )
    assert sorted(p.name for p in out_dir.iterdir()) == ["a.exr", "b.exr"]
    assert report.pairs[1].diff_path == str(out_dir / "b.exr")


# ============================================================================
# PARTIAL FAILURE
# ============================================================================

def test_load_luminance_unsupported_logged(unsupported, caplog):
    caplog.set_level(logging.INFO)
    assert compare.load_luminance(unsupported) is None
    assert "neither HDR nor EXR" in caplog.text


def test_unsupported_candidate_skips_only_its_pair(images, unsupported, caplog):
    caplog.set_level(logging.INFO)
    report = compare.compare_three(unsupported, images["offset"], images["ref"])
    assert report.rmse1 is None
    assert "candidate.png" in report.pairs[0].skipped_reason
    assert report.rmse2 == pytest.approx(0.1, abs=1e-6)
    assert "Image1 RMSE skipped" in caplog.text


def test_unsupported_reference_is_unavailable(images, unsupported):
    with pytest.raises(ComparisonUnavailable):
        compare.compare_three(images["same"], images["offset"], unsupported)


def test_single_channel_image_yields_no_luminance(tmp_path, images, caplog):
    caplog.set_level(logging.INFO)
    gray = np.zeros((6, 8, 1), dtype=np.float32)
    path = write_exr(tmp_path / "gray.exr", gray)
    assert compare.load_luminance(path) is None
    assert "only RGBF and RGBAF" in caplog.text


# ============================================================================
# FATAL ERRORS
# ============================================================================

def test_missing_file_is_fatal(images, tmp_path):
    with pytest.raises(DecodeFailure):
        compare.compare_three(tmp_path / "missing.exr", images["offset"], images["ref"])


def test_corrupt_sample_is_fatal(images, tmp_path, reference_rgb):
    bad = reference_rgb.copy()
    bad[3, 4, 1] = np.nan
    bad_path = write_exr(tmp_path / "bad.exr", bad)
    with pytest.raises(CorruptSample, match="x=4, y=3"):
        compare.compare_three(bad_path, images["offset"], images["ref"])


def test_size_mismatch_is_fatal(images, tmp_path):
    small = write_exr(tmp_path / "small.exr", np.zeros((3, 3, 3)))
    with pytest.raises(DimensionMismatch, match="3x3"):
        compare.compare_three(small, images["offset"], images["ref"])


# ============================================================================
# RESOURCE RELEASE
# ============================================================================

def test_handles_released(monkeypatch, images, tmp_path):
    opened = []

    def tracking_open(path):
        handle = codec.open_image(path)
        opened.append(handle)
        return handle

    monkeypatch.setattr(compare, "open_image", tracking_open)

    gray = write_exr(tmp_path / "gray.exr", np.zeros((6, 8, 1)))
    compare.load_luminance(gray)
    compare.compare_three(images["same"], images["offset"], images["ref"])

    assert len(opened) == 4
    assert all(h.closed for h in opened)


# ============================================================================
# REPORT
# ============================================================================

def test_write_report(images, tmp_path, unsupported):
    report = compare.compare_three(unsupported, images["offset"], images["ref"])
    path = compare.write_report(report, tmp_path / "reports" / "run.yaml")

    data = fs.load_yaml(path)
    assert data["tool"] == "imagediff"
    assert data["comparisons"][0]["rmse"] is None
    assert "skipped" in data["comparisons"][0]
    assert data["comparisons"][1]["rmse"] == report.rmse2
    assert data["sha256"]["reference"] == hashing.sha256_file(images["ref"])
    assert data["sha256"]["candidate2"] == hashing.sha256_file(images["offset"])


def test_format_value_precision():
    assert compare.format_value(0.1) == "0.10000000000000001"
    assert compare.format_value(0.1, precision=6) == "0.1"

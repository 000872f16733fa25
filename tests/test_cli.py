"""Test the imagediff command-line entry point.

Tests for imagediff.scripts.image_diff.main:
    - Fewer than three images → usage on stderr, exit 1
    - Full run → RMSE lines on stdout, exit 0
    - --diff/--output-dir, --report, --log-file/--json-logs
    - Bad config or unreadable image → exit 2
    - Unsupported candidate → reported as skipped, exit 0

Run:
    pytest tests/test_cli.py -v
"""

import json
import logging
import sys

import numpy as np
import pytest

from imagediff.imaging import codec
from imagediff.imaging.codec import PixelGrid
from imagediff.scripts import image_diff
from imagediff.utils import fs, logging_config


@pytest.fixture(autouse=True)
def restore_logging(monkeypatch):
    """main() configures the root logger and excepthook; undo both."""
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    yield
    logging_config.setup_logging(to_stderr=False, capture_warnings=False)
    logging.captureWarnings(False)
    logging_config.pop_context()


@pytest.fixture
def triple(tmp_path):
    rng = np.random.default_rng(5)
    ref = rng.uniform(0.0, 1.0, size=(4, 4, 3)).astype(np.float32)
    paths = {}
    for name, samples in (("c1", ref), ("c2", ref + np.float32(0.5)), ("ref", ref)):
        paths[name] = str(tmp_path / f"{name}.exr")
        codec.encode_image(PixelGrid(4, 4, 3, samples), paths[name])
    return paths


def args_for(triple, *extra):
    return [triple["c1"], triple["c2"], triple["ref"], *extra]


# ============================================================================
# ARGUMENTS
# ============================================================================

@pytest.mark.parametrize("argv", [[], ["a.exr"], ["a.exr", "b.exr"]])
def test_too_few_images(argv, capsys):
    assert image_diff.main(argv) == 1
    err = capsys.readouterr().err
    assert "RMSE Sample Usage" in err
    assert "usage:" in err


def test_extra_arguments_ignored(triple, capsys, caplog):
    caplog.set_level(logging.WARNING)
    assert image_diff.main(args_for(triple, "extra.exr")) == 0
    assert "Ignoring extra arguments: extra.exr" in caplog.text


# ============================================================================
# SUCCESSFUL RUNS
# ============================================================================

def test_basic_run(triple, capsys, tmp_path):
    assert image_diff.main(args_for(triple)) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "Image1 RMSE: 0"
    assert out[1].startswith("Image2 RMSE: 0.")
    assert not list(tmp_path.glob("diff*"))


def test_diff_flag_writes_images(triple, tmp_path):
    out_dir = tmp_path / "diffs"
    assert image_diff.main(args_for(triple, "--diff", "-o", str(out_dir))) == 0
    assert sorted(p.name for p in out_dir.iterdir()) == ["diff1.exr", "diff2.exr"]

    diff2 = codec.decode_image(out_dir / "diff2.exr")
    assert np.allclose(diff2.samples[:, :, 0], 0.5, atol=1e-6)


def test_report_written(triple, tmp_path):
    report_path = tmp_path / "out" / "report.yaml"
    assert image_diff.main(args_for(triple, "--report", str(report_path))) == 0
    data = fs.load_yaml(report_path)
    assert [c["label"] for c in data["comparisons"]] == ["Image1", "Image2"]
    assert data["comparisons"][0]["rmse"] == 0.0
    assert len(data["config_sha256"]) == 64


def test_json_log_file(triple, tmp_path):
    log_file = tmp_path / "logs" / "run.jsonl"
    assert image_diff.main(args_for(triple, "--log-file", str(log_file), "--json-logs")) == 0
    records = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert records
    assert all(r["app"] == "imagediff" for r in records)
    assert any(r["msg"] == "Image1 RMSE: 0" for r in records)


def test_config_file_enables_diff(triple, tmp_path):
    out_dir = tmp_path / "from_config"
    cfg_path = tmp_path / "compare.yaml"
    fs.atomic_yaml_dump({
        "schema_version": "compare.v1",
        "diff": {"enabled": True, "output_dir": str(out_dir), "names": ["a", "b"]},
    }, cfg_path)
    assert image_diff.main(args_for(triple, "--config", str(cfg_path))) == 0
    assert sorted(p.name for p in out_dir.iterdir()) == ["a.exr", "b.exr"]


def test_unsupported_candidate_skipped(triple, tmp_path, capsys):
    png = tmp_path / "c1.png"
    png.write_bytes(b"\x89PNG\r\n\x1a\n")
    assert image_diff.main([str(png), triple["c2"], triple["ref"]]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0].startswith("Image1 RMSE: skipped (")
    assert out[1].startswith("Image2 RMSE: 0.")


# ============================================================================
# FAILURES
# ============================================================================

def test_bad_config_exit_2(triple, tmp_path, capsys):
    cfg_path = tmp_path / "bad.yaml"
    cfg_path.write_text("schema_version: compare.v2\n")
    assert image_diff.main(args_for(triple, "--config", str(cfg_path))) == 2
    assert "Error loading config" in capsys.readouterr().err


def test_bad_log_level_exit_2(triple, capsys):
    assert image_diff.main(args_for(triple, "--log-level", "LOUD")) == 2
    assert "Error loading config" in capsys.readouterr().err


def test_missing_image_exit_2(triple, tmp_path, capsys):
    missing = str(tmp_path / "missing.exr")
    assert image_diff.main([missing, triple["c2"], triple["ref"]]) == 2
    assert capsys.readouterr().out == ""


def test_size_mismatch_exit_2(triple, tmp_path):
    small = tmp_path / "small.exr"
    codec.encode_image(PixelGrid(2, 2, 3, np.zeros((2, 2, 3), dtype=np.float32)), small)
    assert image_diff.main([str(small), triple["c2"], triple["ref"]]) == 2


def test_all_unsupported_exit_2(tmp_path):
    pngs = []
    for name in ("a", "b", "ref"):
        p = tmp_path / f"{name}.png"
        p.write_bytes(b"\x89PNG\r\n\x1a\n")
        pngs.append(str(p))
    assert image_diff.main(pngs) == 2

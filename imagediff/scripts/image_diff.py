#!/usr/bin/env python3
"""
Luminance RMSE of two candidate renders against a reference.

Usage:
    imagediff candidate1.exr candidate2.exr reference.exr
    imagediff candidate1.hdr candidate2.hdr reference.hdr --diff
    imagediff c1.exr c2.exr ref.exr --diff --output-dir out/ --report out/report.yaml
    python -m imagediff.scripts.image_diff c1.exr c2.exr ref.exr --config my_compare.yaml

Only Radiance HDR (.hdr) and OpenEXR (.exr) inputs are compared; other
formats are reported and skipped. With --diff, |candidate - reference| is
written to diff1.exr and diff2.exr (32-bit float RGBA).

Exit codes:
    0: Comparison reported
    1: Fewer than three images given
    2: Fatal error (unreadable/corrupt image, size mismatch, bad config)
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from imagediff.imaging.errors import ImageDiffError
from imagediff.pipeline.compare import compare_three, format_value, write_report
from imagediff.utils import logging_config, validators

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imagediff",
        description="Compare two HDR/EXR candidates against a reference by luminance RMSE",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "images",
        nargs="*",
        metavar="IMAGE",
        help="candidate1 candidate2 reference (.hdr or .exr)",
    )
    parser.add_argument(
        "--diff",
        "-d",
        action="store_true",
        default=None,
        help="Write per-pixel difference images and report max differences",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        help="Compare config file (compare.v1 YAML)",
    )
    parser.add_argument(
        "--output-dir",
        "-o",
        type=str,
        help="Directory for diff images (default: current directory)",
    )
    parser.add_argument(
        "--report",
        type=str,
        help="Write a YAML report to this path",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Also log to this file",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=None,
        help="JSON lines in the log file",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if len(args.images) < 3:
        print(
            f"RMSE Sample Usage: {parser.prog} image1.exr image2.exr refImage.exr [--diff]",
            file=sys.stderr,
        )
        parser.print_usage(sys.stderr)
        return 1

    try:
        cfg = validators.load_compare_config(args.config)
        cfg = validators.apply_overrides(cfg, {
            "diff": {"enabled": args.diff, "output_dir": args.output_dir},
            "report": {"path": args.report},
            "logging": {
                "log_level": args.log_level,
                "log_file": args.log_file,
                "json": args.json_logs,
            },
        })
    except validators.ConfigError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 2

    logging_config.setup_logging(
        **cfg.logging.setup_kwargs(),
        context={"app": "imagediff"},
    )
    logging_config.install_excepthook()

    candidate1, candidate2, reference = args.images[:3]
    if len(args.images) > 3:
        logger.warning(f"Ignoring extra arguments: {' '.join(args.images[3:])}")

    try:
        report = compare_three(
            candidate1,
            candidate2,
            reference,
            emit_diff=cfg.diff.enabled,
            output_dir=cfg.diff.output_dir,
            diff_names=cfg.diff.names,
            extension=cfg.diff.extension,
            alpha=cfg.diff.alpha,
            precision=cfg.report.precision,
        )
        if cfg.report.path:
            path = write_report(report, cfg.report.path, config=cfg.model_dump(by_alias=True))
            logger.info(f"Report written to {path}")
    except (ImageDiffError, RuntimeError) as e:
        logger.error(f"Comparison failed: {e}")
        return 2

    for pair in report.pairs:
        if pair.computed:
            print(f"{pair.label} RMSE: {format_value(pair.rmse, cfg.report.precision)}")
        else:
            print(f"{pair.label} RMSE: skipped ({pair.skipped_reason})")

    return 0


if __name__ == "__main__":
    sys.exit(main())

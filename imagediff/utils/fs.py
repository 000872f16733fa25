"""Atomic filesystem operations for safe file writes and YAML handling.

Provides:
    - Atomic writes: tmp file → fsync → rename (prevents partial reads)
    - Atomic writes through a third-party writer (codec encoders)
    - YAML load/save
    - Directory creation with exist_ok semantics

Diff images and run reports are written atomically so that a viewer or a
CI job polling the output directory never picks up a half-written file.

All paths use pathlib.Path for cross-platform compatibility.

Usage:
    from imagediff.utils import fs
    fs.atomic_write_via(out_dir / "diff1.exr", lambda tmp: cv2.imwrite(str(tmp), img))
    fs.atomic_yaml_dump(report, out_dir / "report.yaml")
"""

import os
from pathlib import Path
from typing import Any, Callable, Dict, Union

import yaml


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist, return Path object.

    Parameters
    ----------
    p : Union[str, Path]
        Directory path

    Returns
    -------
    Path
        Path object (guaranteed to exist)
    """
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def atomic_write_bytes(
    path: Union[str, Path],
    data: bytes,
    tmp_suffix: str = ".tmp"
) -> None:
    """Write bytes to file atomically (tmp → fsync → rename).

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Data to write
    tmp_suffix : str
        Temporary file suffix, default ".tmp"

    Notes
    -----
    Uses same directory for tmp file to ensure atomic rename on same filesystem.
    """
    path = Path(path)
    ensure_dir(path.parent)

    tmp_path = path.with_suffix(path.suffix + tmp_suffix)

    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        # Atomic rename (overwrites existing file on POSIX)
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def atomic_write_via(
    path: Union[str, Path],
    writer: Callable[[Path], bool]
) -> None:
    """Let ``writer`` produce a file, then move it into place atomically.

    Parameters
    ----------
    path : Union[str, Path]
        Target file path (extension is preserved on the tmp file)
    writer : Callable[[Path], bool]
        Called with the tmp path; must return True on success

    Raises
    ------
    RuntimeError
        If the writer returns False or raises

    Notes
    -----
    The tmp file keeps the target extension ("diff1.tmp.exr") because
    codecs such as OpenCV pick the container format from the suffix.
    """
    path = Path(path)
    ensure_dir(path.parent)
    tmp_path = path.with_name(path.stem + ".tmp" + path.suffix)

    try:
        if not writer(tmp_path):
            raise RuntimeError("writer reported failure")
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def atomic_yaml_dump(obj: Any, path: Union[str, Path]) -> None:
    """Save object as YAML atomically.

    Parameters
    ----------
    obj : Any
        Python object (dict, list, primitives)
    path : Union[str, Path]
        Target YAML file path

    Notes
    -----
    Uses PyYAML safe_dump. Preserves key insertion order.
    """
    yaml_str = yaml.safe_dump(
        obj,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True
    )
    atomic_write_bytes(path, yaml_str.encode('utf-8'))


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Dict[str, Any]
        Parsed YAML content (empty dict for an empty file)

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e

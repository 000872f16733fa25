"""YAML schema validation and config loading.

Provides centralized validation of the comparison config using pydantic:
    - Compare schema (compare.v1.yaml): diff image output, report
      precision/path, logging

Config errors fail fast with the file path and the offending keys.

Usage:
    from imagediff.utils import validators

    cfg = validators.load_compare_config()                 # packaged default
    cfg = validators.load_compare_config("my_compare.yaml")
    cfg = validators.apply_overrides(cfg, {"diff": {"enabled": True}})
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "configs" / "compare.v1.yaml"


class ConfigError(ValueError):
    """Raised when a config file is missing, unparsable or invalid."""


# ============================================================================
# COMPARE SCHEMA V1
# ============================================================================

class DiffOutput(BaseModel):
    """Difference image emission."""
    enabled: bool = Field(False, description="Write per-pixel |candidate - reference| images")
    output_dir: str = Field(".", description="Directory for diff images")
    names: List[str] = Field(
        default_factory=lambda: ["diff1", "diff2"],
        min_length=2, max_length=2,
        description="File stems for (candidate1, candidate2) diff images"
    )
    extension: str = Field("exr", description="Diff image container (OpenEXR only)")
    alpha: float = Field(1.0, ge=0.0, le=1.0, description="Constant alpha channel value")

    @field_validator('extension')
    @classmethod
    def validate_extension(cls, v: str) -> str:
        v = v.lower().lstrip('.')
        if v != "exr":
            raise ValueError(f"Diff images can only be written as 'exr', got '{v}'")
        return v

    @field_validator('names')
    @classmethod
    def validate_names(cls, v: List[str]) -> List[str]:
        if any(not n or '/' in n or '\\' in n for n in v):
            raise ValueError(f"Diff names must be plain file stems, got {v}")
        if v[0] == v[1]:
            raise ValueError(f"Diff names must differ, got {v}")
        return v


class ReportOutput(BaseModel):
    """Result reporting."""
    precision: int = Field(17, ge=1, le=17, description="Significant digits for RMSE values")
    path: Optional[str] = Field(None, description="Optional YAML report path")


class LoggingOptions(BaseModel):
    """Arguments forwarded to logging_config.setup_logging."""
    log_level: str = Field("INFO", description="DEBUG, INFO, WARNING, ERROR, CRITICAL")
    log_file: Optional[str] = Field(None, description="Log file path")
    json_format: bool = Field(False, alias="json", description="JSON lines in the log file")
    color: bool = Field(True, description="ANSI colors on the console")

    model_config = {"populate_by_name": True}

    @field_validator('log_level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level '{v}'")
        return v

    def setup_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for setup_logging()."""
        return {
            "log_level": self.log_level,
            "log_file": self.log_file,
            "json": self.json_format,
            "color": self.color,
        }


class CompareConfigV1(BaseModel):
    """Comparison config schema v1."""
    schema_version: str = Field("compare.v1", description="Schema version")
    diff: DiffOutput = Field(default_factory=DiffOutput)
    report: ReportOutput = Field(default_factory=ReportOutput)
    logging: LoggingOptions = Field(default_factory=LoggingOptions)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "compare.v1":
            raise ValueError(f"Expected schema 'compare.v1', got '{v}'")
        return v


# ============================================================================
# PUBLIC API
# ============================================================================

def load_compare_config(path: Optional[Union[str, Path]] = None) -> CompareConfigV1:
    """Load and validate the comparison config from YAML.

    Parameters
    ----------
    path : Union[str, Path], optional
        Path to a compare.v1 YAML file; None loads the packaged default

    Returns
    -------
    CompareConfigV1
        Validated configuration

    Raises
    ------
    ConfigError
        If the file is missing, not valid YAML, or fails validation
    """
    from . import fs

    path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    try:
        data = fs.load_yaml(path)
    except FileNotFoundError as e:
        raise ConfigError(f"Compare config not found: {path}") from e
    except Exception as e:
        raise ConfigError(f"Compare config could not be parsed at {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Compare config at {path} must be a mapping, got {type(data).__name__}")

    try:
        return CompareConfigV1.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Compare config validation failed at {path}: {e}") from e


def apply_overrides(cfg: CompareConfigV1, overrides: Dict[str, Dict[str, Any]]) -> CompareConfigV1:
    """Return a re-validated copy of cfg with per-section overrides.

    ``None`` values in overrides are ignored, so CLI flags that were not
    given leave the loaded config untouched.

    Examples
    --------
    >>> cfg = apply_overrides(cfg, {"diff": {"enabled": True, "output_dir": None}})
    """
    data = cfg.model_dump(by_alias=True)
    for section, values in overrides.items():
        if section not in data:
            raise ConfigError(f"Unknown config section: {section}")
        for key, value in values.items():
            if value is not None:
                data[section][key] = value
    try:
        return CompareConfigV1.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid override: {e}") from e

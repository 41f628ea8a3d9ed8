"""
Configuration management.
"""

from pathlib import Path
from typing import Any, List, Optional, Sequence

import yaml
from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILE_NAME = ".bbr-setup.yaml"

_FILE_KEYS = (
    "sysctl_dropin_dir",
    "sysctl_dropin_name",
    "sysctl_main",
    "kernel_config_paths",
    "log_dir",
    "verbose",
    "command_timeout",
)


def default_config_candidates() -> List[Path]:
    """Config file locations in lookup order; the first existing file wins."""
    return [
        Path.home() / CONFIG_FILE_NAME,
        Path.cwd() / CONFIG_FILE_NAME,
    ]


def load_config_file(candidates: Optional[Sequence[Path]] = None) -> dict[str, Any]:
    """
    Load optional config from ~/.bbr-setup.yaml or ./.bbr-setup.yaml.

    Only known keys are returned, and missing keys are omitted so callers
    can use their own defaults. A malformed file is ignored with a warning.
    """
    if candidates is None:
        candidates = default_config_candidates()

    raw: Any = {}
    for path in candidates:
        if not path.exists():
            continue
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Ignoring config file {path}: {e}")
            raw = {}
        break

    if not isinstance(raw, dict):
        return {}
    return {key: raw[key] for key in _FILE_KEYS if key in raw}


class AppConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(env_prefix="BBR_SETUP_", extra="ignore")

    sysctl_dropin_dir: Path = Field(default=Path("/etc/sysctl.d"))
    sysctl_dropin_name: str = "99-bbr.conf"
    sysctl_main: Path = Field(default=Path("/etc/sysctl.conf"))
    kernel_config_paths: List[Path] = Field(default_factory=lambda: [Path("/proc/config.gz")])
    log_dir: Optional[Path] = None
    verbose: bool = False
    command_timeout: int = Field(default=30, gt=0)

    @field_validator("sysctl_dropin_dir", "sysctl_main", "log_dir", mode="before")
    @classmethod
    def validate_path(cls, v):
        """Convert strings to Path and expand ``~``."""
        if v is None or v == "":
            return None
        return Path(v).expanduser()

    @field_validator("kernel_config_paths", mode="before")
    @classmethod
    def validate_kernel_config_paths(cls, v):
        """Accept a single path or a list of paths."""
        if isinstance(v, (str, Path)):
            v = [v]
        return [Path(p).expanduser() for p in v]

    def model_post_init(self, __context):
        """Ensure the log directory exists when file logging is enabled."""
        if self.log_dir is not None:
            self.log_dir = self.log_dir.resolve()
            self.log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def sysctl_dropin(self) -> Path:
        """Full path of the drop-in file this tool writes."""
        return self.sysctl_dropin_dir / self.sysctl_dropin_name


def build_config(**overrides: Any) -> AppConfig:
    """
    Build the effective configuration.

    Precedence: explicit overrides (CLI), then the YAML config file, then
    ``BBR_SETUP_*`` environment variables, then defaults. Overrides set to
    None are treated as not given.
    """
    values = load_config_file()
    values.update({key: value for key, value in overrides.items() if value is not None})
    return AppConfig(**values)

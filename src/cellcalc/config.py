"""Configuration loading from ``cellcalc.yaml``."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "cellcalc.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "snapshot_indent": 2,
    "logging_fsync": False,
    "logging_tail_bytes": 2 * 1024 * 1024,
    "logging_max_value_len": 256,
}

DEMO_CONFIG = """\
# cellcalc configuration
snapshot_indent: 2
logging_fsync: false
# logging_tail_bytes: 2097152
# logging_max_value_len: 256
"""


def load_config(config_dir: Path | str | None = None) -> dict[str, Any]:
    """Load configuration from ``cellcalc.yaml``, with defaults.

    Args:
        config_dir: Directory containing ``cellcalc.yaml``.  When None or
            when the file is absent, the defaults are returned.

    Returns:
        Merged configuration dict.

    Raises:
        ValueError: If the file does not contain a YAML mapping.
    """
    config = dict(DEFAULT_CONFIG)
    if config_dir is None:
        return config
    config_path = Path(config_dir) / CONFIG_FILENAME
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path} must contain a mapping")
        config.update(user_config)
    return config


def write_default_config(config_dir: Path | str) -> Path:
    """Write a commented default ``cellcalc.yaml`` and return its path.

    Raises:
        FileExistsError: If the file already exists.
    """
    path = Path(config_dir) / CONFIG_FILENAME
    if path.exists():
        raise FileExistsError(f"{CONFIG_FILENAME} already exists in {config_dir}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEMO_CONFIG)
    return path

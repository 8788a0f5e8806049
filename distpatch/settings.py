"""TOML configuration loader for the install layout.

Loads the patcher section from defaults.toml (shipped with the package)
or from a user-supplied file, and validates it into a PatcherConfig.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import ValidationError

from distpatch.schemas.patch import PatcherConfig

# Default config directory relative to the distpatch package
_CONFIG_DIR = Path(__file__).parent / "config"


def load_patcher_config(config_path: Path | None = None) -> PatcherConfig:
    """Load the install layout from a TOML file.

    Args:
        config_path: Path to a TOML file with a [patcher] table.
            Defaults to distpatch/config/defaults.toml.

    Returns:
        PatcherConfig with values from the file. Keys absent from the
        file keep their built-in defaults.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the [patcher] section is malformed.
    """
    path = config_path or _CONFIG_DIR / "defaults.toml"
    if not path.exists():
        raise FileNotFoundError(f"Patcher config not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    section = raw.get("patcher", {})
    if not isinstance(section, dict):
        raise ValueError(f"[patcher] in {path} must be a table")

    try:
        return PatcherConfig(**section)
    except ValidationError as e:
        raise ValueError(f"Invalid [patcher] section in {path}: {e}") from e

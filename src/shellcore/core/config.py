"""
Configuration management for shellcore.

The slicer core recognises exactly six settings. They are carried in an
immutable pydantic model so a slicing run can never see them change.
"""

import math
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shellcore.core.exceptions import ConfigurationError


class SlicerConfig(BaseModel):
    """
    Slicer core configuration model.

    Example:
        >>> config = SlicerConfig(layer_height=0.2, skin_layer_count=4)
        >>> config.wall_count
        2
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    layer_height: float = Field(default=0.2, gt=0.0)
    nozzle_diameter: float = Field(default=0.4, gt=0.0)
    wall_count: int = Field(default=2, ge=1)
    skin_layer_count: int = Field(default=4, ge=1)
    exposure_detection_enabled: bool = True
    exposure_detection_resolution: int = Field(default=961, ge=4)

    @classmethod
    def from_shell_thickness(
        cls,
        layer_height: float,
        nozzle_diameter: float,
        shell_wall_thickness: float,
        shell_skin_thickness: float,
        **kwargs: Any,
    ) -> "SlicerConfig":
        """
        Build a config from printer-facing shell thicknesses.

        ``wall_count`` is the wall thickness in nozzle widths and
        ``skin_layer_count`` the skin thickness in whole layers, both at
        least 1.

        Raises:
            ConfigurationError: If any of the derived values is invalid
        """
        if layer_height <= 0 or nozzle_diameter <= 0:
            raise ConfigurationError(
                "Layer height and nozzle diameter must be positive",
                details={"layer_height": layer_height, "nozzle_diameter": nozzle_diameter},
            )

        wall_count = max(1, int(round(shell_wall_thickness / nozzle_diameter)))
        # 0.6 / 0.2 is 2.9999999999999996 in floating point
        skin_layer_count = max(1, int(math.floor(shell_skin_thickness / layer_height + 1e-9)))

        return build_config(
            {
                "layer_height": layer_height,
                "nozzle_diameter": nozzle_diameter,
                "wall_count": wall_count,
                "skin_layer_count": skin_layer_count,
                **kwargs,
            }
        )


def build_config(data: dict[str, Any]) -> SlicerConfig:
    """
    Validate a mapping into a SlicerConfig.

    Raises:
        ConfigurationError: If a field is unknown or out of range
    """
    try:
        return SlicerConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid slicer configuration",
            details={"error": str(e)},
        )


def load_config(config_file: str | Path) -> SlicerConfig:
    """
    Load a slicer configuration from a YAML file.

    The settings may live under a top-level ``slicer`` key or at the top
    level of the document. An empty file yields the defaults.

    Args:
        config_file: Path to the YAML file

    Returns:
        SlicerConfig instance

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    path = Path(config_file)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse slicer config: {path}",
            details={"error": str(e)},
        )

    if data is None:
        return SlicerConfig()
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Slicer config must be a mapping: {path}",
            details={"type": type(data).__name__},
        )

    if "slicer" in data:
        data = data["slicer"] or {}

    return build_config(data)

"""
Mesh sectioning - the boundary between a 3D model and the slicer core.

Loads a mesh with **trimesh** and cuts it with horizontal planes at each
layer's mid-height, producing the unordered per-layer segment lists the
stitcher consumes.
"""

import logging
import math
from pathlib import Path
from typing import Any, List

import numpy as np
import trimesh

from shellcore.core.exceptions import GeometryError
from shellcore.core.geometry import Segment

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {".stl", ".obj", ".ply", ".off"}


def load_mesh(file_path: str | Path, **kwargs: Any) -> trimesh.Trimesh:
    """
    Load a triangle mesh from file.

    Args:
        file_path: Path to geometry file
        **kwargs: Additional arguments passed to trimesh.load

    Returns:
        trimesh.Trimesh

    Raises:
        GeometryError: If file format is unsupported or loading fails
    """
    path = Path(file_path)

    if not path.exists():
        raise GeometryError(f"File not found: {path}")

    if path.suffix.lower() not in SUPPORTED_FORMATS:
        raise GeometryError(
            f"Unsupported format: {path.suffix}",
            details={"supported": sorted(SUPPORTED_FORMATS)},
        )

    try:
        loaded = trimesh.load(str(path), **kwargs)
    except Exception as e:
        raise GeometryError(f"Failed to load geometry from {path}: {e}") from e

    # Handle Scene vs Mesh
    if isinstance(loaded, trimesh.Scene):
        meshes = [geom for geom in loaded.geometry.values() if isinstance(geom, trimesh.Trimesh)]
        if not meshes:
            raise GeometryError(f"No triangle meshes in {path}")
        return trimesh.util.concatenate(meshes)
    if isinstance(loaded, trimesh.Trimesh):
        return loaded

    raise GeometryError(f"Unexpected geometry type: {type(loaded).__name__}")


def layer_count(height: float, layer_height: float) -> int:
    """Number of layers needed to cover ``height``."""
    if height <= 0:
        return 0
    # 6.0 / 0.2 is 30.000000000000004 in floating point
    return int(math.ceil(height / layer_height - 1e-9))


def layer_heights(mesh: trimesh.Trimesh, layer_height: float) -> np.ndarray:
    """Mid-layer Z heights ``z_min + layer_height * (k + 0.5)``."""
    z_min, z_max = float(mesh.bounds[0][2]), float(mesh.bounds[1][2])
    count = layer_count(z_max - z_min, layer_height)
    return z_min + layer_height * (np.arange(count) + 0.5)


def section_mesh(mesh: trimesh.Trimesh, layer_height: float) -> List[List[Segment]]:
    """
    Cut ``mesh`` into per-layer segment lists.

    Args:
        mesh: Mesh to section
        layer_height: Layer height (mm)

    Returns:
        One list of 2D segments per layer, bottom to top.

    Raises:
        GeometryError: If the layer height is not positive
    """
    if layer_height <= 0:
        raise GeometryError("Layer height must be positive", details={"layer_height": layer_height})

    layers: List[List[Segment]] = []
    for index, z in enumerate(layer_heights(mesh, layer_height)):
        lines = trimesh.intersections.mesh_plane(
            mesh, plane_normal=[0.0, 0.0, 1.0], plane_origin=[0.0, 0.0, float(z)]
        )
        segments = [
            Segment((float(a[0]), float(a[1])), (float(b[0]), float(b[1])))
            for a, b in lines
        ]
        if not segments:
            logger.debug("Layer %d at z=%.4f has no cross-section", index, z)
        layers.append(segments)

    return layers

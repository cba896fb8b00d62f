"""
Slicing module - Rings, walls and skin for each layer of a model.

Stages, leaves first:
- stitching: unordered segments -> ordered rings
- nesting: hole/structure classification of a layer's rings
- contour_offset: wall loops and skin boundary per ring (pyclipper)
- exposure: multi-layer coverage analysis
- skin: final skin regions per ring
"""

from shellcore.slicing.contour_offset import (
    WallKind,
    WallLoop,
    WallSet,
    WallState,
    generate_walls,
    offset_path,
)
from shellcore.slicing.exposure import (
    COVERAGE_THRESHOLD,
    ExposureResult,
    ExposureWindow,
    compute_exposure,
    resolve_fully_covered_regions,
)
from shellcore.slicing.mesh_section import load_mesh, section_mesh
from shellcore.slicing.nesting import NestingInfo, classify_nesting, material_region_neighbors
from shellcore.slicing.skin import is_shell_layer, resolve_skin_regions
from shellcore.slicing.stitching import stitch_segments_to_paths
from shellcore.slicing.toolpath import (
    LayerOutput,
    Toolpath,
    ToolpathSegment,
    ToolpathType,
    TypedPolyline,
)

__all__ = [
    # Stitching / nesting
    "stitch_segments_to_paths",
    "NestingInfo",
    "classify_nesting",
    "material_region_neighbors",
    # Walls
    "WallKind",
    "WallLoop",
    "WallSet",
    "WallState",
    "generate_walls",
    "offset_path",
    # Exposure / skin
    "COVERAGE_THRESHOLD",
    "ExposureResult",
    "ExposureWindow",
    "compute_exposure",
    "resolve_fully_covered_regions",
    "is_shell_layer",
    "resolve_skin_regions",
    # Output
    "LayerOutput",
    "Toolpath",
    "ToolpathSegment",
    "ToolpathType",
    "TypedPolyline",
    # Mesh boundary
    "load_mesh",
    "section_mesh",
]

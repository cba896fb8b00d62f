"""
shellcore - Geometric core of an FDM slicer

Turns per-layer cross-section segments into nested rings, offset wall loops
and exposure-driven skin regions.
"""

__version__ = "0.1.0"
__author__ = "shellcore Contributors"

from shellcore.core.config import SlicerConfig, load_config
from shellcore.core.geometry import path_bounds, point_in_polygon
from shellcore.pipeline import SlicePipeline, SliceResult
from shellcore.slicing.contour_offset import offset_path
from shellcore.slicing.exposure import compute_exposure, resolve_fully_covered_regions
from shellcore.slicing.nesting import classify_nesting
from shellcore.slicing.stitching import stitch_segments_to_paths

__all__ = [
    "__version__",
    "SlicerConfig",
    "load_config",
    "SlicePipeline",
    "SliceResult",
    "stitch_segments_to_paths",
    "classify_nesting",
    "offset_path",
    "point_in_polygon",
    "path_bounds",
    "compute_exposure",
    "resolve_fully_covered_regions",
]

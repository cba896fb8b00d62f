"""
Core module - Shared primitives, configuration, context and errors.
"""

from shellcore.core.config import SlicerConfig, load_config
from shellcore.core.context import SliceContext, TraceCallback
from shellcore.core.exceptions import (
    ShellCoreError,
    ConfigurationError,
    GeometryError,
    InvariantViolationError,
    SlicingError,
)
from shellcore.core.geometry import (
    EPSILON,
    Bounds,
    Path,
    Point2D,
    Segment,
    min_distance_between_paths,
    path_bounds,
    point_in_polygon,
    points_in_polygon,
)

__all__ = [
    # Config
    "SlicerConfig",
    "load_config",
    # Context
    "SliceContext",
    "TraceCallback",
    # Exceptions
    "ShellCoreError",
    "ConfigurationError",
    "GeometryError",
    "InvariantViolationError",
    "SlicingError",
    # Geometry
    "EPSILON",
    "Bounds",
    "Path",
    "Point2D",
    "Segment",
    "min_distance_between_paths",
    "path_bounds",
    "point_in_polygon",
    "points_in_polygon",
]

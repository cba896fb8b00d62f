"""
Toolpath data structures for representing sliced layers.

Each layer comes out of the slicer core as an ordered list of typed 2D
polylines (outer wall, inner walls, skin per ring). The ``Toolpath`` view
lifts them into 3D COMPAS points at the layer's mid-height for downstream
consumers such as G-code emission.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

import numpy as np
from compas.geometry import Point

from shellcore.core.geometry import Point2D


class ToolpathType(Enum):
    """Type of toolpath segment."""

    WALL_OUTER = "WALL-OUTER"  # Outermost perimeter of a ring
    WALL_INNER = "WALL-INNER"  # Further perimeters
    SKIN = "SKIN"  # Solid fill boundary


@dataclass(frozen=True)
class TypedPolyline:
    """One typed polyline of a layer's output."""

    type: str
    ring_id: int
    points: List[Point2D]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "ringId": self.ring_id,
            "points": [{"x": x, "y": y} for x, y in self.points],
        }


@dataclass
class LayerOutput:
    """
    Ordered output of one layer.

    Attributes:
        layer_index: Index of the layer
        polylines: Outer wall, inner walls and skin of each ring in turn
        errors: Messages of rings that failed on this layer
    """

    layer_index: int
    polylines: List[TypedPolyline] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def count(self, loop_type: str) -> int:
        """Number of polylines of the given type string."""
        return sum(1 for p in self.polylines if p.type == loop_type)

    @property
    def has_skin(self) -> bool:
        return any(p.type == ToolpathType.SKIN.value for p in self.polylines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "layerIndex": self.layer_index,
            "polylines": [p.to_dict() for p in self.polylines],
            "errors": list(self.errors),
        }


@dataclass
class ToolpathSegment:
    """
    Represents a single closed loop of a toolpath.

    Attributes:
        points: List of 3D points defining the loop
        type: Type of toolpath segment
        layer_index: Index of the layer this segment belongs to
        ring_id: Index of the source ring within the layer
        extrusion_width: Width of extruded material (mm)
        metadata: Additional data
    """

    points: List[Point]
    type: ToolpathType
    layer_index: int
    ring_id: int = 0
    extrusion_width: float = 0.4
    metadata: dict = field(default_factory=dict)

    def get_length(self) -> float:
        """Calculate total length of the loop including the closing edge."""
        if len(self.points) < 2:
            return 0.0

        total_length = 0.0
        for i in range(len(self.points)):
            p1 = self.points[i]
            p2 = self.points[(i + 1) % len(self.points)]
            dx = p2.x - p1.x
            dy = p2.y - p1.y
            dz = p2.z - p1.z
            total_length += np.sqrt(dx**2 + dy**2 + dz**2)

        return total_length

    def get_start_point(self) -> Point:
        """Get the starting point of the segment."""
        if not self.points:
            raise ValueError("Segment has no points")
        return self.points[0]

    def get_end_point(self) -> Point:
        """Get the ending point of the segment."""
        if not self.points:
            raise ValueError("Segment has no points")
        return self.points[-1]


@dataclass
class Toolpath:
    """
    Complete toolpath of a slicing run.

    Attributes:
        segments: List of toolpath segments, in emission order
        layer_height: Height of each layer (mm)
        total_layers: Total number of layers
        metadata: Additional toolpath metadata
    """

    segments: List[ToolpathSegment] = field(default_factory=list)
    layer_height: float = 0.2
    total_layers: int = 0
    metadata: dict = field(default_factory=dict)

    def add_segment(self, segment: ToolpathSegment) -> None:
        """Add a segment to the toolpath."""
        self.segments.append(segment)
        self.total_layers = max(self.total_layers, segment.layer_index + 1)

    def get_segments_by_layer(self, layer_index: int) -> List[ToolpathSegment]:
        """Get all segments for a specific layer."""
        return [seg for seg in self.segments if seg.layer_index == layer_index]

    def get_segments_by_type(self, seg_type: ToolpathType) -> List[ToolpathSegment]:
        """Get all segments of a specific type."""
        return [seg for seg in self.segments if seg.type == seg_type]

    def get_total_length(self) -> float:
        """Calculate total toolpath length."""
        return sum(seg.get_length() for seg in self.segments)

    def get_bounds(self) -> tuple[Point, Point]:
        """
        Get bounding box of the toolpath.

        Returns:
            Tuple of (min_point, max_point)
        """
        all_points = [p for seg in self.segments for p in seg.points]
        if not all_points:
            raise ValueError("Toolpath has no points")

        xs = [p.x for p in all_points]
        ys = [p.y for p in all_points]
        zs = [p.z for p in all_points]

        return Point(min(xs), min(ys), min(zs)), Point(max(xs), max(ys), max(zs))

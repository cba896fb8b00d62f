"""
Layer Oracle - analytic cross-sections of reference solids.

This module builds per-layer segment lists WITHOUT going through a mesh.
Each solid is described by closed-form radii or half-widths as a function
of Z, so the expected ring count, nesting and wall clearance of every
layer can be worked out by hand.

Layers are sampled at mid-height, ``z = layer_height * (k + 0.5)``, the
same convention the mesh sectioning uses.

Reference solids:
  - cylinder: constant circular cross-section
  - wedding cake: three stacked square tiers 30 -> 20 -> 10 mm, 6 mm each
  - cavity box: 25 x 25 x 12 box with a radius-10 hemisphere removed at
    the centre of its bottom face
  - torus: major radius 5, minor radius 2, lying flat on the plate
  - one-sided ledge: 30 x 30 base under a 30 x 28 block flush on three sides
  - concentric rings: k nested circles on one layer
"""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple

from shellcore.core.geometry import Segment

Point2D = Tuple[float, float]


def square(size: float, cx: float = 0.0, cy: float = 0.0) -> List[Point2D]:
    """CCW square centred on (cx, cy)."""
    h = size / 2.0
    return [(cx - h, cy - h), (cx + h, cy - h), (cx + h, cy + h), (cx - h, cy + h)]


def rectangle(width: float, height: float, x0: float = 0.0, y0: float = 0.0) -> List[Point2D]:
    """CCW axis-aligned rectangle with its lower-left corner at (x0, y0)."""
    return [(x0, y0), (x0 + width, y0), (x0 + width, y0 + height), (x0, y0 + height)]


def circle(radius: float, cx: float = 0.0, cy: float = 0.0, sides: int = 64) -> List[Point2D]:
    """CCW regular polygon inscribed in a circle."""
    return [
        (cx + radius * math.cos(2 * math.pi * i / sides),
         cy + radius * math.sin(2 * math.pi * i / sides))
        for i in range(sides)
    ]


def polygon_segments(points: Sequence[Point2D]) -> List[Segment]:
    """Edges of a closed polygon, in order."""
    n = len(points)
    return [Segment(points[i], points[(i + 1) % n]) for i in range(n)]


def layer_z(index: int, layer_height: float) -> float:
    return layer_height * (index + 0.5)


def layer_total(height: float, layer_height: float) -> int:
    return int(math.ceil(height / layer_height - 1e-9))


def cylinder_layers(
    radius: float = 10.0,
    height: float = 10.0,
    layer_height: float = 0.2,
) -> List[List[Segment]]:
    """Every layer is the same circle."""
    ring = polygon_segments(circle(radius))
    return [list(ring) for _ in range(layer_total(height, layer_height))]


def wedding_cake_layers(layer_height: float = 0.2) -> List[List[Segment]]:
    """
    Three square tiers, 6 mm tall each.

    At 0.2 mm: 90 layers; tier changes between layers 29/30 and 59/60.
    """
    tiers = [(30.0, 6.0), (20.0, 12.0), (10.0, 18.0)]
    layers = []
    for k in range(layer_total(18.0, layer_height)):
        z = layer_z(k, layer_height)
        size = next(s for s, top in tiers if z < top)
        layers.append(polygon_segments(square(size)))
    return layers


def cavity_box_layers(layer_height: float = 0.2, with_cavity: bool = True) -> List[List[Segment]]:
    """
    25 x 25 x 12 box, optionally minus a radius-10 hemisphere at the bottom.

    Below z = 10 the layer holds the square plus a circular hole of radius
    ``sqrt(100 - z^2)``; above it only the square.
    """
    layers = []
    for k in range(layer_total(12.0, layer_height)):
        z = layer_z(k, layer_height)
        segments = polygon_segments(square(25.0))
        if with_cavity and z < 10.0:
            segments += polygon_segments(circle(math.sqrt(100.0 - z * z)))
        layers.append(segments)
    return layers


def one_sided_ledge_layers(layer_height: float = 0.2) -> List[List[Segment]]:
    """
    30 x 30 x 6 base under a 30 x 28 x 6 block flush with three of its sides.

    At 0.2 mm: 60 layers; the block starts at layer 30 and leaves a 2 mm
    strip of the base uncovered along y = +15.
    """
    base = polygon_segments(square(30.0))
    block = polygon_segments(rectangle(30.0, 28.0, x0=-15.0, y0=-15.0))
    return [
        list(base if layer_z(k, layer_height) < 6.0 else block)
        for k in range(layer_total(12.0, layer_height))
    ]


def torus_annulus(z: float, major: float = 5.0, minor: float = 2.0) -> Tuple[float, float]:
    """Outer and inner radius of a flat torus cross-section at height z."""
    dz = z - minor
    half = math.sqrt(max(0.0, minor * minor - dz * dz))
    return major + half, major - half


def torus_layers(
    major: float = 5.0,
    minor: float = 2.0,
    layer_height: float = 0.2,
) -> List[List[Segment]]:
    """
    Torus lying on the plate. Layer 0 (z = 0.1) is an annulus only
    1.249 mm wide, too thin for inner walls with a 0.4 mm nozzle.
    """
    layers = []
    for k in range(layer_total(2 * minor, layer_height)):
        outer, inner = torus_annulus(layer_z(k, layer_height), major, minor)
        layers.append(polygon_segments(circle(outer)) + polygon_segments(circle(inner)))
    return layers


def concentric_ring_segments(radii: Sequence[float]) -> List[Segment]:
    """One layer of nested circles, outermost first."""
    segments: List[Segment] = []
    for r in radii:
        segments += polygon_segments(circle(r))
    return segments

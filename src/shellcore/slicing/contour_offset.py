"""
Contour Offset - Wall loop generation for one classified ring.

Provides polygon offset operations for generating:
- Outer wall (half a nozzle width inside the material boundary)
- Inner walls (one nozzle width further each)
- Skin boundary (the region left inside the innermost wall)

Uses **pyclipper** (Python bindings for Angus Johnson's Clipper library)
for robust polygon offsetting of concave rings, and **shapely** for the
validity and clearance checks that decide whether a wall is printable.

Structures shrink and holes grow, so wall material always lies on the
solid side of the boundary. An inset may split a ring into several
islands; each island gets its own loop at that depth. A wall that
collapses or crowds a neighbouring ring is dropped together with every
deeper wall of the ring.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import pyclipper
from shapely.geometry import Polygon as ShapelyPolygon

from shellcore.core.context import TraceCallback, resolve_trace
from shellcore.core.exceptions import InvariantViolationError
from shellcore.core.geometry import Path, PathLike, min_distance_between_paths, path_bounds
from shellcore.slicing.nesting import NestingInfo

logger = logging.getLogger(__name__)

# pyclipper uses integer coordinates for precision.
# We scale floating-point mm coordinates by this factor.
_CLIPPER_SCALE = 1000  # 1 mm  → 1000 clipper units  → 0.001 mm resolution

# Offset contours below this area (mm^2) are rounding debris
_MIN_CONTOUR_AREA = 1e-4


class WallKind(Enum):
    """Kind of loop emitted for a ring."""

    OUTER = "WALL-OUTER"
    INNER = "WALL-INNER"
    SKIN = "SKIN"


class WallState(Enum):
    """Per-ring progress of wall generation."""

    NO_WALL = "no_wall"
    OUTER_WALLS_OK = "outer_walls_ok"
    INNER_WALLS_OK = "inner_walls_ok"
    INNER_SUPPRESSED = "inner_suppressed"
    SKIN_EMITTED = "skin_emitted"
    SKIN_SKIPPED = "skin_skipped"


@dataclass(frozen=True)
class WallLoop:
    """
    One emitted loop.

    Attributes:
        points: Loop geometry
        kind: OUTER, INNER or SKIN
        ring_id: Index of the source ring within its layer
        index: Wall number counted from the boundary; -1 for SKIN
    """

    points: Path
    kind: WallKind
    ring_id: int
    index: int


@dataclass(frozen=True)
class WallSet:
    """
    Result of wall generation for one ring.

    ``skin_boundaries`` holds one contour per island left inside the
    innermost wall, largest first; it is empty when skin is not allowed.
    """

    ring_id: int
    loops: Tuple[WallLoop, ...] = ()
    state: WallState = WallState.NO_WALL
    skin_boundaries: Tuple[Path, ...] = ()
    dropped_walls: int = 0

    @property
    def skin_boundary(self) -> Optional[Path]:
        """Largest skin boundary contour, or None."""
        return self.skin_boundaries[0] if self.skin_boundaries else None

    def loops_of(self, kind: WallKind) -> List[WallLoop]:
        return [loop for loop in self.loops if loop.kind == kind]


def _to_clipper(polygon: PathLike) -> List[Tuple[int, int]]:
    """Scale floating-point polygon to pyclipper integer coordinates."""
    return [(int(round(x * _CLIPPER_SCALE)), int(round(y * _CLIPPER_SCALE)))
            for x, y in polygon]


def _from_clipper(path: list) -> List[Tuple[float, float]]:
    """Scale pyclipper integer coordinates back to floating-point mm."""
    return [(x / _CLIPPER_SCALE, y / _CLIPPER_SCALE) for x, y in path]


def _ensure_ccw(polygon: PathLike) -> List[Tuple[float, float]]:
    """Ensure polygon is counter-clockwise."""
    points = [tuple(p) for p in polygon]
    if Path(tuple(points)).signed_area < 0:
        return list(reversed(points))
    return points


def offset_contours(path: PathLike, distance: float, is_hole: bool = False) -> List[Path]:
    """
    Offset a ring towards its material side, keeping every island.

    Mesh sections carry collinear vertices that integer rounding turns
    into micron-sized self-touches after a miter offset. The input is
    cleaned with ``CleanPolygon`` and the output re-simplified with
    ``SimplifyPolygons`` so every returned contour is a simple polygon.

    Parameters:
        path: Ring to offset (any winding; open paths are treated as closed).
        distance: Offset distance in mm. Positive moves toward material:
            structures shrink, holes grow.
        is_hole: Whether the ring bounds a hole.

    Returns:
        Outer contours (CCW), largest first; empty if the ring collapsed.
    """
    if len(path) < 3:
        return []

    poly = _ensure_ccw(path)
    if distance == 0:
        return [Path(tuple(poly))]

    cleaned = pyclipper.CleanPolygon(_to_clipper(poly))
    if len(cleaned) < 3:
        return []

    pco = pyclipper.PyclipperOffset()
    pco.AddPath(cleaned, pyclipper.JT_MITER, pyclipper.ET_CLOSEDPOLYGON)

    # Negative delta shrinks a CCW polygon in Clipper convention
    delta = int(round(distance * _CLIPPER_SCALE))
    result = pco.Execute(delta if is_hole else -delta)
    if not result:
        return []

    result = pyclipper.SimplifyPolygons(result, pyclipper.PFT_NONZERO)

    # Negative-area results are holes of the offset shape, not walls
    min_area = _MIN_CONTOUR_AREA * _CLIPPER_SCALE ** 2
    outers = sorted(
        (p for p in result if pyclipper.Area(p) > min_area),
        key=pyclipper.Area,
        reverse=True,
    )

    contours = []
    for p in outers:
        out = Path.from_points(_from_clipper(p))
        if len(out) >= 3:
            contours.append(out)
    return contours


def offset_path(path: PathLike, distance: float, is_hole: bool = False) -> Optional[Path]:
    """
    Offset a ring towards its material side using pyclipper.

    Parameters:
        path: Ring to offset (any winding; open paths are treated as closed).
        distance: Offset distance in mm. Positive moves toward material:
            structures shrink, holes grow.
        is_hole: Whether the ring bounds a hole.

    Returns:
        Largest resulting contour (CCW), or None if the ring collapsed.
    """
    contours = offset_contours(path, distance, is_hole)
    return contours[0] if contours else None


def _validate_wall(
    contours: Sequence[Path],
    previous_area: float,
    is_hole: bool,
) -> Optional[str]:
    """Return the reason a candidate depth is unusable, or None."""
    if not contours:
        return "collapsed"

    area = 0.0
    for contour in contours:
        shape = ShapelyPolygon(contour.points)
        if not shape.is_valid:
            shape = shape.buffer(0)
        if shape.is_empty or shape.area <= 0:
            return "invalid"
        area += shape.area

    if is_hole and area <= previous_area:
        return "not_growing"
    if not is_hole and area >= previous_area:
        return "not_shrinking"

    return None


def _check_clearance(
    contours: Sequence[Path],
    depth: int,
    is_hole: bool,
    nozzle_diameter: float,
    neighbors: Sequence[PathLike],
) -> Optional[str]:
    """
    Clearance rules for walls beyond the outer one.

    Each contour must survive a further quarter-nozzle inset and keep
    ``d*(depth+0.5) + d`` away from every neighbouring ring: that ring's
    own wall of the same depth sits ``d*(depth+0.5)`` in, and the two
    centre lines need a full nozzle width between them.
    """
    required = nozzle_diameter * (depth + 0.5) + nozzle_diameter

    for candidate in contours:
        if offset_path(candidate, nozzle_diameter / 4.0, is_hole) is None:
            return "no_room"

        cand_bounds = candidate.bounds
        for neighbor in neighbors:
            if len(neighbor) < 2:
                continue
            if not cand_bounds.overlaps(path_bounds(neighbor), margin=required):
                continue
            if min_distance_between_paths(candidate, neighbor) < required:
                return "insufficient_clearance"

    return None


def _total_area(contours: Sequence[Path]) -> float:
    return sum(c.area for c in contours)


def generate_walls(
    path: PathLike,
    nesting: NestingInfo,
    nozzle_diameter: float,
    wall_count: int,
    ring_id: int = 0,
    neighbors: Sequence[PathLike] = (),
    skin_layer: bool = False,
    trace: Optional[TraceCallback] = None,
) -> WallSet:
    """
    Generate the wall loops of one ring, outer first.

    Wall ``k`` is the ring offset by ``d*(k+0.5)`` towards material, one
    loop per resulting island. The first depth failing validation is
    dropped along with all deeper walls. When every wall survives, the
    skin boundary ``d*(n+0.5)`` in is computed; on skin layers it is
    emitted right after the innermost walls.

    Parameters:
        path: Source ring (at least 3 points).
        nesting: Classification of the ring within its layer.
        nozzle_diameter: Extrusion width ``d`` (mm).
        wall_count: Number of structural walls ``n``.
        ring_id: Index of the ring within its layer.
        neighbors: Rings that bound the same material region.
        skin_layer: Emit the SKIN loops in this pass.
        trace: Optional instrumentation callback.

    Returns:
        WallSet with loops, final state and skin boundaries.

    Raises:
        InvariantViolationError: If the ring has fewer than 3 points.
    """
    if len(path) < 3:
        raise InvariantViolationError(
            "Ring reached wall generation with fewer than 3 points",
            ring_id=ring_id,
            details={"points": len(path)},
        )

    emit = resolve_trace(trace)
    is_hole = nesting.is_hole
    source = path if isinstance(path, Path) else Path(tuple(path))
    previous_area = source.area

    loops: List[WallLoop] = []
    dropped = 0

    for k in range(wall_count):
        contours = offset_contours(source, nozzle_diameter * (k + 0.5), is_hole)
        reason = _validate_wall(contours, previous_area, is_hole)
        if reason is None and k >= 1:
            reason = _check_clearance(contours, k, is_hole, nozzle_diameter, neighbors)

        if reason is not None:
            dropped = wall_count - k
            logger.debug("Ring %d: dropping walls %d..%d (%s)", ring_id, k, wall_count - 1, reason)
            emit("wall_dropped", {"ring_id": ring_id, "index": k, "dropped": dropped, "reason": reason})
            break

        kind = WallKind.OUTER if k == 0 else WallKind.INNER
        loops.extend(WallLoop(points=c, kind=kind, ring_id=ring_id, index=k) for c in contours)
        previous_area = _total_area(contours)

    if not loops:
        emit("walls_generated", {"ring_id": ring_id, "state": WallState.NO_WALL.value, "loops": 0})
        return WallSet(ring_id=ring_id, state=WallState.NO_WALL, dropped_walls=dropped)

    skin_boundaries: Tuple[Path, ...] = ()
    if dropped:
        state = WallState.INNER_SUPPRESSED
    else:
        state = WallState.INNER_WALLS_OK
        contours = offset_contours(source, nozzle_diameter * (wall_count + 0.5), is_hole)
        reason = _validate_wall(contours, previous_area, is_hole)
        if reason is None:
            reason = _check_clearance(contours, wall_count, is_hole, nozzle_diameter, neighbors)
        if reason is not None:
            logger.debug("Ring %d: no skin boundary (%s)", ring_id, reason)
            emit("skin_boundary_rejected", {"ring_id": ring_id, "reason": reason})
            state = WallState.SKIN_SKIPPED
        else:
            skin_boundaries = tuple(contours)
            if skin_layer:
                loops.extend(
                    WallLoop(points=c, kind=WallKind.SKIN, ring_id=ring_id, index=-1)
                    for c in contours
                )
                state = WallState.SKIN_EMITTED

    emit("walls_generated", {"ring_id": ring_id, "state": state.value, "loops": len(loops)})
    return WallSet(
        ring_id=ring_id,
        loops=tuple(loops),
        state=state,
        skin_boundaries=skin_boundaries,
        dropped_walls=dropped,
    )

"""
Nesting classification - hole/structure status for each ring of a layer.

A ring's nesting level is the number of other rings of the same layer whose
polygon contains its first vertex (even-odd ray casting). Odd levels are
holes, even levels are solid structure, so classification alternates with
depth: outer skin, hole, island inside the hole, and so on.

The first vertex stands in for the whole ring. Rings touching each other can
put that vertex on a neighbour's edge; the point is then nudged a little
along its own ring's outward normal and re-tested. If it still sits on the
boundary the result is flagged ``ambiguous`` rather than guessed.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from shellcore.core.context import TraceCallback, resolve_trace
from shellcore.core.geometry import (
    EPSILON,
    PathLike,
    Point2D,
    path_bounds,
    point_in_polygon,
    point_on_boundary,
    polygon_area_signed,
)

logger = logging.getLogger(__name__)

# Outward nudge for a representative point sitting on an edge (mm)
NUDGE_DISTANCE = 1e-3


@dataclass(frozen=True)
class NestingInfo:
    """Nesting classification of one ring."""

    level: int
    ambiguous: bool = False

    @property
    def is_hole(self) -> bool:
        return self.level % 2 == 1


def _outward_normal(path: PathLike) -> Point2D:
    """Unit normal at the first vertex pointing away from the ring's interior."""
    n = len(path)
    prev, here, nxt = path[n - 1], path[0], path[1]

    def edge_normal(a: Point2D, b: Point2D) -> Point2D:
        dx, dy = b[0] - a[0], b[1] - a[1]
        length = math.hypot(dx, dy)
        if length == 0.0:
            return (0.0, 0.0)
        # Right-hand normal is outward for a CCW ring
        return (dy / length, -dx / length)

    n1 = edge_normal(prev, here)
    n2 = edge_normal(here, nxt)
    nx, ny = n1[0] + n2[0], n1[1] + n2[1]
    length = math.hypot(nx, ny)
    if length < 1e-12:
        nx, ny, length = n2[0], n2[1], math.hypot(n2[0], n2[1])
    if length == 0.0:
        return (0.0, 0.0)

    sign = 1.0 if polygon_area_signed(path) >= 0 else -1.0
    return (sign * nx / length, sign * ny / length)


def _nudged_point(path: PathLike, distance: float = NUDGE_DISTANCE) -> Point2D:
    nx, ny = _outward_normal(path)
    return (path[0][0] + nx * distance, path[0][1] + ny * distance)


def classify_nesting(
    paths: Sequence[PathLike],
    epsilon: float = EPSILON,
    trace: Optional[TraceCallback] = None,
) -> List[NestingInfo]:
    """
    Classify every ring of one layer.

    Parameters:
        paths: The layer's rings, typically from ``stitch_segments_to_paths``.
        epsilon: Distance below which a point counts as on an edge.
        trace: Optional instrumentation callback.

    Returns:
        One ``NestingInfo`` per input path, in input order.
    """
    emit = resolve_trace(trace)
    bounds = [path_bounds(p) if len(p) >= 3 else None for p in paths]
    results: List[NestingInfo] = []

    for i, path in enumerate(paths):
        if len(path) < 3:
            results.append(NestingInfo(level=0))
            continue

        rep = (float(path[0][0]), float(path[0][1]))
        level = 0
        ambiguous = False

        for j, other in enumerate(paths):
            other_bounds = bounds[j]
            if j == i or other_bounds is None:
                continue
            if not other_bounds.contains_point(rep, epsilon):
                continue

            test_point = rep
            if point_on_boundary(rep, other, epsilon):
                test_point = _nudged_point(path)
                if point_on_boundary(test_point, other, epsilon):
                    ambiguous = True
                    logger.warning(
                        "Ambiguous containment of ring %d against ring %d at (%.4f, %.4f)",
                        i, j, rep[0], rep[1],
                    )
                    emit("nesting_ambiguous", {"ring": i, "other": j, "point": rep})
                    continue

            if point_in_polygon(test_point, other):
                level += 1

        results.append(NestingInfo(level=level, ambiguous=ambiguous))

    return results


def _parent_of(i: int, paths: Sequence[PathLike], nesting: Sequence[NestingInfo]) -> Optional[int]:
    """Index of the ring one level up that contains ring ``i``."""
    level = nesting[i].level
    if level == 0 or len(paths[i]) < 3:
        return None
    rep = paths[i][0]
    for j, other in enumerate(paths):
        if j == i or nesting[j].level != level - 1 or len(other) < 3:
            continue
        if point_in_polygon(rep, other):
            return j
    return None


def material_region_neighbors(
    paths: Sequence[PathLike],
    nesting: Sequence[NestingInfo],
) -> List[List[int]]:
    """
    For each ring, the other rings bounding the same material region.

    A structure ring at level L bounds its region together with the holes
    one level down inside it. A hole shares the region of its parent
    structure, so its neighbours are the parent and the parent's other
    holes. Walls of rings in the same region grow toward each other.
    """
    parents = [_parent_of(i, paths, nesting) for i in range(len(paths))]
    children: List[List[int]] = [[] for _ in paths]
    for i, parent in enumerate(parents):
        if parent is not None:
            children[parent].append(i)

    neighbors: List[List[int]] = []
    for i, info in enumerate(nesting):
        if not info.is_hole:
            region = [i] + children[i]
        elif parents[i] is not None:
            region = [parents[i]] + children[parents[i]]
        else:
            region = [i]
        neighbors.append([j for j in region if j != i])
    return neighbors

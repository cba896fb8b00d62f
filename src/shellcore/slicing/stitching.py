"""
Segment stitching - rebuild ordered rings from a layer's loose segments.

The mesh section collaborator hands over each layer as an unordered bag of
undirected line segments. Stitching walks them greedily: start a chain at an
unconsumed segment, attach whichever unconsumed segment has an endpoint
within ``epsilon`` of the chain's open end, and stop when the chain returns
to its start (closed ring) or runs out of neighbours (open ring).

Endpoint lookup goes through a **scipy** ``cKDTree`` so dense layers stay
well below the quadratic cost of scanning every segment per step.

Open rings are not errors. They are returned with ``closed=False`` and the
later stages treat them as best-effort geometry.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Tuple

import numpy as np
from scipy.spatial import cKDTree

from shellcore.core.context import TraceCallback, resolve_trace
from shellcore.core.geometry import EPSILON, Path, Point2D, Segment, points_equal

logger = logging.getLogger(__name__)


def _normalize_segments(segments: Iterable[Any], epsilon: float) -> List[Segment]:
    """Coerce raw segments and drop zero-length ones."""
    cleaned: List[Segment] = []
    for raw in segments:
        seg = raw if isinstance(raw, Segment) else Segment.from_raw(raw)
        if seg.is_degenerate(epsilon):
            continue
        cleaned.append(seg)
    return cleaned


class _EndpointIndex:
    """k-d tree over segment endpoints; endpoint ``2*i`` / ``2*i+1`` belong to segment ``i``."""

    def __init__(self, segments: List[Segment], epsilon: float) -> None:
        self.segments = segments
        self.epsilon = epsilon
        self.points = np.asarray(
            [pt for seg in segments for pt in (seg.start, seg.end)], dtype=float
        )
        self.tree = cKDTree(self.points)
        self.consumed = np.zeros(len(segments), dtype=bool)

    def take_next(self, point: Point2D) -> Optional[Point2D]:
        """
        Consume the unconsumed segment touching ``point`` and return its far end.

        When several segments touch, the one whose endpoint is nearest wins.
        """
        best: Optional[Tuple[float, int]] = None
        for endpoint in self.tree.query_ball_point(point, r=self.epsilon):
            seg_idx = endpoint // 2
            if self.consumed[seg_idx]:
                continue
            px, py = self.points[endpoint]
            dist = (px - point[0]) ** 2 + (py - point[1]) ** 2
            if best is None or dist < best[0]:
                best = (dist, endpoint)

        if best is None:
            return None

        endpoint = best[1]
        self.consumed[endpoint // 2] = True
        far = self.points[endpoint ^ 1]
        return (float(far[0]), float(far[1]))


def _extend_chain(chain: List[Point2D], index: _EndpointIndex) -> bool:
    """Grow ``chain`` at its tail. Returns True once the chain closes."""
    while True:
        if len(chain) >= 4 and points_equal(chain[-1], chain[0], index.epsilon):
            chain.pop()
            return True

        far = index.take_next(chain[-1])
        if far is None:
            return False
        if not points_equal(chain[-1], far, index.epsilon):
            chain.append(far)


def stitch_segments_to_paths(
    segments: Iterable[Any],
    epsilon: float = EPSILON,
    trace: Optional[TraceCallback] = None,
) -> List[Path]:
    """
    Reconstruct ordered rings from one layer's unordered segments.

    Parameters:
        segments: Segments in any format accepted by ``Segment.from_raw``.
        epsilon: Endpoint matching tolerance (mm).
        trace: Optional instrumentation callback.

    Returns:
        Paths in discovery order. Chains that could not be closed are
        returned with ``closed=False``.
    """
    emit = resolve_trace(trace)
    cleaned = _normalize_segments(segments, epsilon)
    if not cleaned:
        return []

    index = _EndpointIndex(cleaned, epsilon)
    paths: List[Path] = []
    open_count = 0

    for seed, seg in enumerate(cleaned):
        if index.consumed[seed]:
            continue
        index.consumed[seed] = True

        chain: List[Point2D] = [seg.start, seg.end]
        closed = _extend_chain(chain, index)
        if not closed:
            # Dead end ahead: the seed may sit mid-polyline, so also walk back
            chain.reverse()
            closed = _extend_chain(chain, index)
            chain.reverse()

        path = Path.from_points(chain, closed=closed, epsilon=epsilon)
        if len(path) < 2:
            continue
        if path.closed and len(path) < 3:
            path = Path(path.points, closed=False)

        if not path.closed:
            open_count += 1
            logger.debug(
                "Open chain of %d points from (%.4f, %.4f) to (%.4f, %.4f)",
                len(path), path[0][0], path[0][1], path[-1][0], path[-1][1],
            )
            emit("stitch_open_path", {"points": len(path), "start": path[0], "end": path[-1]})

        paths.append(path)

    emit("stitch_complete", {"segments": len(cleaned), "paths": len(paths), "open": open_count})
    return paths

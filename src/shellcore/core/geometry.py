"""
Planar geometry primitives for layer cross-sections.

Points are plain ``(x, y)`` float tuples in the layer's local frame and are
compared with an epsilon (``EPSILON``), never with exact float equality.
Rings are carried as immutable ``Path`` values whose closure is implicit:
the first point is not repeated at the end.

Containment uses even-odd ray casting, both scalar (``point_in_polygon``)
and vectorized over numpy sample arrays (``points_in_polygon``). Distances
between rings are delegated to **shapely**.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, NamedTuple, Sequence, Tuple, Union

import numpy as np
from shapely.geometry import LinearRing, LineString

Point2D = Tuple[float, float]

# Point coincidence tolerance (mm)
EPSILON = 1e-4


def points_equal(a: Point2D, b: Point2D, epsilon: float = EPSILON) -> bool:
    """True when two points coincide within ``epsilon``."""
    return math.hypot(a[0] - b[0], a[1] - b[1]) <= epsilon


def _coerce_point(raw: Any) -> Point2D:
    """Accept ``{"x", "y"[, "z"]}`` mappings, sequences or numpy rows."""
    if isinstance(raw, dict):
        return (float(raw["x"]), float(raw["y"]))
    if hasattr(raw, "x") and hasattr(raw, "y"):
        return (float(raw.x), float(raw.y))
    return (float(raw[0]), float(raw[1]))


class Segment(NamedTuple):
    """One undirected edge of a layer cross-section."""

    start: Point2D
    end: Point2D

    @classmethod
    def from_raw(cls, raw: Any) -> "Segment":
        """
        Build a segment from the section collaborator's formats.

        Accepts ``{"start": {...}, "end": {...}}`` mappings, existing
        segments and ``(start, end)`` pairs. Any z coordinate is dropped.
        """
        if isinstance(raw, dict):
            return cls(_coerce_point(raw["start"]), _coerce_point(raw["end"]))
        start, end = raw[0], raw[1]
        return cls(_coerce_point(start), _coerce_point(end))

    @property
    def length(self) -> float:
        return math.hypot(self.end[0] - self.start[0], self.end[1] - self.start[1])

    def is_degenerate(self, epsilon: float = EPSILON) -> bool:
        return points_equal(self.start, self.end, epsilon)


class Bounds(NamedTuple):
    """Axis-aligned bounding box of a path."""

    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def overlaps(self, other: "Bounds", margin: float = 0.0) -> bool:
        """Cheap rejection test: do the two boxes (grown by ``margin``) touch?"""
        return not (
            other.min_x > self.max_x + margin
            or other.max_x < self.min_x - margin
            or other.min_y > self.max_y + margin
            or other.max_y < self.min_y - margin
        )

    def contains_point(self, point: Point2D, margin: float = 0.0) -> bool:
        return (
            self.min_x - margin <= point[0] <= self.max_x + margin
            and self.min_y - margin <= point[1] <= self.max_y + margin
        )


@dataclass(frozen=True)
class Path:
    """
    An ordered ring of points.

    Attributes:
        points: Vertices in order; consecutive points are distinct
        closed: False when stitching could not close the ring; such paths
            are still carried downstream as best-effort geometry
    """

    points: Tuple[Point2D, ...]
    closed: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "points", tuple((float(p[0]), float(p[1])) for p in self.points)
        )

    @classmethod
    def from_points(
        cls,
        points: Iterable[Point2D],
        closed: bool = True,
        epsilon: float = EPSILON,
    ) -> "Path":
        """Build a path, dropping consecutive duplicates and a repeated start."""
        cleaned: List[Point2D] = []
        for p in points:
            point = (float(p[0]), float(p[1]))
            if cleaned and points_equal(cleaned[-1], point, epsilon):
                continue
            cleaned.append(point)
        if closed and len(cleaned) > 1 and points_equal(cleaned[0], cleaned[-1], epsilon):
            cleaned.pop()
        return cls(tuple(cleaned), closed)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[Point2D]:
        return iter(self.points)

    def __getitem__(self, index: int) -> Point2D:
        return self.points[index]

    @property
    def signed_area(self) -> float:
        return polygon_area_signed(self.points)

    @property
    def area(self) -> float:
        return abs(self.signed_area)

    @property
    def bounds(self) -> Bounds:
        return path_bounds(self)

    def is_ccw(self) -> bool:
        return self.signed_area > 0

    def reversed(self) -> "Path":
        return Path(tuple(reversed(self.points)), self.closed)

    def as_array(self) -> np.ndarray:
        return np.asarray(self.points, dtype=float).reshape(-1, 2)


PathLike = Union[Path, Sequence[Point2D]]


def polygon_area_signed(polygon: Sequence[Point2D]) -> float:
    """Compute signed area (positive = CCW, negative = CW)."""
    area = 0.0
    n = len(polygon)
    for i in range(n):
        j = (i + 1) % n
        area += polygon[i][0] * polygon[j][1]
        area -= polygon[j][0] * polygon[i][1]
    return area / 2.0


def path_bounds(path: PathLike) -> Bounds:
    """Get bounding box of a path."""
    if len(path) == 0:
        raise ValueError("Path has no points")
    xs = [p[0] for p in path]
    ys = [p[1] for p in path]
    return Bounds(min(xs), max(xs), min(ys), max(ys))


def point_in_polygon(point: Point2D, polygon: PathLike) -> bool:
    """
    Even-odd ray casting test.

    A horizontal ray is cast from ``point`` towards +x and edge crossings
    are counted. Points exactly on an edge may land either way; callers
    that care use ``point_on_boundary`` first.
    """
    x, y = point[0], point[1]
    n = len(polygon)
    if n < 3:
        return False
    inside = False

    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if ((yi > y) != (yj > y)) and (x < (xj - xi) * (y - yi) / (yj - yi) + xi):
            inside = not inside
        j = i

    return inside


def points_in_polygon(xs: np.ndarray, ys: np.ndarray, polygon: PathLike) -> np.ndarray:
    """Vectorized ``point_in_polygon`` over arrays of sample coordinates."""
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    inside = np.zeros(x.shape, dtype=bool)
    if len(polygon) < 3:
        return inside

    pts = np.asarray([tuple(p) for p in polygon], dtype=float)
    xi, yi = pts[:, 0], pts[:, 1]
    xj, yj = np.roll(xi, 1), np.roll(yi, 1)

    with np.errstate(divide="ignore", invalid="ignore"):
        for k in range(len(pts)):
            straddles = (yi[k] > y) != (yj[k] > y)
            if not straddles.any():
                continue
            x_cross = (xj[k] - xi[k]) * (y - yi[k]) / (yj[k] - yi[k]) + xi[k]
            inside ^= straddles & (x < x_cross)

    return inside


def distance_point_to_segment(point: Point2D, a: Point2D, b: Point2D) -> float:
    """Euclidean distance from ``point`` to segment ``ab``."""
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return math.hypot(point[0] - a[0], point[1] - a[1])
    t = ((point[0] - a[0]) * dx + (point[1] - a[1]) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(point[0] - (a[0] + t * dx), point[1] - (a[1] + t * dy))


def point_on_boundary(point: Point2D, polygon: PathLike, epsilon: float = EPSILON) -> bool:
    """True when ``point`` lies within ``epsilon`` of any edge of ``polygon``."""
    n = len(polygon)
    for i in range(n):
        if distance_point_to_segment(point, polygon[i], polygon[(i + 1) % n]) <= epsilon:
            return True
    return False


def _as_shapely_curve(path: PathLike) -> LineString:
    pts = [tuple(p) for p in path]
    closed = getattr(path, "closed", True)
    if closed and len(pts) >= 3:
        return LinearRing(pts)
    return LineString(pts)


def min_distance_between_paths(a: PathLike, b: PathLike) -> float:
    """
    Minimum distance between the boundaries of two paths.

    Used for wall clearance checks; returns ``inf`` if either path has
    fewer than two points.
    """
    if len(a) < 2 or len(b) < 2:
        return math.inf
    return float(_as_shapely_curve(a).distance(_as_shapely_curve(b)))

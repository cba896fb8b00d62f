"""
Exposure analysis - which parts of a ring need solid skin.

A ring on layer ``i`` is compared against the material of the layers in a
window of ``skin_layer_count`` layers above and below it. Instead of exact
polygon clipping, the ring's bounding box is covered by a regular grid of
sample points (``resolution`` samples, ``round(sqrt(resolution))`` per
side) and containment is evaluated per sample with vectorized even-odd ray
casting. Candidate rings of neighbouring layers are pre-filtered by
bounding box.

Two kinds of skin regions come out of the analysis:

* exposed areas: connected patches of the ring not backed by material in
  every layer of a direction, kept when the coverage around the patch
  (its bounding cells grown by ``LOCAL_MARGIN``) is below
  ``COVERAGE_THRESHOLD``. A narrow ledge therefore gets skin however
  small it is compared to the whole ring, while isolated sampling noise
  does not. A window clipped by the model boundary (true top or bottom
  surface) exposes the whole ring;
* fully covered regions: samples that no single pair of covering regions
  above and below backs at the same time. These seal cavities that close
  or open within the window even though overall coverage looks fine.

Sample cells are merged back into rings with **shapely**.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy import ndimage
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry import box
from shapely.geometry.polygon import orient
from shapely.ops import unary_union

from shellcore.core.context import TraceCallback, resolve_trace
from shellcore.core.geometry import Bounds, Path, PathLike, path_bounds, points_in_polygon

logger = logging.getLogger(__name__)

# Fraction of a neighbourhood that must be backed in every layer of a direction
COVERAGE_THRESHOLD = 0.90

# Cells added around an uncovered patch when measuring its local coverage
LOCAL_MARGIN = 2

DEFAULT_RESOLUTION = 961


@dataclass(frozen=True)
class ExposureWindow:
    """Neighbouring layers in scope for one layer's exposure analysis."""

    layer_index: int
    skin_layer_count: int
    total_layers: int

    @property
    def above(self) -> range:
        top = min(self.total_layers - 1, self.layer_index + self.skin_layer_count)
        return range(self.layer_index + 1, top + 1)

    @property
    def below(self) -> range:
        return range(max(0, self.layer_index - self.skin_layer_count), self.layer_index)

    @property
    def exposed_from_above(self) -> bool:
        return self.layer_index + self.skin_layer_count >= self.total_layers

    @property
    def exposed_from_below(self) -> bool:
        return self.layer_index - self.skin_layer_count < 0


@dataclass(frozen=True)
class ExposureResult:
    """
    Exposure analysis of one ring.

    Attributes:
        covering_regions_above: Per-layer covered areas above, unmerged
        covering_regions_below: Per-layer covered areas below, unmerged
        exposed_areas: Parts of the ring open to air
        fully_covered_regions: Cavity-closing patches
        coverage_above: Fraction of the ring backed by every layer above
        coverage_below: Fraction of the ring backed by every layer below
    """

    covering_regions_above: List[Path] = field(default_factory=list)
    covering_regions_below: List[Path] = field(default_factory=list)
    exposed_areas: List[Path] = field(default_factory=list)
    fully_covered_regions: List[Path] = field(default_factory=list)
    coverage_above: float = 1.0
    coverage_below: float = 1.0

    @property
    def needs_skin(self) -> bool:
        return bool(self.exposed_areas or self.fully_covered_regions)

    @classmethod
    def merge(cls, results: Sequence["ExposureResult"]) -> "ExposureResult":
        """Combine the analyses of several skin boundaries of one ring."""
        return cls(
            covering_regions_above=[p for r in results for p in r.covering_regions_above],
            covering_regions_below=[p for r in results for p in r.covering_regions_below],
            exposed_areas=[p for r in results for p in r.exposed_areas],
            fully_covered_regions=[p for r in results for p in r.fully_covered_regions],
            coverage_above=min((r.coverage_above for r in results), default=1.0),
            coverage_below=min((r.coverage_below for r in results), default=1.0),
        )


@dataclass(frozen=True)
class SampleGrid:
    """Cell-centred sample points over a bounding box, flattened row-major."""

    bounds: Bounds
    n: int
    xs: np.ndarray
    ys: np.ndarray
    x_edges: np.ndarray
    y_edges: np.ndarray

    @classmethod
    def over(cls, bounds: Bounds, resolution: int) -> "SampleGrid":
        n = max(2, int(round(math.sqrt(resolution))))
        x_edges = bounds.min_x + np.arange(n + 1) * (bounds.width / n)
        y_edges = bounds.min_y + np.arange(n + 1) * (bounds.height / n)
        cx = (x_edges[:-1] + x_edges[1:]) / 2.0
        cy = (y_edges[:-1] + y_edges[1:]) / 2.0
        gx, gy = np.meshgrid(cx, cy)
        return cls(bounds, n, gx.ravel(), gy.ravel(), x_edges, y_edges)

    @property
    def cell_size(self) -> float:
        return max(self.bounds.width, self.bounds.height) / self.n

    def empty_mask(self) -> np.ndarray:
        return np.zeros(self.xs.shape, dtype=bool)

    def row_runs(self, mask: np.ndarray) -> List[Tuple[int, int, int]]:
        """``(row, first_col, last_col)`` for every run of set cells."""
        runs = []
        for row, cells in enumerate(mask.reshape(self.n, self.n)):
            if not cells.any():
                continue
            padded = np.concatenate(([False], cells, [False]))
            edges = np.flatnonzero(padded[1:] != padded[:-1])
            for start, stop in zip(edges[::2], edges[1::2]):
                runs.append((row, int(start), int(stop) - 1))
        return runs

    def run_box(self, run: Tuple[int, int, int]) -> Tuple[float, float, float, float]:
        row, c0, c1 = run
        return (
            float(self.x_edges[c0]),
            float(self.y_edges[row]),
            float(self.x_edges[c1 + 1]),
            float(self.y_edges[row + 1]),
        )


def _rectangles(grid: SampleGrid, mask: np.ndarray) -> List[Path]:
    """Row-run rectangles of the set samples, not merged across rows."""
    rects = []
    for run in grid.row_runs(mask):
        x0, y0, x1, y1 = grid.run_box(run)
        rects.append(Path(((x0, y0), (x1, y0), (x1, y1), (x0, y1))))
    return rects


def _merge_cells(grid: SampleGrid, mask: np.ndarray) -> List[Path]:
    """Union the set cells into region rings (exteriors CCW, interiors CW)."""
    runs = grid.row_runs(mask)
    if not runs:
        return []

    merged = unary_union([box(*grid.run_box(run)) for run in runs])
    polygons = getattr(merged, "geoms", [merged])

    regions: List[Path] = []
    for poly in polygons:
        if not isinstance(poly, ShapelyPolygon) or poly.is_empty:
            continue
        poly = orient(poly, sign=1.0)
        regions.append(Path.from_points(poly.exterior.coords))
        for interior in poly.interiors:
            regions.append(Path.from_points(interior.coords))
    return regions


def _material_mask(
    grid: SampleGrid,
    rings: Sequence[PathLike],
    margin: float = 0.0,
) -> np.ndarray:
    """Even-odd material test of every sample against a layer's rings."""
    inside = grid.empty_mask()
    for ring in rings:
        if len(ring) < 3:
            continue
        if not grid.bounds.overlaps(path_bounds(ring), margin=margin):
            continue
        inside ^= points_in_polygon(grid.xs, grid.ys, ring)
    return inside


def _inside_any(grid: SampleGrid, regions: Sequence[PathLike], within: np.ndarray) -> np.ndarray:
    """Samples in ``within`` that fall inside at least one region."""
    hit = grid.empty_mask()
    for region in regions:
        if len(region) < 3:
            continue
        b = path_bounds(region)
        todo = (
            within
            & ~hit
            & (grid.xs >= b.min_x) & (grid.xs <= b.max_x)
            & (grid.ys >= b.min_y) & (grid.ys <= b.max_y)
        )
        if not todo.any():
            continue
        idx = np.flatnonzero(todo)
        hit[idx] = points_in_polygon(grid.xs[idx], grid.ys[idx], region)
    return hit


def _locally_exposed(grid: SampleGrid, own: np.ndarray, backed: np.ndarray) -> np.ndarray:
    """
    Uncovered samples of ``own`` whose neighbourhood is poorly backed.

    Uncovered samples are grouped into 4-connected patches. A patch is
    exposed when fewer than ``COVERAGE_THRESHOLD`` of the ring's samples
    in its bounding cells, grown by ``LOCAL_MARGIN``, are backed.
    """
    n = grid.n
    uncovered = (own & ~backed).reshape(n, n)
    exposed = np.zeros((n, n), dtype=bool)
    if not uncovered.any():
        return exposed.ravel()

    own_cells = own.reshape(n, n)
    backed_cells = (own & backed).reshape(n, n)
    labels, _ = ndimage.label(uncovered)

    for label, (rows, cols) in enumerate(ndimage.find_objects(labels), start=1):
        window = (
            slice(max(0, rows.start - LOCAL_MARGIN), rows.stop + LOCAL_MARGIN),
            slice(max(0, cols.start - LOCAL_MARGIN), cols.stop + LOCAL_MARGIN),
        )
        total = int(own_cells[window].sum())
        local = float(backed_cells[window].sum()) / total if total else 1.0
        if local < COVERAGE_THRESHOLD:
            exposed |= labels == label

    return exposed.ravel()


def resolve_fully_covered_regions(
    path: PathLike,
    above: Sequence[PathLike],
    below: Sequence[PathLike],
    resolution: int = DEFAULT_RESOLUTION,
    samples: Optional[np.ndarray] = None,
) -> List[Path]:
    """
    Regions of ``path`` not backed by any single above/below region pair.

    A sample is backed when some region above and some region below both
    contain it. Unbacked samples are merged into rings.

    Parameters:
        path: The ring under analysis.
        above: Covering regions from the layers above.
        below: Covering regions from the layers below.
        resolution: Number of grid samples over the ring's bounding box.
        samples: Optional boolean mask over that grid restricting which
            samples are considered; defaults to the samples inside ``path``.

    Returns:
        Merged unbacked regions, possibly empty.
    """
    if len(path) < 3:
        return []

    grid = SampleGrid.over(path_bounds(path), resolution)
    if samples is None:
        samples = points_in_polygon(grid.xs, grid.ys, path)
    else:
        samples = np.asarray(samples, dtype=bool)
    if not samples.any():
        return []

    backed = _inside_any(grid, above, samples)
    backed &= _inside_any(grid, below, backed)
    return _merge_cells(grid, samples & ~backed)


def compute_exposure(
    path: PathLike,
    layer_index: int,
    skin_layer_count: int,
    total_layers: int,
    all_layers_paths: Sequence[Sequence[PathLike]],
    resolution: int = DEFAULT_RESOLUTION,
    trace: Optional[TraceCallback] = None,
) -> ExposureResult:
    """
    Analyse how well a ring on ``layer_index`` is backed by its neighbours.

    Parameters:
        path: Ring (or skin boundary) to analyse.
        layer_index: Layer the ring belongs to.
        skin_layer_count: Window half-height in layers.
        total_layers: Number of layers in the model.
        all_layers_paths: Rings of every layer, indexed by layer.
        resolution: Number of grid samples over the ring's bounding box.
        trace: Optional instrumentation callback.

    Returns:
        ExposureResult for the ring.
    """
    emit = resolve_trace(trace)
    window = ExposureWindow(layer_index, skin_layer_count, total_layers)

    if len(path) < 3:
        return ExposureResult()

    grid = SampleGrid.over(path_bounds(path), resolution)
    margin = grid.cell_size

    own = points_in_polygon(grid.xs, grid.ys, path)
    own &= _material_mask(grid, all_layers_paths[layer_index], margin)
    total = int(own.sum())

    def sweep(layers: range) -> Tuple[List[Path], np.ndarray]:
        regions: List[Path] = []
        backed_everywhere = own.copy()
        for j in layers:
            covered = own & _material_mask(grid, all_layers_paths[j], margin)
            regions.extend(_rectangles(grid, covered))
            backed_everywhere &= covered
        return regions, backed_everywhere

    regions_above, backed_above = sweep(window.above)
    regions_below, backed_below = sweep(window.below)

    coverage_above = float(backed_above.sum()) / total if total else 1.0
    coverage_below = float(backed_below.sum()) / total if total else 1.0

    if window.exposed_from_above or window.exposed_from_below:
        exposed: List[Path] = [path if isinstance(path, Path) else Path(tuple(path))]
        exposed_mask = own
    else:
        exposed_mask = _locally_exposed(grid, own, backed_above)
        exposed_mask |= _locally_exposed(grid, own, backed_below)
        exposed = _merge_cells(grid, exposed_mask)

    fully_covered = resolve_fully_covered_regions(
        path,
        regions_above,
        regions_below,
        resolution=resolution,
        samples=own & ~exposed_mask,
    )

    logger.debug(
        "Layer %d: coverage above %.3f below %.3f, %d exposed, %d fully covered",
        layer_index, coverage_above, coverage_below, len(exposed), len(fully_covered),
    )
    emit(
        "exposure_computed",
        {
            "layer_index": layer_index,
            "coverage_above": coverage_above,
            "coverage_below": coverage_below,
            "exposed": len(exposed),
            "fully_covered": len(fully_covered),
        },
    )

    return ExposureResult(
        covering_regions_above=regions_above,
        covering_regions_below=regions_below,
        exposed_areas=exposed,
        fully_covered_regions=fully_covered,
        coverage_above=coverage_above,
        coverage_below=coverage_below,
    )

"""
Pipeline orchestrator for slicing a whole model.

Chains: per-layer segments -> rings + walls (phase 1) -> exposure + skin
(phase 2) -> ordered typed polylines per layer.

Phase 1 reads only its own layer's segments, so layers are independent.
Phase 2 reads the phase-1 rings of a window of neighbouring layers; those
are immutable once phase 1 has finished, so phase-2 layers are independent
too. Both phases run sequentially or on a thread pool.

A broken ring never aborts the run: invariant violations are caught per
ring, logged and recorded on that layer's output.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

import trimesh
from compas.geometry import Point

from shellcore.core.config import SlicerConfig
from shellcore.core.context import SliceContext, TraceCallback, resolve_trace
from shellcore.core.exceptions import InvariantViolationError, SlicingError
from shellcore.core.geometry import Path
from shellcore.core.logging import get_logger, run_context
from shellcore.slicing.contour_offset import WallKind, WallSet, WallState, generate_walls
from shellcore.slicing.exposure import ExposureResult, compute_exposure
from shellcore.slicing.mesh_section import section_mesh
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

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class LayerGeometry:
    """
    Phase-1 output of one layer, shared read-only during phase 2.

    Attributes:
        layer_index: Index of the layer
        paths: Stitched rings in discovery order
        nesting: Classification of each ring
        wall_sets: Wall result per ring; None where the ring failed
        errors: Messages of rings that failed
    """

    layer_index: int
    paths: Tuple[Path, ...] = ()
    nesting: Tuple[NestingInfo, ...] = ()
    wall_sets: Tuple[Optional[WallSet], ...] = ()
    errors: Tuple[str, ...] = ()


@dataclass
class StepResult:
    """Result of a single pipeline step."""

    name: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    duration_s: float = 0.0


@dataclass
class SliceResult:
    """Result of a complete slicing run."""

    success: bool
    config: SlicerConfig
    layers: List[LayerOutput] = field(default_factory=list)
    z_offset: float = 0.0
    steps: List[StepResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)

    @property
    def total_layers(self) -> int:
        return len(self.layers)

    @property
    def skin_layers(self) -> List[int]:
        """Indices of layers carrying at least one SKIN loop."""
        return [layer.layer_index for layer in self.layers if layer.has_skin]

    def layer_z(self, layer_index: int) -> float:
        """Mid-height of a layer."""
        return self.z_offset + self.config.layer_height * (layer_index + 0.5)

    def to_toolpath(self) -> Toolpath:
        """Lift every typed polyline to a 3D toolpath segment."""
        toolpath = Toolpath(layer_height=self.config.layer_height)
        for layer in self.layers:
            z = self.layer_z(layer.layer_index)
            for polyline in layer.polylines:
                toolpath.add_segment(
                    ToolpathSegment(
                        points=[Point(x, y, z) for x, y in polyline.points],
                        type=ToolpathType(polyline.type),
                        layer_index=layer.layer_index,
                        ring_id=polyline.ring_id,
                        extrusion_width=self.config.nozzle_diameter,
                    )
                )
        toolpath.total_layers = max(toolpath.total_layers, len(self.layers))
        return toolpath

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "config": self.config.model_dump(),
            "layers": [layer.to_dict() for layer in self.layers],
            "errors": list(self.errors),
            "timings": dict(self.timings),
        }


# Type alias for progress callback: (step_name, fraction 0.0-1.0)
ProgressCallback = Callable[[str, float], None]


def _noop_callback(step: str, pct: float) -> None:
    pass


class SlicePipeline:
    """Two-phase slicing orchestrator.

    Usage:
        pipeline = SlicePipeline(SlicerConfig(wall_count=3), max_workers=4)
        result = pipeline.slice_layers(per_layer_segments)
        for layer in result.layers:
            ...
    """

    def __init__(
        self,
        config: Optional[SlicerConfig] = None,
        max_workers: Optional[int] = None,
        trace: Optional[TraceCallback] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.config = config or SlicerConfig()
        self.max_workers = max_workers
        self._trace = resolve_trace(trace)
        self._progress = progress_callback or _noop_callback

    def slice_mesh(self, mesh: trimesh.Trimesh) -> SliceResult:
        """Section a mesh at mid-layer heights and slice the result.

        Raises:
            SlicingError: If the mesh is flat and yields no layers
        """
        layers = section_mesh(mesh, self.config.layer_height)
        if not layers:
            raise SlicingError(
                "Mesh has no height to slice",
                details={"bounds": mesh.bounds.tolist(), "layer_height": self.config.layer_height},
            )
        return self.slice_layers(layers, z_offset=float(mesh.bounds[0][2]))

    def slice_layers(
        self,
        layers: Sequence[Iterable[Any]],
        z_offset: float = 0.0,
    ) -> SliceResult:
        """Slice pre-sectioned layers, bottom to top.

        Args:
            layers: One unordered segment list per layer
            z_offset: Z of the model's bottom face, used for toolpath heights

        Returns:
            SliceResult; ``success`` is False if a whole phase failed
        """
        ctx = SliceContext(config=self.config, total_layers=len(layers), trace=self._trace)
        with run_context(total_layers=len(layers), wall_count=self.config.wall_count):
            return self._slice(ctx, layers, z_offset)

    def _slice(self, ctx: SliceContext, layers: Sequence[Iterable[Any]], z_offset: float) -> SliceResult:
        result = SliceResult(success=False, config=self.config, z_offset=z_offset)

        step = self._run_step(
            "rings_and_walls",
            lambda: self._map(
                lambda index: self._build_layer(ctx, index, layers[index]),
                range(len(layers)),
            ),
        )
        result.steps.append(step)
        if not step.success:
            result.errors.append(f"Wall generation failed: {step.error}")
            return result
        geometries: List[LayerGeometry] = step.data
        result.timings[step.name] = step.duration_s

        step = self._run_step(
            "skin",
            lambda: self._map(
                lambda index: self._assemble_layer(ctx, geometries, index),
                range(len(geometries)),
            ),
        )
        result.steps.append(step)
        if not step.success:
            result.errors.append(f"Skin resolution failed: {step.error}")
            return result
        result.layers = step.data
        result.timings[step.name] = step.duration_s

        for layer in result.layers:
            result.errors.extend(layer.errors)
        result.success = True
        return result

    def _map(self, fn: Callable[[int], T], indices: Iterable[int]) -> List[T]:
        """Apply ``fn`` to every index, in order, optionally on a thread pool."""
        if self.max_workers is None or self.max_workers <= 1:
            return [fn(i) for i in indices]
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(fn, indices))

    def _build_layer(self, ctx: SliceContext, index: int, segments: Iterable[Any]) -> LayerGeometry:
        """Phase 1: stitch, classify and wall one layer."""
        cfg = ctx.config
        paths = stitch_segments_to_paths(segments, trace=ctx.trace)
        nesting = classify_nesting(paths, trace=ctx.trace)
        neighbors = material_region_neighbors(paths, nesting)
        shell = is_shell_layer(index, cfg.skin_layer_count, ctx.total_layers)

        wall_sets: List[Optional[WallSet]] = []
        errors: List[str] = []
        for ring_id, path in enumerate(paths):
            try:
                wall_sets.append(
                    generate_walls(
                        path,
                        nesting[ring_id],
                        cfg.nozzle_diameter,
                        cfg.wall_count,
                        ring_id=ring_id,
                        neighbors=[paths[j] for j in neighbors[ring_id]],
                        skin_layer=shell,
                        trace=ctx.trace,
                    )
                )
            except InvariantViolationError as e:
                e.layer_index = index
                logger.error("ring_failed", layer=index, ring=ring_id, error=e.message)
                ctx.trace("ring_failed", {"layer_index": index, "ring_id": ring_id, "error": e.message})
                errors.append(f"layer {index} ring {ring_id}: {e.message}")
                wall_sets.append(None)

        return LayerGeometry(
            layer_index=index,
            paths=tuple(paths),
            nesting=tuple(nesting),
            wall_sets=tuple(wall_sets),
            errors=tuple(errors),
        )

    def _assemble_layer(
        self,
        ctx: SliceContext,
        geometries: Sequence[LayerGeometry],
        index: int,
    ) -> LayerOutput:
        """Phase 2: resolve skin and emit each ring's loops in order."""
        cfg = ctx.config
        geometry = geometries[index]
        all_paths = [g.paths for g in geometries]
        shell = is_shell_layer(index, cfg.skin_layer_count, ctx.total_layers)
        output = LayerOutput(layer_index=index, errors=list(geometry.errors))

        for ring_id, wall_set in enumerate(geometry.wall_sets):
            if wall_set is None:
                continue

            for loop in wall_set.loops:
                output.polylines.append(
                    TypedPolyline(loop.kind.value, ring_id, list(loop.points.points))
                )
            if wall_set.state is WallState.SKIN_EMITTED:
                continue

            exposures: List[ExposureResult] = []
            if (
                not shell
                and cfg.exposure_detection_enabled
                and not geometry.nesting[ring_id].is_hole
            ):
                exposures = [
                    compute_exposure(
                        boundary,
                        index,
                        cfg.skin_layer_count,
                        ctx.total_layers,
                        all_paths,
                        resolution=cfg.exposure_detection_resolution,
                        trace=ctx.trace,
                    )
                    for boundary in wall_set.skin_boundaries
                ]
            exposure = ExposureResult.merge(exposures) if exposures else None

            regions = resolve_skin_regions(
                wall_set,
                exposure,
                index,
                cfg.skin_layer_count,
                ctx.total_layers,
                cfg.exposure_detection_enabled,
            )
            for region in regions:
                output.polylines.append(
                    TypedPolyline(WallKind.SKIN.value, ring_id, list(region.points))
                )

        return output

    def _run_step(self, name: str, fn: Callable) -> StepResult:
        """Execute a single pipeline step with timing and error handling."""
        self._progress(name, 0.0)
        t0 = time.perf_counter()
        try:
            data = fn()
            duration = time.perf_counter() - t0
            self._progress(name, 1.0)
            logger.info("pipeline_step_complete", step=name, duration_s=round(duration, 2))
            return StepResult(name=name, success=True, data=data, duration_s=duration)
        except Exception as e:
            duration = time.perf_counter() - t0
            logger.error("pipeline_step_failed", step=name, duration_s=round(duration, 2), error=str(e))
            return StepResult(
                name=name, success=False, error=str(e), duration_s=duration
            )

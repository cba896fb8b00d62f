"""
Skin region resolution - the final skin fill boundaries of a ring.

Fixed top and bottom shells always get skin. Interior layers get skin only
where exposure analysis found it necessary. Wall spacing wins over
exposure: a ring whose walls were suppressed gets no skin at all.
"""

from typing import List, Optional

from shellcore.core.geometry import Path
from shellcore.slicing.contour_offset import WallSet
from shellcore.slicing.exposure import ExposureResult


def is_shell_layer(layer_index: int, skin_layer_count: int, total_layers: int) -> bool:
    """True for the fixed bottom and top skin layers."""
    return layer_index < skin_layer_count or layer_index >= total_layers - skin_layer_count


def resolve_skin_regions(
    wall_set: WallSet,
    exposure: Optional[ExposureResult],
    layer_index: int,
    skin_layer_count: int,
    total_layers: int,
    exposure_enabled: bool,
) -> List[Path]:
    """
    Skin fill boundaries for one ring on one layer.

    Returns:
        Every skin boundary contour on shell layers, the exposed and fully covered
        regions on interior layers with exposure detection enabled, and an
        empty list otherwise or when the ring has no skin boundaries.
    """
    if not wall_set.skin_boundaries:
        return []

    if is_shell_layer(layer_index, skin_layer_count, total_layers):
        return list(wall_set.skin_boundaries)

    if not exposure_enabled or exposure is None:
        return []

    return list(exposure.exposed_areas) + list(exposure.fully_covered_regions)

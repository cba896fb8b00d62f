"""
Unit tests for nesting classification.
"""

import logging

import pytest

from shellcore.core.geometry import Path
from shellcore.slicing.nesting import NestingInfo, classify_nesting, material_region_neighbors
from shellcore.slicing.stitching import stitch_segments_to_paths
from tests.verification.layer_oracle import circle, concentric_ring_segments, square


@pytest.mark.unit
@pytest.mark.slicing
class TestNestingLevels:
    """Tests for level and hole/structure alternation."""

    def test_three_concentric_rings(self):
        """Outermost structure, hole, island."""
        paths = stitch_segments_to_paths(concentric_ring_segments([10.0, 7.0, 4.0]))
        infos = classify_nesting(paths)

        by_size = sorted(zip(paths, infos), key=lambda pi: -pi[0].area)
        assert [info.level for _, info in by_size] == [0, 1, 2]
        assert [info.is_hole for _, info in by_size] == [False, True, False]

    @pytest.mark.parametrize("k", [1, 2, 4, 5])
    def test_alternation_for_k_rings(self, k):
        radii = [2.0 * (k - i) for i in range(k)]
        paths = [Path(tuple(circle(r))) for r in radii]
        infos = classify_nesting(paths)
        assert [info.level for info in infos] == list(range(k))
        assert [info.is_hole for info in infos] == [i % 2 == 1 for i in range(k)]

    def test_disjoint_islands_are_structures(self):
        paths = [Path(tuple(square(4.0))), Path(tuple(square(4.0, cx=10.0)))]
        assert classify_nesting(paths) == [NestingInfo(0), NestingInfo(0)]

    def test_short_paths_are_level_zero(self):
        paths = [Path(tuple(square(10.0))), Path(((0.0, 0.0), (1.0, 0.0)), closed=False)]
        infos = classify_nesting(paths)
        assert infos[1].level == 0
        assert infos[0].level == 0

    def test_open_ring_still_contains(self):
        outer = Path(tuple(square(10.0)), closed=False)
        inner = Path(tuple(square(4.0)))
        infos = classify_nesting([outer, inner])
        assert infos[1].is_hole


@pytest.mark.unit
@pytest.mark.slicing
class TestAmbiguousContainment:
    """Tests for representative points on another ring's edge."""

    def test_touching_squares_resolved_by_nudge(self, trace_log):
        """A corner on the neighbour's edge is nudged outward and clears it."""
        a = Path(((0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)))
        b = Path(((10.0, 0.0), (20.0, 0.0), (20.0, 10.0), (10.0, 10.0)))

        infos = classify_nesting([a, b], trace=trace_log)

        assert infos == [NestingInfo(0), NestingInfo(0)]
        assert "nesting_ambiguous" not in trace_log.names()

    def test_still_ambiguous_after_nudge(self, trace_log, caplog):
        """A nudge along the neighbour's edge stays on it and is flagged."""
        a = Path(((0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)))
        b = Path(((5.0, 0.0), (2.0, 2.0), (2.0, -2.0)))

        with caplog.at_level(logging.WARNING, logger="shellcore.slicing.nesting"):
            infos = classify_nesting([a, b], trace=trace_log)

        assert infos[1].ambiguous
        assert infos[1].level == 0
        assert not infos[0].ambiguous
        assert "nesting_ambiguous" in trace_log.names()
        assert any("Ambiguous containment" in r.getMessage() for r in caplog.records)


@pytest.mark.unit
@pytest.mark.slicing
class TestMaterialRegions:
    """Tests for the rings sharing a material region."""

    def test_structure_with_two_holes(self):
        paths = [
            Path(tuple(square(20.0))),
            Path(tuple(square(4.0, cx=-5.0))),
            Path(tuple(square(4.0, cx=5.0))),
            Path(tuple(square(4.0, cx=40.0))),
        ]
        infos = classify_nesting(paths)
        neighbors = material_region_neighbors(paths, infos)

        assert sorted(neighbors[0]) == [1, 2]
        assert sorted(neighbors[1]) == [0, 2]
        assert sorted(neighbors[2]) == [0, 1]
        assert neighbors[3] == []

    def test_island_in_hole_is_separate(self):
        paths = [Path(tuple(circle(r))) for r in (10.0, 7.0, 4.0)]
        infos = classify_nesting(paths)
        neighbors = material_region_neighbors(paths, infos)

        assert neighbors[0] == [1]
        assert neighbors[1] == [0]
        assert neighbors[2] == []

"""
Unit tests for segment stitching.
"""

import random

import pytest

from shellcore.core.geometry import Segment
from shellcore.slicing.stitching import stitch_segments_to_paths
from tests.verification.layer_oracle import circle, polygon_segments, square


def _same_cycle(path_points, expected):
    """True if ``path_points`` is ``expected`` up to rotation and reflection."""
    n = len(expected)
    if len(path_points) != n:
        return False
    rounded = [(round(x, 6), round(y, 6)) for x, y in path_points]
    target = [(round(x, 6), round(y, 6)) for x, y in expected]
    for seq in (rounded, list(reversed(rounded))):
        start = seq.index(target[0]) if target[0] in seq else -1
        if start >= 0 and seq[start:] + seq[:start] == target:
            return True
    return False


@pytest.mark.unit
@pytest.mark.slicing
class TestClosedRings:
    """Tests for rings that close."""

    def test_square_round_trip(self):
        """Shuffled, independently reversed edges give back the square."""
        points = square(10.0)
        segments = polygon_segments(points)
        rng = random.Random(3)
        rng.shuffle(segments)
        segments = [Segment(s.end, s.start) if rng.random() < 0.5 else s for s in segments]

        paths = stitch_segments_to_paths(segments)

        assert len(paths) == 1
        assert paths[0].closed
        assert _same_cycle(list(paths[0]), points)

    def test_circle_round_trip(self):
        points = circle(5.0, sides=48)
        segments = polygon_segments(points)
        random.Random(11).shuffle(segments)

        paths = stitch_segments_to_paths(segments)

        assert len(paths) == 1
        assert paths[0].closed
        assert _same_cycle(list(paths[0]), points)

    def test_collaborator_dict_format(self):
        raw = [
            {"start": {"x": a[0], "y": a[1], "z": 1.0}, "end": {"x": b[0], "y": b[1], "z": 1.0}}
            for a, b in polygon_segments(square(4.0))
        ]
        paths = stitch_segments_to_paths(raw)
        assert len(paths) == 1
        assert len(paths[0]) == 4

    def test_two_islands(self):
        segments = polygon_segments(square(4.0)) + polygon_segments(square(4.0, cx=20.0))
        paths = stitch_segments_to_paths(segments)
        assert len(paths) == 2
        assert all(p.closed for p in paths)

    def test_endpoints_within_epsilon_join(self):
        """Float noise below the tolerance does not break a ring."""
        segments = [
            Segment((0.0, 0.0), (10.0, 0.0)),
            Segment((10.00005, 0.0), (10.0, 10.0)),
            Segment((10.0, 10.0), (0.0, 10.0)),
            Segment((0.0, 10.0), (0.0, 0.00005)),
        ]
        paths = stitch_segments_to_paths(segments)
        assert len(paths) == 1
        assert paths[0].closed
        assert len(paths[0]) == 4

    def test_zero_length_segments_dropped(self):
        segments = polygon_segments(square(4.0)) + [Segment((1.0, 1.0), (1.0, 1.0))]
        paths = stitch_segments_to_paths(segments)
        assert len(paths) == 1
        assert len(paths[0]) == 4


@pytest.mark.unit
@pytest.mark.slicing
class TestOpenChains:
    """Tests for chains that cannot close."""

    def test_missing_edge_gives_open_path(self, trace_log):
        """The seed sits mid-chain; both directions are followed."""
        a, b, c, d = (0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)
        segments = [Segment(b, c), Segment(a, b), Segment(c, d)]

        paths = stitch_segments_to_paths(segments, trace=trace_log)

        assert len(paths) == 1
        assert not paths[0].closed
        assert list(paths[0]) == [a, b, c, d]
        assert "stitch_open_path" in trace_log.names()

    def test_single_segment(self):
        paths = stitch_segments_to_paths([Segment((0.0, 0.0), (1.0, 0.0))])
        assert len(paths) == 1
        assert not paths[0].closed
        assert len(paths[0]) == 2

    def test_empty_input(self):
        assert stitch_segments_to_paths([]) == []

    def test_completion_event(self, trace_log):
        stitch_segments_to_paths(polygon_segments(square(2.0)), trace=trace_log)
        name, payload = trace_log.events[-1]
        assert name == "stitch_complete"
        assert payload == {"segments": 4, "paths": 1, "open": 0}

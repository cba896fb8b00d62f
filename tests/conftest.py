"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import pytest

from shellcore.core.config import SlicerConfig


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def default_config():
    """Slicer config with the stock defaults (0.2 mm layers, 0.4 mm nozzle)."""
    return SlicerConfig()


@pytest.fixture
def sample_config_file(temp_dir):
    """Write a sample YAML slicer configuration."""
    config_text = """
slicer:
  layer_height: 0.3
  nozzle_diameter: 0.5
  wall_count: 3
  skin_layer_count: 5
  exposure_detection_enabled: false
  exposure_detection_resolution: 900
"""
    path = temp_dir / "slicer.yaml"
    path.write_text(config_text)
    return path


@pytest.fixture
def trace_log():
    """A trace callback that records every event it receives."""

    class Recorder:
        def __init__(self):
            self.events = []

        def __call__(self, event, payload):
            self.events.append((event, payload))

        def names(self):
            return [name for name, _ in self.events]

    return Recorder()

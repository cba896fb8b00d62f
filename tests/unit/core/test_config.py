"""
Unit tests for configuration management.
"""

import pytest

from shellcore.core.config import SlicerConfig, build_config, load_config
from shellcore.core.exceptions import ConfigurationError, InvariantViolationError, ShellCoreError


class TestSlicerConfig:
    """Tests for SlicerConfig model."""

    def test_defaults(self):
        """Test the stock defaults."""
        config = SlicerConfig()
        assert config.layer_height == 0.2
        assert config.nozzle_diameter == 0.4
        assert config.wall_count == 2
        assert config.skin_layer_count == 4
        assert config.exposure_detection_enabled is True
        assert config.exposure_detection_resolution == 961

    def test_frozen(self):
        """A config cannot change during a run."""
        config = SlicerConfig()
        with pytest.raises(Exception):
            config.wall_count = 5

    def test_unknown_field_rejected(self):
        with pytest.raises(ConfigurationError):
            build_config({"infill_density": 0.2})

    def test_out_of_range_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_config({"layer_height": 0})
        assert "error" in exc_info.value.details

    def test_from_shell_thickness(self):
        """Counts are derived from printer-facing thicknesses."""
        config = SlicerConfig.from_shell_thickness(
            layer_height=0.2,
            nozzle_diameter=0.4,
            shell_wall_thickness=1.2,
            shell_skin_thickness=0.6,
        )
        assert config.wall_count == 3
        assert config.skin_layer_count == 3

    def test_from_shell_thickness_minimum_one(self):
        config = SlicerConfig.from_shell_thickness(0.2, 0.4, 0.1, 0.1)
        assert config.wall_count == 1
        assert config.skin_layer_count == 1

    def test_from_shell_thickness_passes_extra_fields(self):
        config = SlicerConfig.from_shell_thickness(
            0.2, 0.4, 0.8, 0.8, exposure_detection_enabled=False
        )
        assert config.exposure_detection_enabled is False

    def test_from_shell_thickness_rejects_bad_nozzle(self):
        with pytest.raises(ConfigurationError):
            SlicerConfig.from_shell_thickness(0.2, 0.0, 0.8, 0.8)


class TestLoadConfig:
    """Tests for YAML loading."""

    def test_load_slicer_section(self, sample_config_file):
        config = load_config(sample_config_file)
        assert config.layer_height == 0.3
        assert config.wall_count == 3
        assert config.skin_layer_count == 5
        assert config.exposure_detection_enabled is False
        assert config.exposure_detection_resolution == 900

    def test_load_flat_keys(self, temp_dir):
        path = temp_dir / "flat.yaml"
        path.write_text("wall_count: 4\n")
        assert load_config(path).wall_count == 4

    def test_empty_file_gives_defaults(self, temp_dir):
        path = temp_dir / "empty.yaml"
        path.write_text("")
        assert load_config(path) == SlicerConfig()

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigurationError):
            load_config(temp_dir / "nope.yaml")

    def test_invalid_yaml(self, temp_dir):
        path = temp_dir / "bad.yaml"
        path.write_text("slicer: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_non_mapping(self, temp_dir):
        path = temp_dir / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError):
            load_config(path)


class TestExceptions:
    """Tests for the error hierarchy."""

    def test_details_rendered(self):
        err = ConfigurationError("bad", details={"key": "value"})
        assert "bad" in str(err)
        assert "key" in str(err)
        assert isinstance(err, ShellCoreError)

    def test_invariant_violation_location(self):
        err = InvariantViolationError("too few points", layer_index=3, ring_id=1)
        assert err.layer_index == 3
        assert err.ring_id == 1
        assert str(err) == "too few points"

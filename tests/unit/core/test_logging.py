"""
Unit tests for log setup.
"""

import json
import logging

import pytest
import structlog

from shellcore.core.logging import configure_logging, get_logger, run_context


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    structlog.reset_defaults()


class TestRunContext:
    """Tests for run-scoped context binding."""

    def test_values_bound_inside_block_only(self):
        with run_context(total_layers=12):
            assert structlog.contextvars.get_contextvars()["total_layers"] == 12
        assert "total_layers" not in structlog.contextvars.get_contextvars()


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_unknown_level_falls_back_to_warning(self):
        configure_logging(level="chatty")
        assert logging.getLogger().level == logging.WARNING

    def test_json_lines_carry_context(self, temp_dir):
        log_file = temp_dir / "run.log"
        configure_logging(level="INFO", json_output=True, log_file=str(log_file))

        with run_context(total_layers=3):
            get_logger("shellcore.test").info("layer_done", layer=1)
        logging.getLogger("shellcore.geometry").info("plain record")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert lines[0]["event"] == "layer_done"
        assert lines[0]["total_layers"] == 3
        assert lines[0]["level"] == "info"
        assert lines[1]["event"] == "plain record"
        assert lines[1]["logger"] == "shellcore.geometry"

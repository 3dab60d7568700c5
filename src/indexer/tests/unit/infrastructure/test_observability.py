"""Unit tests for process-level observability: context, probes, logging."""

from unittest.mock import MagicMock, patch

import pytest
import structlog

from infrastructure.logging import configure_logging
from infrastructure.observability import DefaultStartupProbe, ObservationContext
from infrastructure.settings import LoggingSettings


class TestObservationContext:
    """Tests for ObservationContext."""

    def test_as_dict_skips_unset_values(self):
        assert ObservationContext().as_dict() == {}
        assert ObservationContext(worker_id="w1").as_dict() == {"worker_id": "w1"}

    def test_derived_contexts_keep_worker_id(self):
        context = ObservationContext(worker_id="w1").with_store("graph")

        assert context.as_dict() == {"worker_id": "w1", "store": "graph"}


class TestDefaultStartupProbe:
    """Tests for DefaultStartupProbe."""

    def test_startup_failure_is_an_error(self):
        logger = MagicMock()
        probe = DefaultStartupProbe(logger=logger).with_context(
            ObservationContext(worker_id="w1")
        )

        probe.startup_failed("graph store unreachable")

        logger.error.assert_called_once_with(
            "indexer_startup_failed",
            error="graph store unreachable",
            worker_id="w1",
        )

    def test_signal_received(self):
        logger = MagicMock()

        DefaultStartupProbe(logger=logger).signal_received("SIGTERM")

        logger.info.assert_called_once_with(
            "indexer_signal_received", signal="SIGTERM"
        )


class TestConfigureLogging:
    """Tests for configure_logging()."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_json_output_when_requested(self):
        configure_logging(LoggingSettings(_env_file=None, json_output=True))

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_output_in_a_tty(self):
        with patch("infrastructure.logging.sys.stdout") as stdout:
            stdout.isatty.return_value = True
            configure_logging(LoggingSettings(_env_file=None))

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

"""Tests for telemetry module in sequencer/observability/telemetry.py.

Tests cover:
- setup_telemetry function
- traced_operation context manager
- Span attribute and exception recording
- Shutdown
"""

from unittest.mock import MagicMock, patch

from sequencer.observability import telemetry


class TestSetupTelemetry:
    """Test setup_telemetry function."""

    def teardown_method(self) -> None:
        """Reset telemetry state after each test."""
        telemetry._initialized = False
        telemetry._tracer = None

    def test_disabled_returns_none(self) -> None:
        assert telemetry.setup_telemetry(enabled=False) is None
        assert telemetry._tracer is None
        assert telemetry._initialized is False

    def test_idempotent_returns_same_tracer(self) -> None:
        """Returns the cached tracer when already initialized."""
        mock_tracer = MagicMock()
        telemetry._initialized = True
        telemetry._tracer = mock_tracer

        assert telemetry.setup_telemetry(enabled=True) is mock_tracer


class TestTracedOperation:
    """Test traced_operation context manager."""

    def teardown_method(self) -> None:
        telemetry._initialized = False
        telemetry._tracer = None

    def test_yields_none_when_no_tracer(self) -> None:
        with telemetry.traced_operation("deploy_unit") as span:
            assert span is None

    def test_creates_span_with_attributes(self) -> None:
        mock_span = MagicMock()
        mock_tracer = MagicMock()
        mock_tracer.start_as_current_span.return_value.__enter__ = MagicMock(
            return_value=mock_span
        )
        mock_tracer.start_as_current_span.return_value.__exit__ = MagicMock(
            return_value=None
        )
        telemetry._tracer = mock_tracer

        with telemetry.traced_operation("deploy_unit", {"unit.name": "Dibs"}) as span:
            assert span is mock_span

        mock_tracer.start_as_current_span.assert_called_once_with(
            "deploy_unit", attributes={"unit.name": "Dibs"}
        )


class TestSpanHelpers:
    """Test add_span_attribute and record_exception."""

    def teardown_method(self) -> None:
        telemetry._initialized = False
        telemetry._tracer = None

    def test_noop_when_not_initialized(self) -> None:
        telemetry._initialized = False

        assert telemetry._current_span() is None
        telemetry.add_span_attribute("network", "bsc")
        telemetry.record_exception(RuntimeError("boom"))

    def test_sets_attribute_on_active_span(self) -> None:
        span = MagicMock()

        with patch.object(telemetry, "_current_span", return_value=span):
            telemetry.add_span_attribute("unit.address", "0xToken")

        span.set_attribute.assert_called_once_with("unit.address", "0xToken")

    def test_records_exception_on_active_span(self) -> None:
        span = MagicMock()
        error = RuntimeError("constructor reverted")

        with patch.object(telemetry, "_current_span", return_value=span):
            telemetry.record_exception(error)

        span.record_exception.assert_called_once_with(error)


class TestShutdown:
    """Test shutdown_telemetry."""

    def test_noop_when_not_initialized(self) -> None:
        telemetry._initialized = False
        telemetry.shutdown_telemetry()
        assert telemetry._tracer is None

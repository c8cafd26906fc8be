"""
Tests for progress indication utilities in sysperf.progress module.

Tests cover:
- TTY detection
- matrix_progress in interactive/non-interactive modes
- Cleanup on exceptions
"""

import pytest
from unittest.mock import MagicMock, patch, PropertyMock

from sysperf.progress import is_interactive_terminal, matrix_progress


class TestIsInteractiveTerminal:
    """Tests for is_interactive_terminal function."""

    def test_returns_bool(self):
        assert isinstance(is_interactive_terminal(), bool)

    def test_follows_console_is_terminal(self):
        with patch("sysperf.progress.Console") as MockConsole:
            mock_console = MagicMock()
            type(mock_console).is_terminal = PropertyMock(return_value=True)
            MockConsole.return_value = mock_console

            assert is_interactive_terminal() is True


class TestMatrixProgressNonInteractive:
    """Tests for matrix_progress when output is not a terminal."""

    def test_logs_each_start(self, mock_logger):
        with patch("sysperf.progress.is_interactive_terminal", return_value=False):
            with matrix_progress(["a", "b"], logger=mock_logger) as (start, finish):
                start("a")
                finish()
                start("b")
                finish()

        assert mock_logger.get_messages('status') == ["Workload 1/2: a", "Workload 2/2: b"]

    def test_no_error_without_logger(self):
        with patch("sysperf.progress.is_interactive_terminal", return_value=False):
            with matrix_progress(["a"]) as (start, finish):
                start("a")
                finish()


class TestMatrixProgressInteractive:
    """Tests for matrix_progress with a Rich progress bar."""

    def test_bar_tracks_workloads(self):
        with patch("sysperf.progress.is_interactive_terminal", return_value=True), \
                patch("sysperf.progress.Progress") as MockProgress:
            progress = MockProgress.return_value
            progress.add_task.return_value = 1

            with matrix_progress(["a", "b"]) as (start, finish):
                start("a")
                finish()

        progress.start.assert_called_once()
        progress.add_task.assert_called_once_with("Benchmark matrix", total=2)
        progress.update.assert_any_call(1, description="Running a")
        progress.update.assert_any_call(1, advance=1)
        progress.stop.assert_called_once()

    def test_bar_stopped_on_exception(self):
        with patch("sysperf.progress.is_interactive_terminal", return_value=True), \
                patch("sysperf.progress.Progress") as MockProgress:
            progress = MockProgress.return_value

            with pytest.raises(RuntimeError):
                with matrix_progress(["a"]):
                    raise RuntimeError("boom")

        progress.stop.assert_called_once()

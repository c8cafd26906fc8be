"""
Tests for sysperf.sysperf_logging.

Tests cover:
- Custom level registration and logger methods
- Stream handler levels from command-line options
- File handler output
- Formatting and terminal-only colors
"""

import io
import logging

from argparse import Namespace

from sysperf.sysperf_logging import (
    LEVEL_COLORS,
    RESULT,
    STATUS,
    SysPerfFormatter,
    SysPerfLogger,
    VERBOSE,
    add_file_handler,
    apply_logging_options,
    setup_logging,
    stream_wants_color,
)


class FakeTerminal(io.StringIO):
    def isatty(self):
        return True


def stream_handlers(logger):
    return [h for h in logger.handlers if not isinstance(h, logging.FileHandler)]


class TestCustomLevels:

    def test_level_names_registered(self):
        assert logging.getLevelName(RESULT) == "RESULT"
        assert logging.getLevelName(STATUS) == "STATUS"
        assert logging.getLevelName(VERBOSE) == "VERBOSE"

    def test_logger_has_custom_methods(self):
        logger = setup_logging("sysperf-test-methods")
        assert isinstance(logger, SysPerfLogger)
        for name in ("result", "status", "verbose", "verboser", "verbosest", "ridiculous"):
            assert callable(getattr(logger, name))

    def test_default_stream_level(self):
        logger = setup_logging("sysperf-test-default")
        assert [h.level for h in stream_handlers(logger)] == [logging.INFO]

    def test_stream_level_by_name(self):
        logger = setup_logging("sysperf-test-named", stream_log_level="warning")
        assert stream_handlers(logger)[0].level == logging.WARNING


class TestApplyLoggingOptions:

    def test_verbose(self):
        logger = setup_logging("sysperf-test-verbose")
        apply_logging_options(logger, Namespace(verbose=True, debug=False))
        assert stream_handlers(logger)[0].level == VERBOSE

    def test_debug_switches_formatter(self):
        logger = setup_logging("sysperf-test-debug")
        apply_logging_options(logger, Namespace(verbose=False, debug=True))
        handler = stream_handlers(logger)[0]
        assert handler.level == logging.DEBUG
        assert isinstance(handler.formatter, SysPerfFormatter)
        assert handler.formatter.debug

    def test_explicit_stream_level_wins(self):
        logger = setup_logging("sysperf-test-explicit")
        apply_logging_options(logger, Namespace(verbose=True, debug=False, stream_log_level="error"))
        assert stream_handlers(logger)[0].level == logging.ERROR

    def test_none_args(self):
        logger = setup_logging("sysperf-test-none")
        apply_logging_options(logger, None)
        assert stream_handlers(logger)[0].level == logging.INFO

    def test_log_file(self, tmp_path):
        logger = setup_logging("sysperf-test-file")
        log_path = tmp_path / "sysperf.log"
        apply_logging_options(logger, Namespace(log_file=str(log_path)))

        logger.status("matrix started")
        logger.verbose("detail line")
        for handler in logger.handlers:
            handler.flush()

        text = log_path.read_text()
        assert "STATUS" in text
        assert "matrix started" in text
        assert "detail line" in text


class TestFormatters:

    def make_record(self, level, message):
        return logging.LogRecord("sysperf", level, __file__, 10, message, None, None)

    def test_standard_format(self):
        text = SysPerfFormatter().format(self.make_record(STATUS, "hello"))
        assert text.endswith("|STATUS: hello")
        assert "\033[" not in text

    def test_debug_format_includes_location(self):
        text = SysPerfFormatter(debug=True).format(self.make_record(logging.DEBUG, "hello"))
        assert text.endswith("|DEBUG:test_logging:10: hello")

    def test_color_wraps_line(self):
        text = SysPerfFormatter(color=True).format(self.make_record(RESULT, "5 succeeded"))
        assert text.startswith(LEVEL_COLORS[RESULT])
        assert text.endswith("\033[0m")

    def test_color_only_on_terminal(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        assert stream_wants_color(FakeTerminal())
        assert not stream_wants_color(io.StringIO())
        monkeypatch.setenv("NO_COLOR", "1")
        assert not stream_wants_color(FakeTerminal())

    def test_piped_stream_gets_plain_lines(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        stream = io.StringIO()
        logger = setup_logging("sysperf-test-plain", stream=stream)

        logger.status("matrix started")

        assert stream.getvalue().rstrip("\n").endswith("|STATUS: matrix started")
        assert "\033[" not in stream.getvalue()

    def test_debug_keeps_terminal_colors(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        logger = setup_logging("sysperf-test-tty", stream=FakeTerminal())
        apply_logging_options(logger, Namespace(debug=True))
        assert stream_handlers(logger)[0].formatter.color

    def test_add_file_handler_returns_handler(self, tmp_path):
        logger = setup_logging("sysperf-test-add")
        handler = add_file_handler(logger, str(tmp_path / "x.log"))
        assert handler in logger.handlers
        handler.close()

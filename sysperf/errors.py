"""
Custom exceptions for sysperf.

This module provides custom exception classes with user-friendly messaging
that include:
- Clear error descriptions
- Technical details for debugging
- Actionable suggestions for resolution

Errors fall into two groups. Fatal errors (EnvironmentSetupError,
ToolUnavailableError, ConfigurationError) abort a benchmark matrix before any
workload runs. Per-workload errors (InvocationError, NonZeroExitError) are
caught by the runner and recorded against the single workload that raised
them. Telemetry errors (SourceUnavailableError, ParseError, EmptyResultError)
are raised by collectors and it is up to the caller whether they are fatal.
"""

import errno

from dataclasses import dataclass, field
from typing import Optional, Any
from enum import Enum


class ErrorCode(Enum):
    """Machine-readable error codes for sysperf errors."""
    # Configuration errors (1xx)
    CONFIG_MISSING_REQUIRED = "E101"
    CONFIG_INVALID_VALUE = "E102"
    CONFIG_FILE_NOT_FOUND = "E103"
    CONFIG_PARSE_ERROR = "E104"
    CONFIG_INCOMPATIBLE = "E105"

    # Benchmark execution errors (2xx)
    BENCHMARK_COMMAND_FAILED = "E201"
    BENCHMARK_INTERRUPTED = "E203"
    BENCHMARK_TOOL_UNAVAILABLE = "E204"
    BENCHMARK_SPAWN_FAILED = "E205"

    # Environment / file system errors (4xx)
    FS_PATH_NOT_FOUND = "E401"
    FS_PERMISSION_DENIED = "E402"
    FS_DISK_FULL = "E403"
    FS_SETUP_FAILED = "E404"

    # Telemetry errors (6xx)
    TELEMETRY_SOURCE_UNAVAILABLE = "E601"
    TELEMETRY_PARSE_FAILED = "E602"
    TELEMETRY_EMPTY_RESULT = "E603"

    # Internal errors (9xx)
    INTERNAL_ERROR = "E901"


@dataclass
class SysPerfError:
    """
    Structured error information for sysperf.

    Attributes:
        code: Machine-readable error code.
        message: User-facing error message.
        details: Technical details for debugging.
        suggestion: How to fix the issue.
        context: Additional context information.
    """
    code: ErrorCode
    message: str
    details: str = ""
    suggestion: str = ""
    context: dict = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"[{self.code.value}] {self.message}"]
        if self.details:
            lines.append(f"  Details: {self.details}")
        if self.suggestion:
            lines.append(f"  Suggestion: {self.suggestion}")
        return "\n".join(lines)


class SysPerfException(Exception):
    """
    Base exception class for sysperf.

    All custom exceptions inherit from this class and provide
    structured error information.
    """

    def __init__(self, message: str, code: ErrorCode = ErrorCode.INTERNAL_ERROR,
                 details: str = "", suggestion: str = "", **context):
        self.error = SysPerfError(
            code=code,
            message=message,
            details=details,
            suggestion=suggestion,
            context=context
        )
        super().__init__(str(self.error))

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def suggestion(self) -> str:
        return self.error.suggestion

    @property
    def context(self) -> dict:
        return self.error.context


class ConfigurationError(SysPerfException):
    """
    Raised when configuration is invalid or missing.

    Examples:
        - Read percentage outside [0, 100]
        - Mixed pattern without a read percentage
        - Unknown benchmark tool or metric name
        - Configuration file not found or malformed
    """

    def __init__(self, message: str, parameter: str = None,
                 expected: Any = None, actual: Any = None,
                 suggestion: str = None,
                 code: ErrorCode = ErrorCode.CONFIG_INVALID_VALUE):
        details_parts = []
        if parameter:
            details_parts.append(f"Parameter: {parameter}")
        if expected is not None:
            details_parts.append(f"Expected: {expected}")
        if actual is not None:
            details_parts.append(f"Actual: {actual}")

        super().__init__(
            message=message,
            code=code,
            details="; ".join(details_parts) if details_parts else "",
            suggestion=suggestion or self._default_suggestion(code),
            parameter=parameter,
            expected=expected,
            actual=actual
        )

    @staticmethod
    def _default_suggestion(code: ErrorCode) -> str:
        suggestions = {
            ErrorCode.CONFIG_MISSING_REQUIRED: "Provide the required parameter via command line or config file",
            ErrorCode.CONFIG_INVALID_VALUE: "Check the parameter value and correct it",
            ErrorCode.CONFIG_FILE_NOT_FOUND: "Verify the config file path exists",
            ErrorCode.CONFIG_PARSE_ERROR: "Check config file syntax (YAML format)",
            ErrorCode.CONFIG_INCOMPATIBLE: "Review parameter compatibility requirements",
        }
        return suggestions.get(code, "Check the configuration and try again")


class EnvironmentSetupError(SysPerfException):
    """
    Raised when the benchmark or results directory cannot be prepared.

    Fatal: the matrix is aborted before any workload runs.
    """

    def __init__(self, message: str, path: str = None,
                 operation: str = None, os_error: str = None,
                 suggestion: str = None,
                 code: ErrorCode = ErrorCode.FS_SETUP_FAILED):
        details_parts = []
        if path:
            details_parts.append(f"Path: {path}")
        if operation:
            details_parts.append(f"Operation: {operation}")
        if os_error:
            details_parts.append(f"OS error: {os_error}")

        super().__init__(
            message=message,
            code=code,
            details="; ".join(details_parts) if details_parts else "",
            suggestion=suggestion or self._default_suggestion(code),
            path=path,
            operation=operation,
        )

    @staticmethod
    def code_for_errno(err_no: Optional[int]) -> ErrorCode:
        return {
            errno.ENOENT: ErrorCode.FS_PATH_NOT_FOUND,
            errno.EACCES: ErrorCode.FS_PERMISSION_DENIED,
            errno.EPERM: ErrorCode.FS_PERMISSION_DENIED,
            errno.EROFS: ErrorCode.FS_PERMISSION_DENIED,
            errno.ENOSPC: ErrorCode.FS_DISK_FULL,
        }.get(err_no, ErrorCode.FS_SETUP_FAILED)

    @staticmethod
    def _default_suggestion(code: ErrorCode) -> str:
        suggestions = {
            ErrorCode.FS_PATH_NOT_FOUND: "Verify the parent directory exists and is accessible",
            ErrorCode.FS_PERMISSION_DENIED: "Check file/directory permissions or choose another directory",
            ErrorCode.FS_DISK_FULL: "Free up disk space or use a different location",
        }
        return suggestions.get(code, "Check the file system and try again")


class ToolUnavailableError(SysPerfException):
    """
    Raised when the external benchmarking tool is missing or broken.

    Fatal: the matrix is aborted before any workload runs.
    """

    def __init__(self, message: str, tool: str = None, exit_code: int = None,
                 stderr: str = None, install_hint: str = None,
                 suggestion: str = None):
        details_parts = []
        if tool:
            details_parts.append(f"Tool: {tool}")
        if exit_code is not None:
            details_parts.append(f"Exit code: {exit_code}")
        if stderr:
            details_parts.append(f"Error output: {stderr.strip()[:300]}")
        if install_hint:
            details_parts.append(f"Install with: {install_hint}")

        super().__init__(
            message=message,
            code=ErrorCode.BENCHMARK_TOOL_UNAVAILABLE,
            details="; ".join(details_parts) if details_parts else "",
            suggestion=suggestion or f"Install {tool or 'the tool'} and make sure it is in PATH",
            tool=tool,
            exit_code=exit_code,
        )


class BenchmarkExecutionError(SysPerfException):
    """
    Raised when a single benchmark invocation fails.

    The runner catches these per workload and records a failed outcome.
    """

    def __init__(self, message: str, command: str = None,
                 exit_code: int = None, stderr: str = None,
                 suggestion: str = None,
                 code: ErrorCode = ErrorCode.BENCHMARK_COMMAND_FAILED):
        details_parts = []
        if command:
            cmd_display = command[:200] + "..." if len(command) > 200 else command
            details_parts.append(f"Command: {cmd_display}")
        if exit_code is not None:
            details_parts.append(f"Exit code: {exit_code}")
        if stderr:
            stderr_display = stderr[:500] + "..." if len(stderr) > 500 else stderr
            details_parts.append(f"Error output: {stderr_display}")

        super().__init__(
            message=message,
            code=code,
            details="; ".join(details_parts) if details_parts else "",
            suggestion=suggestion or self._default_suggestion(code, exit_code),
            command=command,
            exit_code=exit_code,
            stderr=stderr
        )
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr

    @staticmethod
    def _default_suggestion(code: ErrorCode, exit_code: int = None) -> str:
        suggestions = {
            ErrorCode.BENCHMARK_COMMAND_FAILED: "Check command output for specific errors",
            ErrorCode.BENCHMARK_INTERRUPTED: "Re-run the benchmark when ready",
            ErrorCode.BENCHMARK_SPAWN_FAILED: "Check that the tool binary is executable",
        }
        suggestion = suggestions.get(code, "Check benchmark logs for details")

        if exit_code == 127:
            suggestion = "Command not found - check that the benchmark tool is installed and in PATH"
        elif exit_code == 137:
            suggestion = "Process killed (possibly OOM) - check system memory and reduce workload"

        return suggestion


class InvocationError(BenchmarkExecutionError):
    """Raised when the tool process could not be spawned at all."""

    def __init__(self, message: str, command: str = None, os_error: str = None,
                 suggestion: str = None):
        super().__init__(
            message=message,
            command=command,
            stderr=os_error,
            suggestion=suggestion,
            code=ErrorCode.BENCHMARK_SPAWN_FAILED,
        )


class NonZeroExitError(BenchmarkExecutionError):
    """Raised when the tool ran but reported failure. Carries captured stderr."""

    def __init__(self, message: str, command: str = None, exit_code: int = None,
                 stderr: str = None, suggestion: str = None):
        super().__init__(
            message=message,
            command=command,
            exit_code=exit_code,
            stderr=stderr,
            suggestion=suggestion,
            code=ErrorCode.BENCHMARK_COMMAND_FAILED,
        )


class TelemetryError(SysPerfException):
    """Base class for errors raised by telemetry collectors."""

    def __init__(self, message: str, source: str = None, details: str = "",
                 suggestion: str = "", code: ErrorCode = ErrorCode.TELEMETRY_PARSE_FAILED,
                 **context):
        if source:
            details = f"Source: {source}" + (f"; {details}" if details else "")
        super().__init__(
            message=message,
            code=code,
            details=details,
            suggestion=suggestion,
            source=source,
            **context
        )
        self.source = source


class SourceUnavailableError(TelemetryError):
    """Raised before parsing when a pseudo-file or command cannot be used at all."""

    def __init__(self, message: str, source: str = None, reason: str = None,
                 suggestion: str = None):
        super().__init__(
            message=message,
            source=source,
            details=f"Reason: {reason}" if reason else "",
            suggestion=suggestion or "Install the sysstat/procps packages or check that /proc is mounted",
            code=ErrorCode.TELEMETRY_SOURCE_UNAVAILABLE,
            reason=reason,
        )


class ParseError(TelemetryError):
    """Raised when a data line or block does not match its expected shape."""

    def __init__(self, message: str, line: str = None, source: str = None,
                 line_number: int = None):
        details_parts = []
        if line_number is not None:
            details_parts.append(f"Line {line_number}")
        if line is not None:
            details_parts.append(f"Offending line: {line.strip()[:200]!r}")

        super().__init__(
            message=message,
            source=source,
            details="; ".join(details_parts),
            suggestion="Check the tool version; the output format may differ from what is expected",
            code=ErrorCode.TELEMETRY_PARSE_FAILED,
            line=line,
            line_number=line_number,
        )
        self.line = line
        self.line_number = line_number


class EmptyResultError(TelemetryError):
    """Raised when a full collection pass yields no valid records."""

    def __init__(self, message: str, source: str = None):
        super().__init__(
            message=message,
            source=source,
            suggestion="Check the command arguments and that the source produces data on this host",
            code=ErrorCode.TELEMETRY_EMPTY_RESULT,
        )

"""
Utility Functions for sysperf.

Classes:
    SysPerfJsonEncoder: Custom JSON encoder for sysperf types.
    CommandExecutor: Execute commands with live output capture and signal handling.

Functions:
    generate_run_token: Filesystem-safe token unique within the process.
    utc_timestamp: ISO-8601 UTC timestamp used on telemetry records.
    write_json: Dump a document to disk with SysPerfJsonEncoder.
"""

import dataclasses
import enum
import io
import itertools
import json
import logging
import os
import select
import shlex
import signal
import subprocess
import sys
import threading
import time

from datetime import datetime
from typing import Any, Dict, List, Union, Optional, Tuple, Set


class SysPerfJsonEncoder(json.JSONEncoder):
    """Custom JSON encoder for sysperf types.

    - Sets and tuples are converted to lists
    - Enums are converted to their values
    - Objects with ``to_dict()`` and dataclasses use their dict form
    - Logger objects are converted to placeholder strings
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, set):
            return sorted(obj, key=str)
        if isinstance(obj, enum.Enum):
            return obj.value
        if isinstance(obj, logging.Logger) or "Logger" in str(type(obj)):
            return "Logger object"
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if hasattr(obj, "__dict__"):
            return obj.__dict__
        return str(obj)


def write_json(path: str, document: Any):
    with open(path, "w") as fd:
        json.dump(document, fd, indent=2, cls=SysPerfJsonEncoder)


_run_counter = itertools.count()
_run_counter_lock = threading.Lock()


def generate_run_token(now: Optional[datetime] = None) -> str:
    """Return ``YYYYmmdd_HHMMSS_ffffff_NNNN``.

    Microsecond resolution alone is not enough on coarse clocks, so a
    process-wide counter is appended. Two calls in the same process never
    return the same token.
    """
    now = now or datetime.now()
    with _run_counter_lock:
        sequence = next(_run_counter)
    return f"{now.strftime('%Y%m%d_%H%M%S_%f')}_{sequence:04d}"


def utc_timestamp() -> str:
    return time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime())


class CommandExecutor:
    """
    Execute commands in a subprocess with live output capture and signal handling.

    This class allows:
    - Executing commands as a string or list of arguments
    - Capturing stdout and stderr
    - Optionally echoing stdout and stderr in real-time
    - Handling signals to terminate the child process cleanly

    Spawn failures (missing binary, permission denied) propagate as OSError
    so callers can tell them apart from a tool that ran and failed.
    """

    def __init__(self, logger: logging.Logger, debug: bool = False):
        self.logger = logger
        self.debug = debug
        self.process = None
        self.terminated_by_signal = False
        self.signal_received = None
        self._original_handlers = {}
        self._stop_event = threading.Event()

    def execute(self,
                command: Union[str, List[str]],
                print_stdout: bool = False,
                print_stderr: bool = False,
                watch_signals: Optional[Set[int]] = None,
                env: Optional[Dict[str, str]] = None,
                new_session: bool = False) -> Tuple[str, str, int]:
        """
        Execute a command and return its stdout, stderr, and return code.

        Output is decoded as UTF-8 with undecodable bytes replaced, so a tool
        printing stray bytes still yields text.

        Args:
            command: The command to execute (string or list of strings)
            print_stdout: If True, echoes stdout in real-time
            print_stderr: If True, echoes stderr in real-time
            watch_signals: Signals that terminate the child when received
            env: Variables added to the inherited environment
            new_session: Start the child in its own session so a terminal
                Ctrl-C reaches only this process

        Returns:
            Tuple of (stdout_content, stderr_content, return_code)

        Raises:
            OSError: If the process could not be started.
        """
        self.logger.debug(f"Executing command: {command}")

        if isinstance(command, str):
            cmd_args = shlex.split(command)
        else:
            cmd_args = list(command)

        if watch_signals:
            self._setup_signal_handlers(watch_signals)

        self._stop_event.clear()
        self.terminated_by_signal = False
        self.signal_received = None

        stdout_buffer = io.StringIO()
        stderr_buffer = io.StringIO()

        try:
            self.process = subprocess.Popen(
                cmd_args,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=dict(os.environ, **env) if env else None,
                start_new_session=new_session,
                bufsize=1  # Line buffered
            )

            stdout_fd = self.process.stdout.fileno()

            while self.process.poll() is None and not self._stop_event.is_set():
                # Short select timeout so a received signal is noticed promptly
                readable, _, _ = select.select(
                    [self.process.stdout, self.process.stderr],
                    [],
                    [],
                    0.1
                )

                for stream in readable:
                    line = stream.readline()
                    if not line:
                        continue

                    if stream.fileno() == stdout_fd:
                        stdout_buffer.write(line)
                        if print_stdout:
                            sys.stdout.write(line)
                            sys.stdout.flush()
                    else:
                        stderr_buffer.write(line)
                        if print_stderr:
                            sys.stderr.write(line)
                            sys.stderr.flush()

            stdout_remainder = self.process.stdout.read()
            if stdout_remainder:
                stdout_buffer.write(stdout_remainder)
                if print_stdout:
                    sys.stdout.write(stdout_remainder)
                    sys.stdout.flush()

            stderr_remainder = self.process.stderr.read()
            if stderr_remainder:
                stderr_buffer.write(stderr_remainder)
                if print_stderr:
                    sys.stderr.write(stderr_remainder)
                    sys.stderr.flush()

            return_code = self.process.wait()

            if self.terminated_by_signal:
                self.logger.debug(f"Process terminated by signal: {self.signal_received}")

            return stdout_buffer.getvalue(), stderr_buffer.getvalue(), return_code

        finally:
            if self.process and self.process.poll() is None:
                self.process.terminate()
                try:
                    self.process.wait(timeout=5)
                except subprocess.TimeoutExpired:
                    self.process.kill()
            if self.process:
                for stream in (self.process.stdout, self.process.stderr):
                    if stream:
                        stream.close()
            self.process = None

            self._restore_signal_handlers()

    def _setup_signal_handlers(self, signals: Set[int]):
        self._original_handlers = {}

        def signal_handler(sig, frame):
            self.logger.debug(f"Received signal: {sig}")
            self.terminated_by_signal = True
            self.signal_received = sig
            self._stop_event.set()

            if self.process and self.process.poll() is None:
                self.process.terminate()

            original = self._original_handlers.get(sig)
            if callable(original):
                original(sig, frame)

        for sig in signals:
            self._original_handlers[sig] = signal.getsignal(sig)
            signal.signal(sig, signal_handler)

    def _restore_signal_handlers(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers = {}


import logging
import os
import sys
import time

# Custom levels between the standard ones
CRITICAL = logging.CRITICAL
ERROR = logging.ERROR
RESULT = 35
WARNING = logging.WARNING   # 30
STATUS = 25
INFO = logging.INFO         # 20
VERBOSE = 19
VERBOSER = 18
VERBOSEST = 17
DEBUG = logging.DEBUG       # 10
RIDICULOUS = 7
NOTSET = logging.NOTSET

DEFAULT_STREAM_LOG_LEVEL = logging.INFO

custom_levels = {
    'RESULT': RESULT,
    'STATUS': STATUS,
    'VERBOSE': VERBOSE,
    'VERBOSER': VERBOSER,
    'VERBOSEST': VERBOSEST,
    'RIDICULOUS': RIDICULOUS,
}

RESET = "\033[0m"
LEVEL_COLORS = {
    CRITICAL: "\033[1;31m",
    ERROR: "\033[1;31m",
    RESULT: "\033[0;32m",
    WARNING: "\033[0;33m",
    STATUS: "\033[1;34m",
}


def stream_wants_color(stream) -> bool:
    """ANSI colors only on a terminal, and never when NO_COLOR is set."""
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def _level_method(level_num):
    def log_at_level(self, message, *args, **kwargs):
        if self.isEnabledFor(level_num):
            self._log(level_num, message, args, **kwargs)
    return log_at_level


class SysPerfLogger(logging.Logger):
    def _log(self, level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=3):
        # Skip the generated level methods and this override when locating the caller
        fn, lno, func, sinfo = self.findCaller(stack_info, stacklevel)
        if exc_info:
            if isinstance(exc_info, BaseException):
                exc_info = (type(exc_info), exc_info, exc_info.__traceback__)
            elif not isinstance(exc_info, tuple):
                exc_info = sys.exc_info()

        record = self.makeRecord(self.name, level, fn, lno, msg, args, exc_info, func, extra, sinfo)
        self.handle(record)


for custom_name, custom_num in custom_levels.items():
    logging.addLevelName(custom_num, custom_name)
    setattr(SysPerfLogger, custom_name.lower(), _level_method(custom_num))


class SysPerfFormatter(logging.Formatter):
    """
    ``2025-01-11 14:30:00|STATUS: message``

    With ``debug`` the module and line of the call site follow the level name.
    With ``color`` the line is wrapped in the level's ANSI color.
    """

    def __init__(self, debug: bool = False, color: bool = False):
        super().__init__()
        self.debug = debug
        self.color = color

    def format(self, record):
        stamp = time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(record.created))
        where = f":{record.module}:{record.lineno}" if self.debug else ""
        text = f"{stamp}|{record.levelname}{where}: {record.getMessage()}"
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        if not self.color:
            return text
        return f"{LEVEL_COLORS.get(record.levelno, RESET)}{text}{RESET}"


def _stream_handlers(_logger):
    return [h for h in _logger.handlers if not isinstance(h, logging.FileHandler)]


def setup_logging(name="sysperf", stream_log_level=DEFAULT_STREAM_LOG_LEVEL, stream=None):
    """
    Build the logger for one process.

    Log lines go to stderr so that ``sysperf metrics`` can write JSON to
    stdout. The instance is not registered with logging.getLogger(); main()
    creates it once and hands it to every component that logs.
    """
    if isinstance(stream_log_level, str):
        stream_log_level = logging.getLevelName(stream_log_level.upper())

    stream = stream or sys.stderr
    _logger = SysPerfLogger(name)
    _logger.setLevel(RIDICULOUS)

    stream_handler = logging.StreamHandler(stream)
    stream_handler.setFormatter(SysPerfFormatter(color=stream_wants_color(stream)))
    stream_handler.setLevel(stream_log_level)
    _logger.addHandler(stream_handler)

    return _logger


def add_file_handler(_logger, log_file, level=DEBUG):
    """Append a plain, location-annotated copy of the log to ``log_file``."""
    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(SysPerfFormatter(debug=True))
    file_handler.setLevel(level)
    _logger.addHandler(file_handler)
    return file_handler


def apply_logging_options(_logger, args):
    """Apply --verbose, --debug, --stream-log-level and --log-file, in that order."""
    if args is None:
        return

    for handler in _stream_handlers(_logger):
        if getattr(args, "verbose", False) and handler.level > VERBOSE:
            handler.setLevel(VERBOSE)
        if getattr(args, "debug", False):
            handler.setFormatter(SysPerfFormatter(debug=True, color=getattr(handler.formatter, "color", False)))
            if handler.level > DEBUG:
                handler.setLevel(DEBUG)
        if getattr(args, "stream_log_level", None):
            handler.setLevel(args.stream_log_level.upper())

    if getattr(args, "log_file", None):
        add_file_handler(_logger, args.log_file)

#!/usr/bin/env python3
"""
sysperf - Main Entry Point

Dispatches the ``benchmark`` and ``metrics`` subcommands (or the interactive
menu) and turns sysperf exceptions into exit codes with the error's
suggestion logged alongside.
"""

import json
import sys
import traceback

from dataclasses import replace
from typing import Optional

from sysperf.benchmarks import FioBenchmark
from sysperf.cli import interactive_menu, parse_arguments
from sysperf.config import BENCHMARK_TOOLS, DATETIME_STR, EXIT_CODE, SYSPERF_DEBUG, SysPerfConfig, load_config_file
from sysperf.errors import (
    ConfigurationError,
    EnvironmentSetupError,
    ErrorCode,
    SysPerfException,
    TelemetryError,
    ToolUnavailableError,
)
from sysperf.results import ResultAggregator
from sysperf.storage import JsonFileStore
from sysperf.sysperf_logging import apply_logging_options, setup_logging
from sysperf.telemetry import BackgroundSampler, CollectorConfig, get_collector, samples_to_dicts
from sysperf.utils import SysPerfJsonEncoder
from sysperf.workloads import list_workloads

FIO_OVERRIDES = ("ioengine", "size", "numjobs", "iodepth", "runtime", "fio_bin")


def build_settings(args, config: Optional[SysPerfConfig] = None) -> SysPerfConfig:
    """Apply defaults, then the YAML file, then command-line overrides."""
    config = config or load_config_file(getattr(args, "config_file", None))
    overrides = {name: getattr(args, name) for name in FIO_OVERRIDES if getattr(args, name, None) is not None}
    if overrides:
        config.fio = replace(config.fio, **overrides)
    if getattr(args, "benchmark_dir", None):
        config.benchmark_dir = args.benchmark_dir
    if getattr(args, "results_dir", None):
        config.results_dir = args.results_dir
    return config


def run_benchmark(args, logger, config: Optional[SysPerfConfig] = None, run_datetime=DATETIME_STR):
    """
    Run a benchmark matrix.

    Returns:
        EXIT_CODE.SUCCESS once the matrix completed, even if some workloads
        failed. The summary table lists per-workload status.

    Raises:
        ConfigurationError: Unknown tool or invalid settings.
        EnvironmentSetupError: Benchmark directory cannot be prepared.
        ToolUnavailableError: fio is missing or broken.
    """
    tool = (args.tool or "").lower()
    if tool not in BENCHMARK_TOOLS:
        raise ConfigurationError(
            f"Unsupported benchmark tool: {args.tool}",
            parameter="tool",
            expected=BENCHMARK_TOOLS,
            actual=args.tool,
            suggestion=f"Use one of: {', '.join(BENCHMARK_TOOLS)}",
            code=ErrorCode.CONFIG_INVALID_VALUE,
        )

    config = build_settings(args, config)
    telemetry_config = CollectorConfig(interval=args.telemetry_interval, count=1)
    aggregator = ResultAggregator(logger=logger)

    benchmark = FioBenchmark(
        logger,
        benchmark_dir=config.benchmark_dir,
        results_dir=config.results_dir,
        settings=config.fio,
        workloads=list_workloads(args.catalog),
        fail_fast=args.fail_fast,
        aggregator=aggregator,
        run_datetime=run_datetime,
        what_if=args.what_if,
        debug=args.debug,
        telemetry=args.telemetry,
        telemetry_phases=args.telemetry_phase,
        telemetry_config=telemetry_config,
    )

    benchmark.run()
    aggregator.report()
    logger.status(f'Metadata written to: {benchmark.metadata_file_path}')

    if args.store:
        store = JsonFileStore(args.store, logger=logger)
        key = f"benchmark/{run_datetime}"
        store.set(key, aggregator.summary())
        logger.status(f'Saved summary to {args.store} under {key}')

    return EXIT_CODE.SUCCESS


def collect_metrics(args, logger):
    """Sample one telemetry source and print (or write) the records as JSON."""
    count = None if args.continuous else args.count
    config = CollectorConfig(interval=args.interval, count=count, per_unit=not args.aggregate)
    collector = get_collector(args.metric, logger, config)

    if args.continuous:
        sampler = BackgroundSampler(collector)
        logger.status(f'Collecting {args.metric} every {args.interval}s. Press Ctrl-C to stop.')
        sampler.start()
        try:
            while not sampler.wait(timeout=0.5):
                pass
        except KeyboardInterrupt:
            logger.status('Stopping collection')
        samples = sampler.stop()
        if sampler.error is not None:
            if isinstance(sampler.error, SysPerfException) and not samples:
                raise sampler.error
            logger.warning(f'{args.metric} collection ended early: {sampler.error}')
    else:
        samples = collector.collect()

    document = json.dumps(samples_to_dicts(samples), indent=2, cls=SysPerfJsonEncoder)
    if args.output:
        try:
            with open(args.output, "w") as f:
                f.write(document + "\n")
        except OSError as e:
            raise EnvironmentSetupError(
                "Unable to write metrics output",
                path=args.output,
                operation="write",
                os_error=e.strerror or str(e),
                code=EnvironmentSetupError.code_for_errno(e.errno),
            ) from e
        logger.status(f'Wrote {len(samples)} {args.metric} record(s) to {args.output}')
    else:
        print(document)
    return EXIT_CODE.SUCCESS


def _main_impl(logger, argv=None):
    args = parse_arguments(argv)
    if args.program is None:
        args = interactive_menu()
        if args is None:
            return EXIT_CODE.SUCCESS

    config = load_config_file(getattr(args, "config_file", None))
    if not getattr(args, "stream_log_level", None) and config.log_level != "INFO":
        args.stream_log_level = config.log_level

    apply_logging_options(logger, args)

    if args.program == "benchmark":
        return run_benchmark(args, logger, config)
    if args.program == "metrics":
        return collect_metrics(args, logger)

    raise ConfigurationError(f"Unknown command: {args.program}", parameter="program",
                             expected=["benchmark", "metrics"], actual=args.program)


def _log_exception(logger, e: SysPerfException):
    logger.error(str(e))
    if e.suggestion:
        logger.info(f"Suggestion: {e.suggestion}")


def main(argv=None):
    """
    Main entry point with comprehensive error handling.

    Fatal errors are logged with their suggestion and mapped to an exit code.
    """
    logger = setup_logging("sysperf")
    try:
        return _main_impl(logger, argv)

    except ConfigurationError as e:
        _log_exception(logger, e)
        if e.code == ErrorCode.CONFIG_FILE_NOT_FOUND:
            return EXIT_CODE.FILE_NOT_FOUND
        return EXIT_CODE.CONFIG_ERROR

    except EnvironmentSetupError as e:
        _log_exception(logger, e)
        return EXIT_CODE.ENVIRONMENT_ERROR

    except ToolUnavailableError as e:
        _log_exception(logger, e)
        return EXIT_CODE.TOOL_UNAVAILABLE

    except TelemetryError as e:
        _log_exception(logger, e)
        return EXIT_CODE.GENERAL_ERROR

    except SysPerfException as e:
        # Catch-all for any other custom exceptions
        _log_exception(logger, e)
        return EXIT_CODE.GENERAL_ERROR

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return EXIT_CODE.INTERRUPTED

    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}")
        if SYSPERF_DEBUG:
            logger.debug("Stack trace:")
            traceback.print_exc()
        else:
            logger.info("Set SYSPERF_DEBUG=true for the full stack trace")
        return EXIT_CODE.GENERAL_ERROR


if __name__ == "__main__":
    sys.exit(main())

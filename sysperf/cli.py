"""
CLI argument parsing for sysperf.

Two subcommands are available:
    - benchmark: run a fio workload matrix
    - metrics: sample one telemetry source and print the records as JSON

Running ``sysperf`` with no subcommand opens an interactive menu that builds
the same arguments the subcommands would.
"""

import argparse

from typing import List, Optional

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt

from sysperf import VERSION
from sysperf.config import BENCHMARK_TOOLS, CATALOGS, METRIC_SOURCES, TELEMETRY_PHASE


HELP_MESSAGES = {
    'sub_commands': "Select a subcommand.",
    'tool': f"Benchmark tool to drive. Supported tools: {BENCHMARK_TOOLS}",
    'catalog': (
        "Workload catalog to run. 'ai' runs the AI/ML mixes, 'traditional' runs the pure, "
        "mixed and sequential workloads, 'all' runs both in that order."
    ),
    'fail_fast': "Stop the matrix at the first failed workload and mark the rest as skipped.",
    'benchmark_dir': "Directory where fio creates its scratch files. Must be on the storage under test.",
    'results_dir': "Directory where fio JSON results, telemetry and metadata are written. Defaults to the benchmark directory.",
    'telemetry': f"Telemetry sources to sample around each workload. Options: {METRIC_SOURCES}",
    'telemetry_phase': (
        "When to sample telemetry. 'before' and 'after' take one snapshot each, 'during' samples "
        "continuously while fio runs. Defaults to before and after."
    ),
    'telemetry_interval': "Seconds between telemetry samples (and the sysstat measurement window).",
    'what_if': "Print the fio commands that would run without executing anything.",
    'store': "JSON file used as a key-value store. The matrix summary is saved under 'benchmark/<run datetime>'.",
    'config_file': "Path to YAML file with 'general' and 'fio' overrides. Command line options win over the file.",
    'metric': f"Telemetry source to sample. Options: {METRIC_SOURCES}",
    'interval': "Seconds between samples. 0 reports since-boot figures for mpstat, vmstat and iostat.",
    'count': "Number of samples to take.",
    'continuous': "Sample until interrupted with Ctrl-C.",
    'aggregate': "Report one aggregate row instead of per-CPU / per-device rows.",
    'output': "Write the records to this file instead of stdout.",
    'log_file': "Also write the full log to this file.",
}

PROGRAM_DESCRIPTIONS = {
    'benchmark': "Run a storage benchmark workload matrix",
    'metrics': "Collect system telemetry",
}

MENU_CHOICES = {
    "1": "benchmark",
    "2": "metrics",
    "3": "exit",
}


def add_universal_arguments(parser):
    """Add arguments common to every subcommand.

    Args:
        parser: Argparse parser to add arguments to.
    """
    standard_args = parser.add_argument_group("Standard Arguments")
    standard_args.add_argument(
        '--config-file', '-c',
        type=str,
        help=HELP_MESSAGES['config_file']
    )

    output_control = parser.add_argument_group("Output Control")
    output_control.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode"
    )
    output_control.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose mode"
    )
    output_control.add_argument(
        "--stream-log-level",
        type=str,
        default=None,
        help="Console log level (e.g. DEBUG, INFO, STATUS, WARNING)"
    )
    output_control.add_argument(
        "--log-file",
        type=str,
        help=HELP_MESSAGES['log_file']
    )


def add_benchmark_arguments(parser):
    """Add arguments for the benchmark subcommand."""
    parser.add_argument(
        '--tool', '-t',
        type=str,
        default="fio",
        help=HELP_MESSAGES['tool']
    )
    parser.add_argument(
        '--catalog',
        choices=CATALOGS.values(),
        default=CATALOGS.AI.value,
        help=HELP_MESSAGES['catalog']
    )
    parser.add_argument(
        '--fail-fast',
        action="store_true",
        help=HELP_MESSAGES['fail_fast']
    )
    parser.add_argument(
        '--benchmark-dir', '-bd',
        type=str,
        help=HELP_MESSAGES['benchmark_dir']
    )
    parser.add_argument(
        '--results-dir', '-rd',
        type=str,
        help=HELP_MESSAGES['results_dir']
    )
    parser.add_argument(
        '--store',
        type=str,
        metavar="PATH",
        help=HELP_MESSAGES['store']
    )

    telemetry_args = parser.add_argument_group("Telemetry")
    telemetry_args.add_argument(
        '--telemetry',
        nargs="+",
        default=[],
        metavar="NAME",
        help=HELP_MESSAGES['telemetry']
    )
    telemetry_args.add_argument(
        '--telemetry-phase',
        nargs="+",
        choices=TELEMETRY_PHASE.values(),
        default=[],
        help=HELP_MESSAGES['telemetry_phase']
    )
    telemetry_args.add_argument(
        '--telemetry-interval',
        type=float,
        default=1.0,
        help=HELP_MESSAGES['telemetry_interval']
    )

    fio_args = parser.add_argument_group("fio Overrides")
    fio_args.add_argument('--ioengine', type=str, help="fio I/O engine")
    fio_args.add_argument('--size', type=str, help="Scratch file size per job (fio --size)")
    fio_args.add_argument('--numjobs', type=int, help="Number of fio jobs")
    fio_args.add_argument('--iodepth', type=int, help="Queue depth per job")
    fio_args.add_argument('--runtime', type=int, help="Seconds to run each workload")
    fio_args.add_argument('--fio-bin', type=str, help="Path to the fio executable")

    view_only_args = parser.add_argument_group("View Only")
    view_only_args.add_argument(
        "--what-if",
        action="store_true",
        help=HELP_MESSAGES['what_if']
    )


def add_metrics_arguments(parser):
    """Add arguments for the metrics subcommand."""
    parser.add_argument(
        '--metric', '-m',
        type=str,
        required=True,
        help=HELP_MESSAGES['metric']
    )
    parser.add_argument(
        '--interval', '-i',
        type=float,
        default=1.0,
        help=HELP_MESSAGES['interval']
    )
    duration = parser.add_mutually_exclusive_group()
    duration.add_argument(
        '--count', '-n',
        type=int,
        default=1,
        help=HELP_MESSAGES['count']
    )
    duration.add_argument(
        '--continuous',
        action="store_true",
        help=HELP_MESSAGES['continuous']
    )
    parser.add_argument(
        '--aggregate',
        action="store_true",
        help=HELP_MESSAGES['aggregate']
    )
    parser.add_argument(
        '--output', '-o',
        type=str,
        help=HELP_MESSAGES['output']
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sysperf", description="System performance benchmarking and telemetry")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    sub_programs = parser.add_subparsers(dest="program", help=HELP_MESSAGES['sub_commands'])

    benchmark_parser = sub_programs.add_parser(
        "benchmark",
        description=PROGRAM_DESCRIPTIONS['benchmark'],
        help="Run benchmarks"
    )
    metrics_parser = sub_programs.add_parser(
        "metrics",
        description=PROGRAM_DESCRIPTIONS['metrics'],
        help="Collect system metrics"
    )

    add_benchmark_arguments(benchmark_parser)
    add_metrics_arguments(metrics_parser)

    for _parser in (benchmark_parser, metrics_parser):
        add_universal_arguments(_parser)

    return parser


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        argparse.Namespace with ``program`` set to None when no subcommand
        was given.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    validate_args(args, parser)
    return args


def validate_args(args, parser):
    if getattr(args, "program", None) == "metrics":
        if args.interval < 0:
            parser.error("--interval must be >= 0")
        if args.continuous and args.interval == 0:
            parser.error("--continuous needs an --interval greater than 0")
        if not args.continuous and args.count < 1:
            parser.error("--count must be at least 1")
    if getattr(args, "program", None) == "benchmark":
        if args.telemetry_interval <= 0:
            parser.error("--telemetry-interval must be greater than 0")


def interactive_menu(console: Optional[Console] = None) -> Optional[argparse.Namespace]:
    """
    Ask what to run and return the equivalent parsed arguments.

    Returns None when the user picks Exit.
    """
    console = console or Console()
    console.print("[bold green]sysperf[/] system performance tool")
    for key, label in MENU_CHOICES.items():
        console.print(f"  {key}. {label.capitalize()}")

    choice = Prompt.ask("Select an operation", choices=list(MENU_CHOICES), default="1", console=console)
    program = MENU_CHOICES[choice]
    if program == "exit":
        return None

    argv: List[str] = [program]
    if program == "benchmark":
        catalog = Prompt.ask("Workload catalog", choices=CATALOGS.values(), default=CATALOGS.AI.value,
                             console=console)
        argv += ["--tool", "fio", "--catalog", catalog]
        if Confirm.ask("Dry run (what-if)?", default=False, console=console):
            argv.append("--what-if")
    else:
        metric = Prompt.ask("Metric", choices=METRIC_SOURCES, default="meminfo", console=console)
        count = IntPrompt.ask("Number of samples", default=1, console=console)
        argv += ["--metric", metric, "--count", str(max(1, count))]

    return parse_arguments(argv)

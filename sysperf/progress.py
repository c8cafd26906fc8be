"""Progress indication for the benchmark matrix using Rich.

In interactive terminals a Rich progress bar tracks workloads as they finish.
In non-interactive terminals (CI, redirected output) each workload start is
logged at STATUS level instead.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator, Optional, Sequence

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

if TYPE_CHECKING:
    from logging import Logger

StartFunc = Callable[[str], None]
FinishFunc = Callable[[], None]


def is_interactive_terminal() -> bool:
    """Return True when stdout is an interactive terminal."""
    console = Console()
    return console.is_terminal


@contextmanager
def matrix_progress(
    workload_names: Sequence[str],
    logger: Optional["Logger"] = None,
    transient: bool = True,
) -> Iterator[tuple[StartFunc, FinishFunc]]:
    """Track progress through a list of workloads.

    Args:
        workload_names: Names in execution order; sets the bar's total.
        logger: Logger for non-interactive status lines.
        transient: If True, the bar is cleared when the matrix completes.

    Yields:
        Tuple of (start_func, finish_func):
            - start_func(name): a workload is starting
            - finish_func(): the current workload is done (advances the bar)

    Example:
        >>> with matrix_progress(names, logger) as (start, finish):
        ...     for name in names:
        ...         start(name)
        ...         run(name)
        ...         finish()
    """
    total = len(workload_names)

    if not is_interactive_terminal():
        position = 0

        def log_start(name: str) -> None:
            nonlocal position
            position += 1
            if logger is not None:
                logger.status(f"Workload {position}/{total}: {name}")

        def noop_finish() -> None:
            pass

        yield (log_start, noop_finish)
        return

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        transient=transient,
    )
    task_id: TaskID = TaskID(0)

    try:
        progress.start()
        task_id = progress.add_task("Benchmark matrix", total=total)

        def bar_start(name: str) -> None:
            progress.update(task_id, description=f"Running {name}")

        def bar_finish() -> None:
            progress.update(task_id, advance=1)

        yield (bar_start, bar_finish)
    finally:
        progress.stop()


__all__ = [
    "is_interactive_terminal",
    "matrix_progress",
]

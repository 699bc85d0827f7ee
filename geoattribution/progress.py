"""
Progress reporting for long re-attribution scans.

The visit total is counted once up front and never corrected, so the
percentage is advisory: rows appended or deleted during the scan make it
drift (it can pass 100%).
"""

import math
from dataclasses import dataclass, field
from time import perf_counter

from rich.console import Console

PERCENT_STEP_DEFAULT = 5


def get_percent_step(value) -> int:
    """
    Normalize the percent-step argument.

    Non-numeric input falls back to 5. Numeric input outside [1, 99] becomes
    100, i.e. a single report once everything is processed. Fractional steps
    are truncated to whole percents.
    """
    if value is None or isinstance(value, bool):
        return PERCENT_STEP_DEFAULT

    try:
        step = float(value)
    except (TypeError, ValueError):
        return PERCENT_STEP_DEFAULT

    if math.isnan(step) or math.isinf(step):
        return PERCENT_STEP_DEFAULT

    if step > 99 or step < 1:
        return 100

    return int(step)


@dataclass
class ProgressState:
    """Counters of one scan."""
    total: int
    processed: int = 0
    last_percent: int = 0
    started_at: float = field(default_factory=perf_counter)

    @property
    def elapsed_seconds(self) -> float:
        return perf_counter() - self.started_at


def format_elapsed(state: ProgressState) -> str:
    return f"Time elapsed: {state.elapsed_seconds:.3f}s"


class ProgressReporter:
    """Prints a status line each time a new percent-step boundary is reached."""

    def __init__(self, console: Console, percent_step=PERCENT_STEP_DEFAULT):
        self.console = console
        self.percent_step = get_percent_step(percent_step)

    def record_processed(self, state: ProgressState) -> int | None:
        """
        Count one processed row.

        Returns:
            The percentage reported by this call, or None if nothing was printed.
        """
        state.processed += 1

        if state.total <= 0:
            return None

        # ceil(processed / total * 100) in integer arithmetic
        percent = -(-state.processed * 100 // state.total)

        # Only the boundary landed on is reported; multiples skipped over
        # within a single call are not.
        if percent > state.last_percent and percent % self.percent_step == 0:
            self.console.print(f"{percent}% processed. [yellow]{format_elapsed(state)}[/yellow]")
            state.last_percent = percent
            return percent

        return None

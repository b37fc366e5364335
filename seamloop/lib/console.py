"""Shared Rich console for the seamless-loop tools.

Automatically disables markup and color when stdout is not a TTY (e.g.,
when captured by subprocess in tests), so plain-text assertions still pass.
"""

import sys

from rich.console import Console
from rich.table import Table
from rich.rule import Rule

_is_tty = sys.stdout.isatty()

console = Console(highlight=False, force_terminal=_is_tty, no_color=not _is_tty)


def info_table():
    """Borderless two-column key/value table used for headers and summaries."""
    table = Table(show_header=False, show_edge=False, pad_edge=False, padding=(0, 2))
    table.add_column(style="bold")
    table.add_column()
    return table


def fail(message):
    """Print an error to stderr and exit with status 1."""
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


__all__ = ["console", "Table", "Rule", "info_table", "fail"]

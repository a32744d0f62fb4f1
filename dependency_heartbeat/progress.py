"""
Progress sinks for dependency checks.
"""

from __future__ import annotations

import sys
from typing import Optional, TextIO

from tqdm import tqdm

from .interfaces import ProgressCallback, no_progress


DEP_COLUMN_WIDTH = 50


def console_progress(stream: Optional[TextIO] = None) -> ProgressCallback:
    """Print each dependency and its status on its own pair of lines."""

    def report(dep: str, status: str) -> None:
        out = stream or sys.stdout
        out.write(f"{dep:<{DEP_COLUMN_WIDTH}}\n")
        if status:
            out.write(" " * DEP_COLUMN_WIDTH + f"[{status}]\n")
        out.flush()

    return report


class BarProgress:
    """Progress bar over the direct dependencies being checked."""

    def __init__(self, total: int, stream: Optional[TextIO] = None) -> None:
        self.stream = stream or sys.stderr
        self.bar = tqdm(total=total, unit="dep", file=self.stream)

    def __call__(self, dep: str, status: str) -> None:
        self.bar.set_postfix_str(dep, refresh=False)
        if status.startswith(("Archived", "Error")):
            tqdm.write(f"{dep}: {status}", file=self.stream)
        self.bar.update(1)

    def close(self) -> None:
        self.bar.close()

    def __enter__(self) -> "BarProgress":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def make_progress(
    style: str, total: int, quiet: bool = False, stream: Optional[TextIO] = None
):
    """Return the progress sink for a CLI style: ``lines`` or ``bar``."""
    if quiet:
        return no_progress
    if style == "bar":
        return BarProgress(total, stream)
    if style == "lines":
        return console_progress(stream)
    raise ValueError(f"Unknown progress style: {style}")

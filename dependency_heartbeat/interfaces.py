"""
Interfaces for status fetchers and progress reporting.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, Protocol

from .models import DependencyRef, RawStatus


# Turns a successful response body into the last activity timestamp, if any.
DateExtractor = Callable[[str], Optional[datetime]]

# Receives the dependency path and a human-readable status line.
ProgressCallback = Callable[[str, str], None]


class StatusFetcher(Protocol):
    """Look up the status of a single dependency."""

    def fetch(self, path: str, dependency: Optional[DependencyRef] = None) -> RawStatus:
        ...


def no_progress(path: str, status: str) -> None:
    """Progress callback that discards every update."""

"""
Core data models for dependency status checks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .time_utils import parse_relative_duration


DEFAULT_THRESHOLD = timedelta(days=2 * 365)


@dataclass(frozen=True)
class DependencyRef:
    """A dependency as declared by the project manifest."""

    path: str
    version: str = ""
    indirect: bool = False


def unique_direct(deps: Iterable[DependencyRef]) -> List[DependencyRef]:
    """Direct dependencies, one per path. The first entry for a path wins."""
    seen = set()
    direct = []
    for dep in deps:
        if dep.indirect or dep.path in seen:
            continue
        seen.add(dep.path)
        direct.append(dep)
    return direct


@dataclass(frozen=True)
class RawStatus:
    """Outcome of a single status lookup, before classification."""

    dependency: DependencyRef
    http_status: int = 0
    last_activity: Optional[datetime] = None
    transport_error: Optional[str] = None


class VerdictState(str, Enum):
    ACTIVE = "active"
    UNMAINTAINED = "unmaintained"
    ERROR = "error"


@dataclass(frozen=True)
class Verdict:
    """Classified status of one dependency."""

    dependency: DependencyRef
    state: VerdictState
    reason: str
    last_activity: Optional[datetime] = None
    http_status: int = 0

    @property
    def path(self) -> str:
        return self.dependency.path

    @property
    def is_unmaintained(self) -> bool:
        return self.state is VerdictState.UNMAINTAINED

    @property
    def is_error(self) -> bool:
        return self.state is VerdictState.ERROR


@dataclass(frozen=True)
class StalenessPolicy:
    """Age beyond which a dependency's last activity marks it unmaintained."""

    threshold: timedelta = DEFAULT_THRESHOLD

    def __post_init__(self) -> None:
        if self.threshold < timedelta(0):
            raise ValueError("staleness threshold cannot be negative")

    @classmethod
    def from_string(cls, value: str) -> "StalenessPolicy":
        """Build a policy from a relative duration such as ``1y3m``."""
        return cls(threshold=parse_relative_duration(value))


class DispatchResult:
    """Verdicts in the order their checks completed.

    Holds exactly one verdict per dispatched dependency. Use :meth:`sorted`
    when a stable order is needed.
    """

    def __init__(self, verdicts: Iterable[Verdict] = ()) -> None:
        self._verdicts: Tuple[Verdict, ...] = tuple(verdicts)

    def __len__(self) -> int:
        return len(self._verdicts)

    def __iter__(self) -> Iterator[Verdict]:
        return iter(self._verdicts)

    def __repr__(self) -> str:
        return f"DispatchResult({len(self._verdicts)} verdicts)"

    @property
    def verdicts(self) -> Tuple[Verdict, ...]:
        return self._verdicts

    def by_path(self) -> Dict[str, Verdict]:
        return {verdict.path: verdict for verdict in self._verdicts}

    def sorted(self) -> List[Verdict]:
        return sorted(self._verdicts, key=lambda verdict: verdict.path)

    def unmaintained(self) -> List[Verdict]:
        return [v for v in self.sorted() if v.state is VerdictState.UNMAINTAINED]

    def errors(self) -> List[Verdict]:
        return [v for v in self.sorted() if v.state is VerdictState.ERROR]

    def active(self) -> List[Verdict]:
        return [v for v in self.sorted() if v.state is VerdictState.ACTIVE]


@dataclass
class ModuleInfo:
    """Parsed manifest of the audited project."""

    module_name: str
    language_version: str = ""
    requires: List[DependencyRef] = field(default_factory=list)
    ecosystem: str = "go"

    def direct_dependencies(self) -> List[DependencyRef]:
        return unique_direct(self.requires)

    @property
    def total_count(self) -> int:
        return len({dep.path for dep in self.requires})

    @property
    def direct_count(self) -> int:
        return len(self.direct_dependencies())

"""
Bounded-concurrency dispatch of dependency status checks.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from .classifier import classify, progress_text
from .interfaces import ProgressCallback, StatusFetcher, no_progress
from .models import (
    DependencyRef,
    DispatchResult,
    RawStatus,
    StalenessPolicy,
    Verdict,
    VerdictState,
    unique_direct,
)
from .time_utils import utc_now


logger = logging.getLogger(__name__)

DEFAULT_MAX_IN_FLIGHT = 10
CANCELLED_REASON = "cancelled before fetch"

# Upper bound on how long a waiting unit takes to notice an externally set
# cancel event. Cancellation from the dispatcher itself wakes units at once.
_CANCEL_CHECK_INTERVAL = 0.5


class AdmissionGate:
    """Counting admission limit that waiting units can be woken from.

    Works like a bounded semaphore, except that :meth:`cancel` releases every
    waiter immediately and :meth:`acquire` then reports ``False``.
    """

    def __init__(self, limit: int, cancel_event: threading.Event) -> None:
        self.limit = limit
        self.cancel_event = cancel_event
        self._in_use = 0
        self._cond = threading.Condition()

    def acquire(self) -> bool:
        with self._cond:
            while not self.cancel_event.is_set():
                if self._in_use < self.limit:
                    self._in_use += 1
                    return True
                self._cond.wait(timeout=_CANCEL_CHECK_INTERVAL)
            return False

    def release(self) -> None:
        with self._cond:
            if self._in_use == 0:
                raise ValueError("AdmissionGate released too many times")
            self._in_use -= 1
            self._cond.notify()

    def cancel(self) -> None:
        with self._cond:
            self.cancel_event.set()
            self._cond.notify_all()

    @property
    def in_use(self) -> int:
        with self._cond:
            return self._in_use


class ConcurrentDispatcher:
    """Check many dependencies concurrently with a cap on in-flight fetches.

    Every distinct direct dependency gets its own unit of work. A unit waits
    for one of ``max_in_flight`` admission slots, fetches, classifies,
    reports progress and hands its verdict back to the calling thread, which
    is the only writer of the result list.
    """

    def __init__(
        self,
        fetcher: StatusFetcher,
        max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            fetcher: Status fetcher shared by all units
            max_in_flight: Maximum number of concurrent fetches
            clock: Source of the reference time used for staleness checks
        """
        if max_in_flight < 1:
            raise ValueError("max_in_flight must be at least 1")
        self.fetcher = fetcher
        self.max_in_flight = max_in_flight
        self.clock = clock

    def dispatch(
        self,
        deps: Iterable[DependencyRef],
        policy: Optional[StalenessPolicy] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
    ) -> DispatchResult:
        """Check every direct dependency and return one verdict for each.

        Args:
            deps: Dependencies from the manifest. Indirect ones are skipped,
                and a path listed more than once is checked once, using its
                first entry.
            policy: Staleness policy, fixed for the whole run
            on_progress: Called exactly once per checked dependency
            cancel_event: When set, units that have not started fetching
                are reported as errors instead of being fetched
            deadline: Seconds after which the dispatch is cancelled

        Returns:
            All verdicts, in completion order
        """
        direct = unique_direct(deps)
        if not direct:
            return DispatchResult()

        policy = policy or StalenessPolicy()
        if cancel_event is None:
            cancel_event = threading.Event()
        now = self.clock()
        gate = AdmissionGate(self.max_in_flight, cancel_event)
        report = _serialized(on_progress or no_progress)

        timer = None
        if deadline is not None:
            timer = threading.Timer(deadline, gate.cancel)
            timer.daemon = True
            timer.start()

        logger.info(
            "Checking %d direct dependencies (%d at a time)",
            len(direct),
            self.max_in_flight,
        )
        verdicts: List[Verdict] = []
        try:
            with ThreadPoolExecutor(
                max_workers=len(direct), thread_name_prefix="heartbeat"
            ) as executor:
                futures = [
                    executor.submit(self._check_one, dep, policy, now, report, gate)
                    for dep in direct
                ]
                try:
                    for future in as_completed(futures):
                        verdicts.append(future.result())
                except BaseException:
                    # Waiting units must drain before the executor joins them.
                    gate.cancel()
                    raise
        finally:
            if timer is not None:
                timer.cancel()

        return DispatchResult(verdicts)

    def _check_one(
        self,
        dep: DependencyRef,
        policy: StalenessPolicy,
        now: datetime,
        report: ProgressCallback,
        gate: AdmissionGate,
    ) -> Verdict:
        acquired = gate.acquire()
        try:
            if acquired:
                raw = self._fetch(dep)
            else:
                logger.debug("Skipping %s: dispatch cancelled", dep.path)
                raw = RawStatus(dependency=dep, transport_error=CANCELLED_REASON)
            verdict = self._classify(dep, raw, policy, now)
            report(dep.path, progress_text(verdict))
        finally:
            if acquired:
                gate.release()
        return verdict

    def _fetch(self, dep: DependencyRef) -> RawStatus:
        try:
            return self.fetcher.fetch(dep.path, dependency=dep)
        except Exception as e:
            logger.exception("Unexpected failure checking %s", dep.path)
            return RawStatus(dependency=dep, transport_error=_describe(e))

    def _classify(
        self, dep: DependencyRef, raw: RawStatus, policy: StalenessPolicy, now: datetime
    ) -> Verdict:
        try:
            return classify(raw, policy, now)
        except Exception as e:
            logger.exception("Could not classify status of %s: %r", dep.path, raw)
            return Verdict(
                dependency=dep,
                state=VerdictState.ERROR,
                reason=f"invalid status: {_describe(e)}",
            )


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__


def _serialized(callback: ProgressCallback) -> ProgressCallback:
    lock = threading.Lock()

    def report(path: str, status: str) -> None:
        with lock:
            try:
                callback(path, status)
            except Exception:
                logger.exception("Progress callback failed for %s", path)

    return report

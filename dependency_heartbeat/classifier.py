"""
Classify raw status lookups into verdicts.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from .models import RawStatus, StalenessPolicy, Verdict, VerdictState
from .time_utils import ensure_utc, format_date, utc_now


HTTP_NOT_FOUND = 404
NOT_FOUND_REASON = "not found at status source"


def classify(
    raw: RawStatus,
    policy: StalenessPolicy,
    now: Optional[datetime] = None,
) -> Verdict:
    """Map a raw status to a verdict. The first matching rule wins.

    A stale timestamp outranks a 404: a dependency that is both old and
    missing is reported as stale.
    """
    now = ensure_utc(now) if now is not None else utc_now()

    def verdict(state: VerdictState, reason: str) -> Verdict:
        return Verdict(
            dependency=raw.dependency,
            state=state,
            reason=reason,
            last_activity=raw.last_activity,
            http_status=raw.http_status,
        )

    if raw.transport_error:
        return verdict(VerdictState.ERROR, raw.transport_error)

    if raw.last_activity is not None and now - ensure_utc(raw.last_activity) > policy.threshold:
        return verdict(
            VerdictState.UNMAINTAINED,
            f"Not updated since {format_date(raw.last_activity)}",
        )

    if raw.http_status == HTTP_NOT_FOUND:
        return verdict(VerdictState.UNMAINTAINED, NOT_FOUND_REASON)

    return verdict(VerdictState.ACTIVE, f"last activity {format_date(raw.last_activity)}")


def progress_text(verdict: Verdict) -> str:
    """Human-readable status line for progress output."""
    if verdict.state is VerdictState.ERROR:
        return f"Error: {verdict.reason}"
    if verdict.state is VerdictState.UNMAINTAINED:
        if verdict.reason == NOT_FOUND_REASON:
            return "Archived (Not found at status source)"
        return f"Archived (Last published: {format_date(verdict.last_activity)})"
    return f"Active (Last published: {format_date(verdict.last_activity)})"

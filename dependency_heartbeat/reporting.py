"""
Reporting and export utilities.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from .models import DispatchResult, ModuleInfo, Verdict
from .time_utils import format_date


logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "module_path",
    "version",
    "state",
    "archived",
    "last_published",
    "http_status",
    "reason",
]


def summarize(info: ModuleInfo, result: DispatchResult) -> Dict[str, int]:
    """Counts for a report. Dependency totals come from the manifest itself."""
    return {
        "total": info.total_count,
        "direct": info.direct_count,
        "unmaintained": len(result.unmaintained()),
        "errors": len(result.errors()),
        "active": len(result.active()),
    }


def _verdict_entry(verdict: Verdict) -> Dict[str, Any]:
    return {
        "module_path": verdict.path,
        "last_published": (
            verdict.last_activity.isoformat() if verdict.last_activity else None
        ),
        "archived": verdict.is_unmaintained,
        "reason": verdict.reason,
    }


def build_json_report(info: ModuleInfo, result: DispatchResult) -> Dict[str, Any]:
    counts = summarize(info, result)
    return {
        "module": info.module_name,
        "languageVersion": info.language_version,
        "ecosystem": info.ecosystem,
        "totalDependencies": counts["total"],
        "directDependencies": counts["direct"],
        "unmaintainedDependencies": counts["unmaintained"],
        "deadDirectDependencies": [_verdict_entry(v) for v in result.unmaintained()],
        "dependencies": [
            dict(_verdict_entry(v), state=v.state.value) for v in result.sorted()
        ],
    }


def render_json(info: ModuleInfo, result: DispatchResult) -> str:
    return json.dumps(build_json_report(info, result), indent=2)


def render_text(info: ModuleInfo, result: DispatchResult) -> str:
    counts = summarize(info, result)
    lines: List[str] = []

    unmaintained = result.unmaintained()
    if unmaintained:
        lines.append("")
        lines.append("Archived (Dead) Direct Dependencies:")
        for verdict in unmaintained:
            lines.append(verdict.path)
            if verdict.last_activity is not None:
                lines.append(" " * 10 + f"Last Published: {format_date(verdict.last_activity)}")

    errors = result.errors()
    if errors:
        lines.append("")
        lines.append("Dependencies That Could Not Be Checked:")
        for verdict in errors:
            lines.append(verdict.path)
            lines.append(" " * 10 + f"Error: {verdict.reason}")

    lines.append("")
    lines.append("Summary:")
    lines.append(f"- Total Dependencies: {counts['total']}")
    lines.append(f"- Direct Dependencies: {counts['direct']}")
    lines.append(f"- Unmaintained Dependencies: {counts['unmaintained']}")
    if errors:
        lines.append(f"- Failed Checks: {counts['errors']}")
    return "\n".join(lines)


def log_summary(info: ModuleInfo, result: DispatchResult) -> None:
    counts = summarize(info, result)
    logger.info("=" * 60)
    logger.info("Module: %s (%s)", info.module_name, info.ecosystem)
    logger.info("Total dependencies: %s", counts["total"])
    logger.info("Direct dependencies: %s", counts["direct"])
    logger.info("Unmaintained: %s", counts["unmaintained"])
    logger.info("Failed checks: %s", counts["errors"])
    logger.info("=" * 60)


def verdicts_frame(result: DispatchResult) -> pd.DataFrame:
    rows = [
        {
            "module_path": v.path,
            "version": v.dependency.version,
            "state": v.state.value,
            "archived": v.is_unmaintained,
            "last_published": v.last_activity,
            "http_status": v.http_status,
            "reason": v.reason,
        }
        for v in result.sorted()
    ]
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def export_csv(result: DispatchResult, csv_file: Path) -> Path:
    csv_file = Path(csv_file)
    csv_file.parent.mkdir(parents=True, exist_ok=True)
    df = verdicts_frame(result)
    df["last_published"] = df["last_published"].map(
        lambda dt: "" if pd.isna(dt) else dt.date().isoformat()
    )
    df.to_csv(csv_file, index=False)
    return csv_file

"""
Extract last activity dates from status source responses.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from bs4 import BeautifulSoup

from .time_utils import parse_timestamp


logger = logging.getLogger(__name__)

COMMIT_TIME_TEST_ID = "UnitHeader-commitTime"

_DATE_FORMATS = (
    "%b %d, %Y",
    "%B %d, %Y",
)


def parse_display_date(value: str) -> Optional[datetime]:
    """Parse a date like ``Jan 2, 2006`` or ``January 02, 2006`` as UTC midnight."""
    text = value.strip()
    if text.startswith("Published:"):
        text = text[len("Published:"):].strip()
    text = " ".join(text.split())

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def extract_publish_date(html: str) -> Optional[datetime]:
    """Return the publish date shown in a pkg.go.dev unit header."""
    soup = BeautifulSoup(html, "html.parser")
    span = soup.find("span", attrs={"data-test-id": COMMIT_TIME_TEST_ID})
    if span is None:
        return None

    published = parse_display_date(span.get_text())
    if published is None:
        logger.debug("Unrecognised publish date %r", span.get_text())
    return published


def extract_pypi_upload_time(body: str) -> Optional[datetime]:
    """Return the most recent upload time from a PyPI JSON API document."""
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return None

    latest = None
    releases = data.get("releases") or {}
    files = [f for release_files in releases.values() for f in release_files]
    files.extend(data.get("urls") or [])
    for release_file in files:
        uploaded = parse_timestamp(
            release_file.get("upload_time_iso_8601") or release_file.get("upload_time", "")
        )
        if uploaded is not None and (latest is None or uploaded > latest):
            latest = uploaded
    return latest

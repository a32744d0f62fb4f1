"""
HTTP status lookups against package status sources.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from . import __version__
from .interfaces import DateExtractor
from .models import DependencyRef, RawStatus
from .pkginfo import extract_publish_date, extract_pypi_upload_time


logger = logging.getLogger(__name__)

# Bounds each socket read and also the whole request, body included.
DEFAULT_TIMEOUT = 10 * 60
USER_AGENT = f"dependency-heartbeat/{__version__}"


@dataclass(frozen=True)
class StatusSource:
    """Where to look up a dependency and how to read the answer."""

    name: str
    url_template: str
    extractor: DateExtractor

    def url_for(self, path: str) -> str:
        return self.url_template.format(path=path)


STATUS_SOURCES: Dict[str, StatusSource] = {
    "go": StatusSource(
        name="pkg.go.dev",
        url_template="https://pkg.go.dev/{path}",
        extractor=extract_publish_date,
    ),
    "pypi": StatusSource(
        name="pypi.org",
        url_template="https://pypi.org/pypi/{path}/json",
        extractor=extract_pypi_upload_time,
    ),
}


def get_status_source(ecosystem: str) -> StatusSource:
    try:
        return STATUS_SOURCES[ecosystem.lower()]
    except KeyError:
        raise ValueError(f"Unsupported ecosystem: {ecosystem}") from None


class StatusClient:
    """Fetch the raw status of one dependency at a time.

    The client holds no per-request state, so a single instance can be shared
    by concurrent workers.
    """

    def __init__(
        self,
        source: Optional[StatusSource] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        token: Optional[str] = None,
    ) -> None:
        """Initialize the status client.

        Args:
            source: Status source to query. Defaults to pkg.go.dev.
            session: HTTP session to reuse. A new one is created if omitted.
            timeout: Seconds allowed for the whole request, reading the body
                included. Also used as the connect and per-read timeout.
            token: Optional access token sent as a bearer credential
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.source = source or STATUS_SOURCES["go"]
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.headers = {"User-Agent": USER_AGENT}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    def fetch(self, path: str, dependency: Optional[DependencyRef] = None) -> RawStatus:
        """Look up ``path`` once. Failures are reported, never raised."""
        if not path:
            raise ValueError("dependency path cannot be empty")
        dependency = dependency or DependencyRef(path=path)
        url = self.source.url_for(path)

        logger.info("Fetching status for %s", path)
        started = time.monotonic()
        try:
            with self.session.get(
                url, headers=self.headers, timeout=self.timeout, stream=True
            ) as response:
                status_code = response.status_code
                if not 200 <= status_code < 300:
                    logger.debug("%s returned HTTP %s", url, status_code)
                    return RawStatus(dependency=dependency, http_status=status_code)
                body = self._read_body(response, started)
        except requests.RequestException as e:
            logger.warning("Status lookup failed for %s: %s", path, e)
            return RawStatus(
                dependency=dependency, transport_error=str(e) or type(e).__name__
            )

        return RawStatus(
            dependency=dependency,
            http_status=status_code,
            last_activity=self._extract(path, body),
        )

    def _read_body(self, response, started: float) -> str:
        chunks = []
        for chunk in response.iter_content(chunk_size=8192):
            if time.monotonic() - started > self.timeout:
                raise requests.Timeout(f"reading response exceeded {self.timeout}s")
            chunks.append(chunk)
        return b"".join(chunks).decode(response.encoding or "utf-8", errors="replace")

    def _extract(self, path: str, body: str):
        try:
            return self.source.extractor(body)
        except Exception as e:
            logger.debug("Could not extract last activity for %s: %s", path, e)
            return None

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "StatusClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

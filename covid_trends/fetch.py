"""
Snapshot fetcher for the remote source tables

Retrieves raw bytes over HTTP with exponential backoff and keeps an optional
on-disk snapshot so a run can be replayed without the network.
"""

import hashlib
import logging
import time
from pathlib import Path
from typing import Callable, Optional

import requests

from .config import CovidTrendsConfig
from .exceptions import FetchError

logger = logging.getLogger(__name__)


class SnapshotFetcher:
    """
    Fetch source tables as bytes

    Attempt n (0-based) that fails waits backoff_seconds * 2**n before the
    next attempt. After max_retries failed attempts a FetchError is raised.
    """

    def __init__(
        self,
        snapshot_dir: Optional[Path] = None,
        timeout: float = CovidTrendsConfig.FETCH_TIMEOUT_SECONDS,
        max_retries: int = CovidTrendsConfig.FETCH_MAX_RETRIES,
        backoff_seconds: float = CovidTrendsConfig.FETCH_BACKOFF_SECONDS,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize fetcher

        Args:
            snapshot_dir: Directory for cached snapshots (None disables caching)
            timeout: Per-request timeout in seconds
            max_retries: Total attempts per URL
            backoff_seconds: Base delay for exponential backoff
            session: HTTP session (a new requests.Session by default)
            sleep: Delay function, replaceable in tests
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        self.snapshot_dir = Path(snapshot_dir) if snapshot_dir else None
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': 'covid-trends/1.0',
            'Accept': 'text/csv'
        })
        self._sleep = sleep

    def snapshot_path(self, url: str) -> Optional[Path]:
        if self.snapshot_dir is None:
            return None
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]
        name = url.rstrip("/").rsplit("/", 1)[-1] or "snapshot"
        return self.snapshot_dir / f"{digest}_{name}"

    def fetch(self, url: str, refresh: bool = False) -> bytes:
        """
        Return the bytes at url, from the snapshot cache when available

        Args:
            url: Source URL
            refresh: Ignore any cached snapshot and fetch again

        Returns:
            Raw response body
        """
        path = self.snapshot_path(url)
        if path is not None and path.exists() and not refresh:
            logger.info(f"Using cached snapshot {path.name} for {url}")
            return path.read_bytes()

        content = self._fetch_with_retry(url)

        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
            logger.info(f"Saved snapshot {path.name} ({len(content)} bytes)")

        return content

    def _fetch_with_retry(self, url: str) -> bytes:
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                logger.info(f"Fetching {url} (attempt {attempt + 1}/{self.max_retries})")
                response = self.session.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response.content

            except requests.RequestException as e:
                last_error = e
                logger.warning(f"Fetch attempt {attempt + 1} failed for {url}: {e}")
                if attempt < self.max_retries - 1:
                    self._sleep(self.backoff_seconds * 2 ** attempt)

        logger.error(f"Giving up on {url} after {self.max_retries} attempts")
        raise FetchError(url, self.max_retries, last_error)

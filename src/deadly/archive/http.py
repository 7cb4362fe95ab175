# ABOUTME: HTTP client for the archive release API and dataset downloads.
# ABOUTME: Rate limiting, retry with backoff, streaming downloads, and an injectable transport.

import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx

from deadly import __version__
from deadly.errors import DownloadFailure

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

_CHUNK_SIZE = 64 * 1024


class ArchiveHttpClient:
    """HTTP client with rate limiting and retry for release lookups and downloads.

    Wraps httpx.Client with configurable request intervals and retry logic
    for transient failures (429, 5xx).
    """

    def __init__(
        self,
        *,
        min_request_interval: float = 0.1,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        client_kwargs: dict[str, Any] = {
            "headers": {"User-Agent": f"deadly/{__version__}"},
            "timeout": timeout,
            "follow_redirects": True,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.Client(**client_kwargs)
        self._min_interval = min_request_interval
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._last_request_time: float = 0.0

    def get_json(self, url: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        """Send a GET request with rate limiting and retry.

        Raises:
            DownloadFailure: On non-retryable HTTP errors or exhausted retries.
        """
        response = self._request(url, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise DownloadFailure(f"Invalid JSON from {url}") from exc

    def download(
        self,
        url: str,
        dest: Path,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> Path:
        """Stream ``url`` into ``dest``, reporting (bytes_read, total_bytes).

        The body is written to a temporary sibling file and moved into place
        only once complete, so an interrupted download never leaves a
        truncated archive at ``dest``.

        Raises:
            DownloadFailure: On HTTP errors, exhausted retries, or I/O errors.
        """
        dest.parent.mkdir(parents=True, exist_ok=True)
        partial = dest.with_name(dest.name + ".part")
        attempts = 1 + self._max_retries
        last_status = 0

        for attempt in range(attempts):
            self._rate_limit()
            try:
                with self._client.stream("GET", url) as response:
                    last_status = response.status_code
                    if response.status_code == 200:
                        total = int(response.headers.get("Content-Length", 0))
                        read = 0
                        with partial.open("wb") as out:
                            for chunk in response.iter_bytes(_CHUNK_SIZE):
                                out.write(chunk)
                                read += len(chunk)
                                if on_progress is not None:
                                    on_progress(read, max(total, read))
                        partial.replace(dest)
                        logger.info("Downloaded %s (%d bytes)", dest.name, read)
                        return dest
            except httpx.HTTPError as exc:
                partial.unlink(missing_ok=True)
                raise DownloadFailure(f"Download failed: {url}: {exc}") from exc
            except OSError as exc:
                partial.unlink(missing_ok=True)
                raise DownloadFailure(f"Could not write {dest}: {exc}") from exc

            if last_status not in _RETRYABLE_STATUS_CODES:
                raise DownloadFailure(f"HTTP {last_status} from {url}")
            self._backoff(url, last_status, attempt, attempts)

        raise DownloadFailure(f"HTTP {last_status} from {url} after {attempts} attempts")

    def close(self) -> None:
        self._client.close()

    def _request(self, url: str, params: dict[str, str] | None = None) -> httpx.Response:
        attempts = 1 + self._max_retries
        last_status = 0
        for attempt in range(attempts):
            self._rate_limit()
            try:
                response = self._client.get(url, params=params)
                last_status = response.status_code
            except httpx.HTTPError as exc:
                raise DownloadFailure(f"Request failed: {url}: {exc}") from exc

            if response.status_code == 200:
                return response

            if response.status_code not in _RETRYABLE_STATUS_CODES:
                raise DownloadFailure(f"HTTP {response.status_code} from {url}")

            self._backoff(url, response.status_code, attempt, attempts)

        raise DownloadFailure(f"HTTP {last_status} from {url} after {attempts} attempts")

    def _backoff(self, url: str, status: int, attempt: int, attempts: int) -> None:
        if attempt >= attempts - 1:
            return
        delay = self._retry_delay * (2**attempt)
        logger.warning(
            "HTTP %d from %s, retrying in %.1fs (attempt %d/%d)",
            status,
            url,
            delay,
            attempt + 1,
            self._max_retries,
        )
        time.sleep(delay)

    def _rate_limit(self) -> None:
        """Sleep if needed to maintain minimum interval between requests."""
        if self._min_interval <= 0:
            return
        now = time.monotonic()
        elapsed = now - self._last_request_time
        if elapsed < self._min_interval and self._last_request_time > 0:
            time.sleep(self._min_interval - elapsed)
        self._last_request_time = time.monotonic()

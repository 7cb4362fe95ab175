# ABOUTME: Unit tests for the archive HTTP client.
# ABOUTME: Tests JSON lookups, streaming downloads, retries, rate limiting, and error handling.

import time
from pathlib import Path

import httpx
import pytest

from deadly.archive.http import ArchiveHttpClient
from deadly.errors import DownloadFailure


class FakeTransport(httpx.BaseTransport):
    """Fake transport for httpx that returns canned responses."""

    def __init__(self, responses: list[httpx.Response] | None = None) -> None:
        self._responses = list(responses or [])
        self._call_count = 0
        self.requests: list[httpx.Request] = []

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        self._call_count += 1
        self.requests.append(request)
        if self._responses:
            return self._responses.pop(0)
        return httpx.Response(200, json={"ok": True})

    @property
    def call_count(self) -> int:
        return self._call_count


def _client(transport: FakeTransport, **kwargs) -> ArchiveHttpClient:
    kwargs.setdefault("min_request_interval", 0.0)
    kwargs.setdefault("retry_delay", 0.0)
    return ArchiveHttpClient(transport=transport, **kwargs)


class TestGetJson:
    """Tests for ArchiveHttpClient.get_json()."""

    def test_returns_json(self) -> None:
        client = _client(FakeTransport())
        assert client.get_json("https://example.com/api", params={"q": "test"}) == {"ok": True}

    def test_user_agent_header(self) -> None:
        """Requests identify the client."""
        transport = FakeTransport()
        _client(transport).get_json("https://example.com/api")
        assert transport.requests[0].headers["user-agent"].startswith("deadly/")

    def test_invalid_json(self) -> None:
        transport = FakeTransport([httpx.Response(200, content=b"<html>")])
        with pytest.raises(DownloadFailure, match="Invalid JSON"):
            _client(transport).get_json("https://example.com/api")

    def test_non_retryable_status(self) -> None:
        """A 404 fails immediately without retrying."""
        transport = FakeTransport([httpx.Response(404)])
        with pytest.raises(DownloadFailure, match="HTTP 404"):
            _client(transport).get_json("https://example.com/api")
        assert transport.call_count == 1

    def test_retries_transient_errors(self) -> None:
        """429 and 5xx responses are retried until success."""
        transport = FakeTransport(
            [httpx.Response(503), httpx.Response(429), httpx.Response(200, json={"tag": "v1"})]
        )
        assert _client(transport).get_json("https://example.com/api") == {"tag": "v1"}
        assert transport.call_count == 3

    def test_gives_up_after_max_retries(self) -> None:
        transport = FakeTransport([httpx.Response(500) for _ in range(5)])
        with pytest.raises(DownloadFailure, match="after 3 attempts"):
            _client(transport, max_retries=2).get_json("https://example.com/api")
        assert transport.call_count == 3

    def test_network_error(self) -> None:
        class FailingTransport(httpx.BaseTransport):
            def handle_request(self, request: httpx.Request) -> httpx.Response:
                raise httpx.ConnectError("connection refused")

        client = ArchiveHttpClient(min_request_interval=0.0, transport=FailingTransport())
        with pytest.raises(DownloadFailure, match="Request failed"):
            client.get_json("https://example.com/api")

    def test_rate_limiting_delays_requests(self) -> None:
        """Back-to-back requests respect the minimum interval."""
        client = _client(FakeTransport(), min_request_interval=0.05)
        start = time.monotonic()
        client.get_json("https://example.com/a")
        client.get_json("https://example.com/b")
        assert time.monotonic() - start >= 0.045


class TestDownload:
    """Tests for ArchiveHttpClient.download()."""

    def test_writes_file_and_reports_progress(self, tmp_path: Path) -> None:
        body = b"x" * 200_000
        transport = FakeTransport([httpx.Response(200, content=body)])
        dest = tmp_path / "cache" / "data.zip"
        progress: list[tuple[int, int]] = []

        result = _client(transport).download(
            "https://example.com/data.zip", dest, lambda c, t: progress.append((c, t))
        )

        assert result == dest
        assert dest.read_bytes() == body
        assert progress[-1] == (len(body), len(body))
        assert [c for c, _ in progress] == sorted(c for c, _ in progress)
        assert not (tmp_path / "cache" / "data.zip.part").exists()

    def test_http_error_leaves_no_file(self, tmp_path: Path) -> None:
        transport = FakeTransport([httpx.Response(404)])
        dest = tmp_path / "data.zip"
        with pytest.raises(DownloadFailure, match="HTTP 404"):
            _client(transport).download("https://example.com/data.zip", dest)
        assert not dest.exists()

    def test_retries_download(self, tmp_path: Path) -> None:
        transport = FakeTransport([httpx.Response(502), httpx.Response(200, content=b"zip")])
        dest = tmp_path / "data.zip"
        _client(transport).download("https://example.com/data.zip", dest)
        assert dest.read_bytes() == b"zip"
        assert transport.call_count == 2

    def test_keeps_existing_file_on_failure(self, tmp_path: Path) -> None:
        """A failed download never replaces a previously downloaded archive."""
        dest = tmp_path / "data.zip"
        dest.write_bytes(b"old archive")
        transport = FakeTransport([httpx.Response(500) for _ in range(4)])
        with pytest.raises(DownloadFailure):
            _client(transport).download("https://example.com/data.zip", dest)
        assert dest.read_bytes() == b"old archive"

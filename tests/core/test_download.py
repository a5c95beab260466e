"""
Unit tests for download module.

Tests download functionality with mocked network requests.
"""

import hashlib

import pytest
import responses

from provisionkit.core.download import (
    DownloadProgress,
    RequestsFetcher,
    download_file,
    fetch_bytes,
)
from provisionkit.core.exceptions import ChecksumError, DownloadError

URL = "https://go.dev/dl/go1.22.3.linux-amd64.tar.gz"


class TestFetchBytes:
    """Test in-memory fetches."""

    @responses.activate
    def test_fetch_returns_body(self):
        """Test successful fetch returns the response body."""
        responses.add(responses.GET, "https://go.dev/VERSION?m=text", body=b"go1.22.3\n")

        assert fetch_bytes("https://go.dev/VERSION?m=text") == b"go1.22.3\n"

    @responses.activate
    def test_fetch_http_error(self):
        """Test HTTP error status raises DownloadError."""
        responses.add(responses.GET, "https://go.dev/VERSION?m=text", status=503)

        with pytest.raises(DownloadError, match="Failed to fetch"):
            fetch_bytes("https://go.dev/VERSION?m=text")


class TestDownloadFile:
    """Test streaming downloads."""

    @responses.activate
    def test_download_writes_file(self, tmp_path):
        """Test download writes the body to the destination."""
        content = b"archive bytes" * 100
        responses.add(responses.GET, URL, body=content)

        dest = tmp_path / "sub" / "go.tar.gz"
        result = download_file(URL, dest)

        assert result == dest
        assert dest.read_bytes() == content

    @responses.activate
    def test_download_with_matching_checksum(self, tmp_path):
        """Test download succeeds with a matching SHA-256."""
        content = b"test content"
        responses.add(responses.GET, URL, body=content)

        dest = tmp_path / "file.tar.gz"
        download_file(URL, dest, expected_sha256=hashlib.sha256(content).hexdigest())

        assert dest.exists()

    @responses.activate
    def test_download_checksum_mismatch_removes_file(self, tmp_path):
        """Test checksum mismatch raises and leaves no file behind."""
        responses.add(responses.GET, URL, body=b"test content")

        dest = tmp_path / "file.tar.gz"
        with pytest.raises(ChecksumError, match="Checksum mismatch"):
            download_file(URL, dest, expected_sha256="0" * 64)

        assert not dest.exists()

    @responses.activate
    def test_download_http_error_removes_partial_file(self, tmp_path):
        """Test HTTP failure raises DownloadError without leaving a file."""
        responses.add(responses.GET, URL, status=404)

        dest = tmp_path / "file.tar.gz"
        with pytest.raises(DownloadError):
            download_file(URL, dest)

        assert not dest.exists()

    @responses.activate
    def test_download_is_not_retried(self, tmp_path):
        """Test a failed transfer makes exactly one request."""
        responses.add(responses.GET, URL, status=500)

        with pytest.raises(DownloadError):
            download_file(URL, tmp_path / "file.tar.gz")

        assert len(responses.calls) == 1

    @responses.activate
    def test_progress_callback_reports_completion(self, tmp_path):
        """Test progress callback receives the final byte count."""
        content = b"x" * 20000
        responses.add(
            responses.GET,
            URL,
            body=content,
            headers={"content-length": str(len(content))},
        )
        updates = []

        download_file(URL, tmp_path / "f.tar.gz", progress_callback=updates.append)

        assert updates
        assert updates[-1].bytes_downloaded == len(content)
        assert updates[-1].percentage == pytest.approx(100.0)


class TestRequestsFetcher:
    """Test the HttpFetcher implementation."""

    @responses.activate
    def test_fetch_and_download(self, tmp_path):
        """Test both fetch and download go through requests."""
        responses.add(responses.GET, "https://example.com/v", body=b"1.0")
        responses.add(responses.GET, URL, body=b"data")
        fetcher = RequestsFetcher(timeout=5)

        assert fetcher.fetch("https://example.com/v") == b"1.0"
        assert fetcher.download(URL, tmp_path / "a.tar.gz").read_bytes() == b"data"


class TestDownloadProgress:
    """Test progress snapshots."""

    def test_str_with_total(self):
        progress = DownloadProgress(52428800, 104857600, 50.0)

        assert str(progress) == "50.0/100.0 MiB (50%) at 1.0 MiB/s"
        assert not progress.done

    def test_str_without_total(self):
        progress = DownloadProgress(2 * 1024 * 1024, 0, 2.0)

        assert progress.percentage is None
        assert str(progress) == "2.0 MiB at 1.0 MiB/s"

    def test_done(self):
        assert DownloadProgress(10, 10, 0.0).done
        assert DownloadProgress(10, 10, 0.0).speed_bps == 0.0

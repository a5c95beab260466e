"""
HTTP downloads for artifact acquisition.

Two shapes of request are needed: small in-memory fetches (the "latest
version" query) and streamed archive downloads to disk, hashed on the fly
when a SHA-256 is expected. Failures are never retried here; the provisioner
reports the first failure.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import RequestException

from provisionkit.core.exceptions import ChecksumError, DownloadError
from provisionkit.core.interfaces import HttpFetcher

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
CHUNK_SIZE = 64 * 1024
PROGRESS_INTERVAL = 0.5  # seconds between progress reports

MIB = 1024 * 1024


@dataclass
class DownloadProgress:
    """
    Snapshot of a running download.

    Attributes:
        bytes_downloaded: Bytes written so far
        total_bytes: Content-Length, or 0 when the server did not send one
        elapsed: Seconds since the transfer started
    """

    bytes_downloaded: int
    total_bytes: int
    elapsed: float

    @property
    def done(self) -> bool:
        return self.total_bytes > 0 and self.bytes_downloaded >= self.total_bytes

    @property
    def percentage(self) -> Optional[float]:
        if self.total_bytes <= 0:
            return None
        return self.bytes_downloaded * 100.0 / self.total_bytes

    @property
    def speed_bps(self) -> float:
        return self.bytes_downloaded / self.elapsed if self.elapsed > 0 else 0.0

    def __str__(self) -> str:
        """
        Example:
            >>> str(DownloadProgress(52428800, 104857600, 50.0))
            '50.0/100.0 MiB (50%) at 1.0 MiB/s'
        """
        received = self.bytes_downloaded / MIB
        speed = self.speed_bps / MIB
        if self.percentage is None:
            return f"{received:.1f} MiB at {speed:.1f} MiB/s"
        return (
            f"{received:.1f}/{self.total_bytes / MIB:.1f} MiB "
            f"({self.percentage:.0f}%) at {speed:.1f} MiB/s"
        )


def fetch_bytes(url: str, timeout: int = DEFAULT_TIMEOUT) -> bytes:
    """
    Fetch a small resource into memory.

    Raises:
        DownloadError: If the request fails or returns an error status
    """
    logger.debug(f"Fetching {url}")
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except RequestException as e:
        raise DownloadError(f"Failed to fetch {url}: {e}") from e
    return response.content


def download_file(
    url: str,
    destination: Path,
    expected_sha256: Optional[str] = None,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> Path:
    """
    Stream url to destination.

    Whatever was written is deleted when the transfer or the checksum fails,
    so a failed download never leaves an archive behind.

    Args:
        url: URL to download from
        destination: File to create
        expected_sha256: Hex digest the content must match
        progress_callback: Called at most every PROGRESS_INTERVAL seconds,
            and once more when the transfer ends
        timeout: Connect/read timeout in seconds

    Returns:
        destination

    Raises:
        DownloadError: If the request or the write fails
        ChecksumError: If the content does not match expected_sha256
    """
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"Downloading {url}")

    try:
        digest = _stream_to_file(url, destination, progress_callback, timeout)
    except RequestException as e:
        destination.unlink(missing_ok=True)
        raise DownloadError(f"Download of {url} failed: {e}") from e
    except OSError as e:
        destination.unlink(missing_ok=True)
        raise DownloadError(f"Could not write {destination}: {e}") from e

    if expected_sha256 and digest != expected_sha256.lower():
        destination.unlink(missing_ok=True)
        raise ChecksumError(
            f"Checksum mismatch for {destination.name}: "
            f"expected {expected_sha256}, got {digest}"
        )

    logger.debug(f"Saved {destination} (sha256 {digest})")
    return destination


def _stream_to_file(
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]],
    timeout: int,
) -> str:
    """Write the response body to destination; returns its SHA-256."""
    hasher = hashlib.sha256()
    started = time.monotonic()
    last_report = started
    written = 0

    with requests.get(url, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        total = int(response.headers.get("content-length") or 0)

        with open(destination, "wb") as out:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                out.write(chunk)
                hasher.update(chunk)
                written += len(chunk)

                now = time.monotonic()
                if progress_callback and now - last_report >= PROGRESS_INTERVAL:
                    progress_callback(DownloadProgress(written, total, now - started))
                    last_report = now

    if progress_callback:
        progress_callback(
            DownloadProgress(written, total or written, time.monotonic() - started)
        )
    return hasher.hexdigest()


class RequestsFetcher(HttpFetcher):
    """HttpFetcher backed by requests."""

    def __init__(self, timeout: int = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def fetch(self, url: str) -> bytes:
        return fetch_bytes(url, timeout=self.timeout)

    def download(
        self,
        url: str,
        destination: Path,
        expected_sha256: Optional[str] = None,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ) -> Path:
        return download_file(
            url,
            destination,
            expected_sha256=expected_sha256,
            progress_callback=progress_callback,
            timeout=self.timeout,
        )

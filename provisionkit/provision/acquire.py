"""
Artifact acquisition and staging.

This module fetches artifacts and places them into their destination:

Toolchains:
1. Download the versioned archive into a scratch directory next to the
   destination (same filesystem, so the final move is a rename)
2. Check the expected file arrived (correct name, non-empty)
3. Extract into the scratch directory and normalize the archive root
4. Rename the root into the destination and drop the scratch directory,
   archive included

Repositories:
1. Clone the full repository into the destination
2. Fetch tag metadata and check out the resolved reference

A failure midway leaves the destination absent or clearly incomplete; there
is no transactional rollback.
"""

import dataclasses
import logging
import tempfile
from pathlib import Path
from typing import Callable, Optional

from provisionkit.config.settings import ToolchainDescriptor
from provisionkit.core.exceptions import AcquisitionError, DownloadError
from provisionkit.core.filesystem import safe_rmtree
from provisionkit.core.interfaces import ArchiveExtractor, HttpFetcher, VersionControl
from provisionkit.core.platform import PlatformInfo
from provisionkit.provision.models import StagedArtifact, VersionInfo

logger = logging.getLogger(__name__)


class ToolchainStager:
    """
    Downloads and extracts a toolchain distribution into its destination.

    Example:
        >>> stager = ToolchainStager(GO_DESCRIPTOR, RequestsFetcher(),
        ...                          TarfileExtractor(), detect_platform())
        >>> archive = stager.download(version, Path("/usr/local/go"))
        >>> staged = stager.extract(archive, Path("/usr/local/go"), version)
    """

    def __init__(
        self,
        descriptor: ToolchainDescriptor,
        fetcher: HttpFetcher,
        extractor: ArchiveExtractor,
        platform: PlatformInfo,
        progress_callback: Optional[Callable] = None,
    ):
        self.descriptor = descriptor
        self.fetcher = fetcher
        self.extractor = extractor
        self.platform = platform
        self.progress_callback = progress_callback
        self.work_dir: Optional[Path] = None

    def archive_name(self, version: VersionInfo) -> str:
        return self.descriptor.archive_name(
            version.version,
            self.platform.distribution_os(),
            self.platform.distribution_arch(),
            self.platform.archive_extension(),
        )

    def archive_url(self, version: VersionInfo) -> str:
        return self.descriptor.archive_url(self.archive_name(version))

    def download(
        self,
        version: VersionInfo,
        destination: Path,
        expected_sha256: Optional[str] = None,
    ) -> Path:
        """
        Download the archive for version.

        Args:
            version: Resolved toolchain version
            destination: Final install directory (its parent holds scratch files)
            expected_sha256: Optional archive checksum

        Returns:
            Path to the downloaded archive

        Raises:
            DownloadError: If the transfer fails or the file is not what was expected
        """
        archive = self.archive_name(version)
        url = self.descriptor.archive_url(archive)

        try:
            self.work_dir = Path(
                tempfile.mkdtemp(prefix=f".{destination.name}-", dir=destination.parent)
            )
        except OSError as e:
            raise DownloadError(
                f"Cannot create a scratch directory in {destination.parent}: {e}. "
                "Installing system-wide may require root privileges."
            ) from e

        archive_path = self.work_dir / archive
        logger.info(f"Downloading {self.descriptor.name} {version.version} from {url}")
        self.fetcher.download(
            url,
            archive_path,
            expected_sha256=expected_sha256,
            progress_callback=self.progress_callback,
        )

        self._check_archive(archive_path, archive)
        return archive_path

    def _check_archive(self, archive_path: Path, expected_name: str) -> None:
        if archive_path.name != expected_name:
            raise DownloadError(
                f"Unexpected archive name {archive_path.name}, expected {expected_name}"
            )
        if not archive_path.is_file():
            raise DownloadError(f"Download did not produce {archive_path}")
        if archive_path.stat().st_size == 0:
            raise DownloadError(f"Downloaded archive {archive_path.name} is empty")

    def extract(
        self, archive_path: Path, destination: Path, version: VersionInfo
    ) -> StagedArtifact:
        """
        Extract archive_path and move its root into destination.

        Raises:
            ArchiveExtractionError: If extraction fails
            AcquisitionError: If the destination appeared in the meantime
        """
        if self.work_dir is None:
            raise AcquisitionError("extract() called before download()")

        extract_dir = self.work_dir / "extract"
        logger.info(f"Extracting {archive_path.name}")
        self.extractor.extract(archive_path, extract_dir)

        root = self._normalize_root_directory(extract_dir)

        # Staging never merges into an existing directory
        if destination.exists():
            raise AcquisitionError(
                f"Destination {destination} appeared during extraction; refusing to merge"
            )

        try:
            root.rename(destination)
        except OSError as e:
            raise AcquisitionError(
                f"Failed to move toolchain into {destination}: {e}"
            ) from e

        self.cleanup()
        return StagedArtifact(path=destination, version=version)

    def _normalize_root_directory(self, extract_dir: Path) -> Path:
        """
        Return the actual toolchain root inside extract_dir.

        Some archives have a single root folder (go/), others extract directly.

        Raises:
            AcquisitionError: If the archive was empty
        """
        items = list(extract_dir.iterdir()) if extract_dir.exists() else []

        if not items:
            raise AcquisitionError("Archive extracted no files")

        if len(items) == 1 and items[0].is_dir():
            return items[0]

        return extract_dir

    def cleanup(self) -> None:
        """Remove the scratch directory, including the downloaded archive."""
        if self.work_dir is not None and self.work_dir.exists():
            safe_rmtree(self.work_dir)
            logger.debug(f"Removed scratch directory: {self.work_dir}")
        self.work_dir = None


class RepositoryStager:
    """Clones a source repository and checks out the resolved reference."""

    def __init__(self, vcs: VersionControl):
        self.vcs = vcs

    def clone(self, url: str, destination: Path) -> None:
        """
        Raises:
            CloneError: If the clone fails
        """
        logger.info(f"Cloning {url} into {destination}")
        self.vcs.clone(url, destination)

    def checkout(self, destination: Path, version: VersionInfo) -> StagedArtifact:
        """
        Fetch tags and check out version.resolved_reference.

        Returns:
            StagedArtifact whose version carries the checked-out commit

        Raises:
            CheckoutError: If fetching tags or checking out fails
        """
        self.vcs.fetch_tags(destination)
        self.vcs.checkout(destination, version.resolved_reference)
        commit = self.vcs.head_commit(destination)
        return StagedArtifact(
            path=destination, version=dataclasses.replace(version, commit=commit)
        )

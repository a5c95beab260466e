"""
Collaborator interfaces for ProvisionKit.

The provisioner never talks to the network, the archive codec, git, the
compiler or child processes directly. It goes through these narrow
interfaces so each capability can be swapped out (for tests, or for a
different transport) without the orchestration knowing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence


@dataclass
class ProcessResult:
    """Exit status and combined output of a child process."""

    exit_code: int
    output: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class HttpFetcher(ABC):
    """Fetch remote resources over HTTP(S)."""

    @abstractmethod
    def fetch(self, url: str) -> bytes:
        """
        Fetch a small resource fully into memory.

        Raises:
            DownloadError: If the request fails or returns an error status
        """
        pass

    @abstractmethod
    def download(
        self,
        url: str,
        destination: Path,
        expected_sha256: Optional[str] = None,
        progress_callback: Optional[Callable] = None,
    ) -> Path:
        """
        Stream a resource to a file.

        Raises:
            DownloadError: If the transfer fails
            ChecksumError: If expected_sha256 is given and does not match
        """
        pass


class ArchiveExtractor(ABC):
    """Unpack archives into a directory."""

    @abstractmethod
    def extract(self, archive_path: Path, target_dir: Path) -> None:
        """
        Extract archive_path into target_dir.

        Raises:
            ArchiveExtractionError: If extraction fails
        """
        pass


class VersionControl(ABC):
    """Version-control operations needed to stage a source repository."""

    @abstractmethod
    def list_remote_tags(self, url: str) -> List[str]:
        """Return tag names published by the remote repository."""
        pass

    @abstractmethod
    def list_remote_branches(self, url: str) -> List[str]:
        """Return branch names published by the remote repository."""
        pass

    @abstractmethod
    def default_branch(self, url: str) -> str:
        """Return the branch the remote HEAD points to."""
        pass

    @abstractmethod
    def clone(self, url: str, target_dir: Path) -> None:
        pass

    @abstractmethod
    def fetch_tags(self, repo_dir: Path) -> None:
        pass

    @abstractmethod
    def checkout(self, repo_dir: Path, ref: str) -> None:
        pass

    @abstractmethod
    def head_commit(self, repo_dir: Path) -> str:
        """Return the abbreviated commit hash of HEAD."""
        pass


class ProcessRunner(ABC):
    """Run executables and capture their status."""

    @abstractmethod
    def run(
        self,
        executable: str,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        timeout: Optional[int] = None,
    ) -> ProcessResult:
        """
        Run executable with args.

        Returns:
            ProcessResult. A process that cannot be launched is reported as
            exit code 127 rather than raised.
        """
        pass


class Compiler(ABC):
    """Build a staged source tree into a single executable."""

    @abstractmethod
    def version(self) -> Optional[str]:
        """Return the compiler version, or None if it is not installed."""
        pass

    @abstractmethod
    def tidy(self, source_dir: Path) -> None:
        """
        Resolve module dependencies for source_dir.

        Raises:
            BuildError: If dependency resolution fails
        """
        pass

    @abstractmethod
    def build(self, source_dir: Path, output_path: Path) -> None:
        """
        Compile source_dir into output_path.

        Raises:
            BuildError: If compilation fails
        """
        pass


__all__ = [
    "ProcessResult",
    "HttpFetcher",
    "ArchiveExtractor",
    "VersionControl",
    "ProcessRunner",
    "Compiler",
]

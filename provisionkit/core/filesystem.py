"""
File system utilities for ProvisionKit.

Covers what the provisioning steps touch on disk:
- Unpacking distribution archives, refusing members that escape the target
- Replacing small text files atomically (shell profiles)
- Removing staged or replaced installations
- Looking up required tools on PATH
"""

import logging
import os
import shutil
import sys
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Iterable, Optional, Union

from provisionkit.core.exceptions import (
    ArchiveExtractionError,
    InsecureArchiveError,
    ProvisionKitError,
    UnsupportedArchiveFormat,
)
from provisionkit.core.interfaces import ArchiveExtractor

logger = logging.getLogger(__name__)

# Archive suffix -> tarfile mode ("zip" for zip archives)
ARCHIVE_MODES = {
    ".zip": "zip",
    ".tar.gz": "r:gz",
    ".tgz": "r:gz",
    ".tar.xz": "r:xz",
    ".tar.bz2": "r:bz2",
    ".tbz2": "r:bz2",
}


class FilesystemError(ProvisionKitError):
    """Base exception for filesystem operations."""

    pass


def is_relative_to(path: Path, parent: Path) -> bool:
    """True if path is parent or lies below it."""
    try:
        path.relative_to(parent)
    except ValueError:
        return False
    return True


def find_executable(name: str) -> Optional[Path]:
    """
    Locate a required tool on PATH.

    Example:
        >>> find_executable('git')
        PosixPath('/usr/bin/git')
    """
    found = shutil.which(name)
    return Path(found) if found else None


# ============================================================================
# Archive Extraction
# ============================================================================


def _archive_mode(archive_path: Path) -> str:
    name = archive_path.name.lower()
    for suffix, mode in ARCHIVE_MODES.items():
        if name.endswith(suffix):
            return mode
    raise UnsupportedArchiveFormat(
        f"Unsupported archive format: {archive_path.name}. "
        f"Supported: {', '.join(ARCHIVE_MODES)}"
    )


def _check_members(names: Iterable[str], destination: Path) -> None:
    """
    Raises:
        InsecureArchiveError: If any member would land outside destination
    """
    root = destination.resolve()
    for name in names:
        if not is_relative_to((root / name).resolve(), root):
            raise InsecureArchiveError(
                f"Archive member '{name}' points outside {destination}; "
                "refusing to extract"
            )


def extract_archive(archive_path: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Unpack archive_path into destination.

    The format comes from the file name. Every member path is checked before
    anything is written, so a rejected archive leaves destination untouched.

    Raises:
        UnsupportedArchiveFormat: If the suffix is not a known archive type
        InsecureArchiveError: If a member escapes destination
        ArchiveExtractionError: If the archive is missing or corrupt
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.is_file():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    mode = _archive_mode(archive_path)
    destination.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Extracting {archive_path.name} into {destination}")

    try:
        if mode == "zip":
            with zipfile.ZipFile(archive_path) as archive:
                _check_members(archive.namelist(), destination)
                archive.extractall(destination)
        else:
            with tarfile.open(archive_path, mode) as archive:
                _check_members(archive.getnames(), destination)
                if sys.version_info >= (3, 12):
                    archive.extractall(destination, filter="data")
                else:
                    archive.extractall(destination)
    except InsecureArchiveError:
        raise
    except (OSError, tarfile.TarError, zipfile.BadZipFile) as e:
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e


class TarfileExtractor(ArchiveExtractor):
    """ArchiveExtractor backed by tarfile/zipfile."""

    def extract(self, archive_path: Path, target_dir: Path) -> None:
        extract_archive(archive_path, target_dir)


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(file_path: Union[str, Path], text: str) -> None:
    """
    Replace file_path with text in a single rename.

    Readers see either the old or the new content, never a partial file. The
    replaced file's permission bits are kept.
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=file_path.parent,
        prefix=f".{file_path.name}.",
        delete=False,
    ) as handle:
        handle.write(text)
        staged = Path(handle.name)

    try:
        mode = file_path.stat().st_mode if file_path.exists() else 0o644
        os.chmod(staged, mode & 0o7777)
        os.replace(staged, file_path)
    except OSError:
        staged.unlink(missing_ok=True)
        raise


def safe_rmtree(path: Union[str, Path]) -> None:
    """
    Remove a directory tree. A missing path is not an error.

    Raises:
        ValueError: If path is a filesystem root
        FilesystemError: If path is not a directory or removal fails
    """
    path = Path(path).resolve()
    if path == Path(path.anchor):
        raise ValueError(f"Refusing to delete filesystem root '{path}'")
    if not path.exists():
        return
    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    logger.debug(f"Removing {path}")
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


def remove_path(path: Union[str, Path]) -> None:
    """
    Remove a file, symlink or directory tree.

    Raises:
        FilesystemError: If removal fails
    """
    path = Path(path)
    if path.is_symlink() or path.is_file():
        try:
            path.unlink()
        except OSError as e:
            raise FilesystemError(f"Failed to remove '{path}': {e}") from e
        return

    safe_rmtree(path)


__all__ = [
    "FilesystemError",
    "is_relative_to",
    "find_executable",
    "extract_archive",
    "TarfileExtractor",
    "atomic_write",
    "safe_rmtree",
    "remove_path",
]

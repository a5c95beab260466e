"""
Core functionality for ProvisionKit.

This package contains the foundational modules that the provisioning flows
depend on: the error hierarchy, collaborator interfaces and their default
implementations, filesystem helpers, locking and search-path configuration.
"""

from .exceptions import (
    ProvisionKitError,
    DependencyMissingError,
    UsageError,
    ConfigurationError,
    VersionResolutionError,
    DestinationExistsError,
    AcquisitionError,
    DownloadError,
    ChecksumError,
    ArchiveExtractionError,
    UnsupportedArchiveFormat,
    InsecureArchiveError,
    CloneError,
    CheckoutError,
    BuildError,
    VerificationError,
    VerificationWarning,
    ProvisionLockError,
    ProvisionCancelled,
    UnsupportedPlatformError,
)

from .interfaces import (
    ProcessResult,
    HttpFetcher,
    ArchiveExtractor,
    VersionControl,
    ProcessRunner,
    Compiler,
)

from .platform import PlatformInfo, detect_platform

from .locking import LockManager

__all__ = [
    # Exceptions
    "ProvisionKitError",
    "DependencyMissingError",
    "UsageError",
    "ConfigurationError",
    "VersionResolutionError",
    "DestinationExistsError",
    "AcquisitionError",
    "DownloadError",
    "ChecksumError",
    "ArchiveExtractionError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "CloneError",
    "CheckoutError",
    "BuildError",
    "VerificationError",
    "VerificationWarning",
    "ProvisionLockError",
    "ProvisionCancelled",
    "UnsupportedPlatformError",
    # Interfaces
    "ProcessResult",
    "HttpFetcher",
    "ArchiveExtractor",
    "VersionControl",
    "ProcessRunner",
    "Compiler",
    # Platform
    "PlatformInfo",
    "detect_platform",
    # Locking
    "LockManager",
]

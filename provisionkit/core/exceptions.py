"""
Centralized exception hierarchy for ProvisionKit.

Every fatal condition raised while provisioning derives from ProvisionKitError
so the provisioner can turn it into a failed outcome at the step it occurred.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class ProvisionKitError(Exception):
    """Base exception for all ProvisionKit errors."""

    pass


# ============================================================================
# Environment and Input Exceptions
# ============================================================================


class DependencyMissingError(ProvisionKitError):
    """Raised when a required external tool is absent or unusable."""

    def __init__(self, tool: str, detail: str = ""):
        self.tool = tool
        msg = f"{tool} is required but not installed. Please install it first."
        if detail:
            msg = f"{tool}: {detail}"
        super().__init__(msg)


class UsageError(ProvisionKitError):
    """Raised for invalid command-line input."""

    pass


class ConfigurationError(ProvisionKitError):
    """Raised when the configuration file is malformed."""

    pass


# ============================================================================
# Provisioning Step Exceptions
# ============================================================================


class VersionResolutionError(ProvisionKitError):
    """Raised when the remote is unreachable or returns no parseable version."""

    pass


class DestinationExistsError(ProvisionKitError):
    """
    Raised when the destination exists and force reinstall was not requested.

    This is an expected refusal: rerunning with --force recovers from it.
    """

    def __init__(self, destination):
        self.destination = destination
        super().__init__(
            f"Directory {destination} already exists. "
            "Use -f to force reinstall or choose a different directory with -d"
        )


class AcquisitionError(ProvisionKitError):
    """Base exception for download, extraction, clone and checkout failures."""

    pass


class DownloadError(AcquisitionError):
    """Raised when an artifact download fails or yields an unexpected file."""

    pass


class ChecksumError(DownloadError):
    """Raised when a downloaded archive does not match its expected checksum."""

    pass


class ArchiveExtractionError(AcquisitionError):
    """Raised when an archive cannot be extracted."""

    pass


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


class CloneError(AcquisitionError):
    """Raised when cloning the source repository fails."""

    pass


class CheckoutError(AcquisitionError):
    """Raised when fetching tags or checking out a reference fails."""

    pass


class BuildError(ProvisionKitError):
    """Raised when dependency resolution or compilation fails."""

    pass


class VerificationError(ProvisionKitError):
    """Raised when the installed tool cannot report its own version."""

    pass


class VerificationWarning(ProvisionKitError):
    """
    Smoke test failure.

    Never fatal: the provisioner records it in the log and keeps going.
    """

    pass


# ============================================================================
# Run Control Exceptions
# ============================================================================


class UnsupportedPlatformError(ProvisionKitError):
    """Raised when the host OS has no known toolchain distribution."""

    pass


class ProvisionLockError(ProvisionKitError):
    """Raised when another provisioning run holds the destination lock."""

    pass


class ProvisionCancelled(ProvisionKitError):
    """Raised between steps after cancellation was requested."""

    pass


__all__ = [
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
]

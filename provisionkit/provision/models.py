"""
Data model for a provisioning run.

An InstallRequest is built once from the invocation arguments. Each run
produces exactly one VersionInfo (when resolution succeeds) and exactly one
InstallOutcome.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

from provisionkit.provision.steplog import LogEntry


class ArtifactKind(Enum):
    """What is being provisioned."""

    TOOLCHAIN = "toolchain"  # pre-built distribution archive
    REPOSITORY = "repository"  # source repository clone


class VersionSource(Enum):
    """How the provisioned version was chosen."""

    LATEST = "latest"  # remote "latest" query / newest release tag
    EXPLICIT = "explicit"  # version or tag named by the caller
    BRANCH = "branch"  # development branch


class VersionChoice(Enum):
    """Caller policy when a repository has both releases and a default branch."""

    RELEASE = "release"
    DEVELOPMENT = "development"


class OutcomeStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"


class RunState(Enum):
    """States of the linear provisioning state machines."""

    START = "start"
    VERSION_RESOLVED = "version_resolved"
    DESTINATION_CHECKED = "destination_checked"
    # Repository flow
    CLONED = "cloned"
    REFERENCE_CHECKED_OUT = "reference_checked_out"
    BUILT = "built"
    # Toolchain flow
    DOWNLOADED = "downloaded"
    EXTRACTED = "extracted"
    PATH_CONFIGURED = "path_configured"
    VERIFIED = "verified"
    REPORTED = "reported"


@dataclass(frozen=True)
class InstallRequest:
    """
    What to provision and where.

    Attributes:
        kind: Toolchain distribution or source repository
        target: Toolchain name or repository URL
        destination: Directory the artifact is staged into
        version: Explicit version/ref, or None for latest
        force_reinstall: Remove an existing destination before staging
        build_after_fetch: Compile the staged source into an executable
        version_choice: Release/development policy for repositories
        expected_sha256: Optional checksum for toolchain archives
        binary_name: Output executable name for builds
    """

    kind: ArtifactKind
    target: str
    destination: Path
    version: Optional[str] = None
    force_reinstall: bool = False
    build_after_fetch: bool = False
    version_choice: VersionChoice = VersionChoice.RELEASE
    expected_sha256: Optional[str] = None
    binary_name: Optional[str] = None

    def __post_init__(self):
        if not self.target:
            raise ValueError("target cannot be empty")
        if not str(self.destination):
            raise ValueError("destination cannot be empty")
        if self.build_after_fetch and self.kind is not ArtifactKind.REPOSITORY:
            raise ValueError("build_after_fetch only applies to repositories")

    @property
    def wants_latest(self) -> bool:
        return not self.version or self.version == "latest"


@dataclass(frozen=True)
class VersionInfo:
    """
    The version a run provisions.

    Attributes:
        version: Resolved version string (e.g. '1.22.3', 'v1.3.0', 'main')
        source: How the version was chosen
        resolved_reference: Reference actually fetched or checked out
        commit: Abbreviated commit hash, once the reference is checked out
    """

    version: str
    source: VersionSource
    resolved_reference: str
    commit: Optional[str] = None

    def __post_init__(self):
        if not self.version:
            raise ValueError("version cannot be empty")
        if not self.resolved_reference:
            raise ValueError("resolved_reference cannot be empty")

    def describe(self) -> str:
        """
        Human-readable version, e.g. 'v1.3.0 (1a2b3c4)'.
        """
        if self.commit:
            return f"{self.resolved_reference} ({self.commit})"
        return self.resolved_reference


@dataclass
class StagedArtifact:
    """An artifact placed into its destination."""

    path: Path
    version: VersionInfo


@dataclass
class BuiltArtifact:
    """Result of a build step."""

    executable: Path
    smoke_test_passed: bool
    smoke_test_output: str = ""


@dataclass(frozen=True)
class InstallOutcome:
    """
    Terminal result of a run.

    Attributes:
        status: SUCCESS or FAILED
        request: The request that was executed
        final_state: Last state reached by the state machine
        version: Resolved version (None if resolution failed)
        artifact_path: Built executable, if a build was requested and succeeded
        error: Failure message (None on success)
        error_type: Name of the exception class that failed the run
        log: Timestamped step entries, frozen at finalization
    """

    status: OutcomeStatus
    request: InstallRequest
    final_state: RunState
    version: Optional[VersionInfo] = None
    artifact_path: Optional[Path] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    log: Tuple[LogEntry, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.status is OutcomeStatus.SUCCESS and self.error is not None:
            raise ValueError("status=SUCCESS but error is set")
        if self.status is OutcomeStatus.FAILED and self.error is None:
            raise ValueError("status=FAILED requires error message")

    @property
    def success(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @property
    def warnings(self) -> Tuple[LogEntry, ...]:
        return tuple(e for e in self.log if e.status == "warn")

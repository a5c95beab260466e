"""
Provisioning flows.

A flow is the ordered list of steps for one artifact kind:

    Toolchain:   version_resolved -> destination_checked -> downloaded ->
                 extracted -> path_configured -> verified
    Repository:  version_resolved -> destination_checked -> cloned ->
                 reference_checked_out -> [built]

Each step either returns a completion message or raises a ProvisionKitError.
The Provisioner runs the steps in order and halts on the first error.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from provisionkit.config.settings import (
    EnvironmentSettings,
    RepositorySettings,
    ToolchainDescriptor,
)
from provisionkit.core.environment import EnvironmentConfigError, configure_environment
from provisionkit.core.exceptions import (
    DependencyMissingError,
    DestinationExistsError,
    VerificationWarning,
)
from provisionkit.core.filesystem import FilesystemError, find_executable, remove_path
from provisionkit.core.interfaces import (
    ArchiveExtractor,
    HttpFetcher,
    ProcessRunner,
    VersionControl,
)
from provisionkit.core.platform import PlatformInfo
from provisionkit.provision.acquire import RepositoryStager, ToolchainStager
from provisionkit.provision.builder import Builder
from provisionkit.provision.models import (
    ArtifactKind,
    BuiltArtifact,
    InstallRequest,
    RunState,
    StagedArtifact,
    VersionInfo,
)
from provisionkit.provision.steplog import StepLog
from provisionkit.provision.verifier import verify_toolchain
from provisionkit.provision.versions import (
    resolve_repository_version,
    resolve_toolchain_version,
)

logger = logging.getLogger(__name__)


def repository_name(url: str) -> str:
    """
    Derive a repository's short name from its URL.

    Example:
        >>> repository_name("https://github.com/example/app.git")
        'app'
    """
    name = url.rstrip("/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name


@dataclass
class RunContext:
    """Mutable state shared by the steps of one run."""

    request: InstallRequest
    log: StepLog
    version: Optional[VersionInfo] = None
    archive_path: Optional[Path] = None
    staged: Optional[StagedArtifact] = None
    built: Optional[BuiltArtifact] = None
    verified_output: Optional[str] = None


@dataclass(frozen=True)
class Step:
    """A transition to state, performed by action."""

    state: RunState
    description: str
    action: Callable[[RunContext], str]


def check_destination(destination: Path, force: bool, log: StepLog) -> str:
    """
    Make sure destination is absent before staging.

    Args:
        destination: Install directory
        force: Remove an existing destination instead of refusing
        log: Step log for the removal notice

    Returns:
        Completion message

    Raises:
        DestinationExistsError: If destination exists and force is False
        FilesystemError: If the existing destination cannot be removed
    """
    destination = Path(destination)
    exists = destination.exists() or destination.is_symlink()

    if exists and not force:
        raise DestinationExistsError(destination)

    if exists:
        log.info(f"Removing existing installation at {destination}")
        remove_path(destination)

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(
            f"Cannot create parent directory {destination.parent}: {e}"
        ) from e

    if exists:
        return f"Removed previous installation at {destination}"
    return f"Destination {destination} is free"


class ProvisionFlow(ABC):
    """Steps for one artifact kind."""

    kind: ArtifactKind

    def preflight(self, context: RunContext) -> None:
        """
        Check external dependencies before any step runs.

        Raises:
            DependencyMissingError: If a required tool is unavailable
        """
        pass

    @abstractmethod
    def steps(self, context: RunContext) -> List[Step]:
        pass

    def cleanup(self, context: RunContext) -> None:
        """Release scratch resources once the run is over."""
        pass

    def _check_destination(self, context: RunContext) -> str:
        request = context.request
        return check_destination(
            request.destination, request.force_reinstall, context.log
        )


class ToolchainFlow(ProvisionFlow):
    """Download, stage, configure and verify a toolchain distribution."""

    kind = ArtifactKind.TOOLCHAIN

    def __init__(
        self,
        descriptor: ToolchainDescriptor,
        fetcher: HttpFetcher,
        extractor: ArchiveExtractor,
        runner: ProcessRunner,
        platform: PlatformInfo,
        environment: Optional[EnvironmentSettings] = None,
        progress_callback: Optional[Callable] = None,
    ):
        self.descriptor = descriptor
        self.fetcher = fetcher
        self.runner = runner
        self.environment = environment or EnvironmentSettings()
        self.stager = ToolchainStager(
            descriptor, fetcher, extractor, platform, progress_callback
        )

    def steps(self, context: RunContext) -> List[Step]:
        name = self.descriptor.name
        return [
            Step(RunState.VERSION_RESOLVED, f"Resolving {name} version", self._resolve),
            Step(
                RunState.DESTINATION_CHECKED,
                f"Checking destination {context.request.destination}",
                self._check_destination,
            ),
            Step(RunState.DOWNLOADED, f"Downloading {name}", self._download),
            Step(RunState.EXTRACTED, "Extracting archive", self._extract),
            Step(RunState.PATH_CONFIGURED, "Configuring PATH", self._configure_path),
            Step(RunState.VERIFIED, "Verifying installation", self._verify),
        ]

    def _resolve(self, context: RunContext) -> str:
        context.version = resolve_toolchain_version(
            context.request, self.descriptor, self.fetcher
        )
        return (
            f"Resolved {self.descriptor.name} {context.version.version} "
            f"({context.version.source.value})"
        )

    def _download(self, context: RunContext) -> str:
        context.archive_path = self.stager.download(
            context.version,
            context.request.destination,
            expected_sha256=context.request.expected_sha256,
        )
        return f"Downloaded {context.archive_path.name}"

    def _extract(self, context: RunContext) -> str:
        context.staged = self.stager.extract(
            context.archive_path, context.request.destination, context.version
        )
        return f"Installed into {context.staged.path}"

    def _configure_path(self, context: RunContext) -> str:
        bin_dir = Path(context.request.destination) / self.descriptor.bin_dir
        try:
            result = configure_environment(
                bin_dir,
                self.descriptor.name,
                system_profile_dir=Path(self.environment.system_profile_dir),
                user_profile=Path(self.environment.user_profile),
            )
        except EnvironmentConfigError as e:
            context.log.warn(f"{e}. Add {bin_dir} to PATH manually.")
            return "PATH not configured"

        if result.added:
            return f"Added {bin_dir} to PATH in {result.config_file}"
        return f"{bin_dir} already on PATH in {result.config_file}"

    def _verify(self, context: RunContext) -> str:
        context.verified_output = verify_toolchain(
            context.request.destination, self.descriptor, self.runner
        )
        return f"Verified: {context.verified_output}"

    def cleanup(self, context: RunContext) -> None:
        self.stager.cleanup()


class RepositoryFlow(ProvisionFlow):
    """Clone a repository, check out a reference and optionally build it."""

    kind = ArtifactKind.REPOSITORY

    def __init__(
        self,
        vcs_provider: Callable[[], VersionControl],
        builder: Builder,
        settings: Optional[RepositorySettings] = None,
        confirm: Optional[Callable[[str], bool]] = None,
        find_tool: Callable[[str], Optional[Path]] = find_executable,
    ):
        self.vcs_provider = vcs_provider
        self.find_tool = find_tool
        self.builder = builder
        self.settings = settings or RepositorySettings()
        self.confirm = confirm or (lambda message: False)
        self._stager: Optional[RepositoryStager] = None

    @property
    def stager(self) -> RepositoryStager:
        if self._stager is None:
            self._stager = RepositoryStager(self.vcs_provider())
        return self._stager

    def binary_name(self, request: InstallRequest) -> str:
        return (
            request.binary_name
            or self.settings.binary_name
            or repository_name(request.target)
        )

    def preflight(self, context: RunContext) -> None:
        if self.find_tool("git") is None:
            raise DependencyMissingError("git")

        if context.request.build_after_fetch:
            compiler = self.settings.compiler
            version = self.builder.check_compiler(
                compiler, self.settings.min_compiler_version, self.confirm
            )
            context.log.info(f"Using {compiler} {version}")

    def steps(self, context: RunContext) -> List[Step]:
        request = context.request
        steps = [
            Step(
                RunState.VERSION_RESOLVED,
                f"Resolving version for {request.target}",
                self._resolve,
            ),
            Step(
                RunState.DESTINATION_CHECKED,
                f"Checking destination {request.destination}",
                self._check_destination,
            ),
            Step(RunState.CLONED, f"Cloning {request.target}", self._clone),
            Step(
                RunState.REFERENCE_CHECKED_OUT, "Checking out reference", self._checkout
            ),
        ]
        if request.build_after_fetch:
            steps.append(
                Step(RunState.BUILT, f"Building {self.binary_name(request)}", self._build)
            )
        return steps

    def _resolve(self, context: RunContext) -> str:
        context.version = resolve_repository_version(
            context.request, self.stager.vcs
        )
        return (
            f"Resolved {context.version.resolved_reference} "
            f"({context.version.source.value})"
        )

    def _clone(self, context: RunContext) -> str:
        self.stager.clone(context.request.target, context.request.destination)
        return f"Cloned into {context.request.destination}"

    def _checkout(self, context: RunContext) -> str:
        context.staged = self.stager.checkout(
            context.request.destination, context.version
        )
        context.version = context.staged.version
        return f"Checked out {context.version.describe()}"

    def _build(self, context: RunContext) -> str:
        artifact = self.builder.build(
            Path(context.request.destination), self.binary_name(context.request)
        )
        context.built = artifact

        try:
            self.builder.smoke_test(artifact)
        except VerificationWarning as e:
            context.log.warn(str(e))

        return f"Built {artifact.executable}"

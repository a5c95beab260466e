"""
The Provisioner.

Runs one InstallRequest through the flow for its artifact kind and turns the
result into an InstallOutcome. Fatal errors never escape run(): the first
ProvisionKitError halts the flow and becomes a failed outcome whose log
records where it stopped.

Example:
    >>> provisioner = Provisioner()
    >>> outcome = provisioner.run(InstallRequest(
    ...     kind=ArtifactKind.TOOLCHAIN, target="go",
    ...     destination=Path("/usr/local/go")))
    >>> outcome.success
    True
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from provisionkit.config.settings import Settings
from provisionkit.core.directory import default_log_file
from provisionkit.core.download import RequestsFetcher
from provisionkit.core.exceptions import (
    DependencyMissingError,
    ProvisionCancelled,
    ProvisionKitError,
)
from provisionkit.core.filesystem import TarfileExtractor
from provisionkit.core.interfaces import (
    ArchiveExtractor,
    Compiler,
    HttpFetcher,
    ProcessRunner,
    VersionControl,
)
from provisionkit.core.locking import LockManager
from provisionkit.core.platform import PlatformInfo, detect_platform
from provisionkit.core.process import SubprocessRunner
from provisionkit.provision.builder import Builder, GoCompiler
from provisionkit.provision.flows import (
    ProvisionFlow,
    RepositoryFlow,
    RunContext,
    ToolchainFlow,
)
from provisionkit.provision.models import (
    ArtifactKind,
    InstallOutcome,
    InstallRequest,
    OutcomeStatus,
    RunState,
)
from provisionkit.provision.steplog import StepLog

logger = logging.getLogger(__name__)


class Provisioner:
    """
    Orchestrates version discovery, staging, the optional build and
    verification for a single request at a time.

    Every collaborator can be injected; the defaults talk to the real network,
    filesystem, git and compiler.

    Attributes:
        settings: Loaded configuration
        confirm: Decision callback for non-fatal prompts (default: "no")
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        fetcher: Optional[HttpFetcher] = None,
        extractor: Optional[ArchiveExtractor] = None,
        vcs: Optional[VersionControl] = None,
        runner: Optional[ProcessRunner] = None,
        compiler: Optional[Compiler] = None,
        lock_manager: Optional[LockManager] = None,
        confirm: Optional[Callable[[str], bool]] = None,
        platform: Optional[PlatformInfo] = None,
        log_file: Optional[Path] = None,
        progress_callback: Optional[Callable] = None,
        find_tool: Optional[Callable[[str], Optional[Path]]] = None,
    ):
        self.settings = settings or Settings()
        self.fetcher = fetcher or RequestsFetcher()
        self.extractor = extractor or TarfileExtractor()
        self.runner = runner or SubprocessRunner()
        self.compiler = compiler or GoCompiler(
            self.runner,
            executable=self.settings.repository.compiler,
            build_flags=self.settings.repository.build_flags,
        )
        self.confirm = confirm or (lambda message: False)
        self.log_file = Path(log_file) if log_file else None
        self.progress_callback = progress_callback
        self.find_tool = find_tool
        self._vcs = vcs
        self._lock_manager = lock_manager
        self._platform = platform
        self._cancel_requested = False

    @property
    def vcs(self) -> VersionControl:
        """
        Version control client, created on first use.

        Raises:
            DependencyMissingError: If GitPython cannot find a git executable
        """
        if self._vcs is None:
            try:
                from provisionkit.provision.vcs import GitVersionControl
            except ImportError as e:
                raise DependencyMissingError("git", str(e)) from e
            self._vcs = GitVersionControl()
        return self._vcs

    @property
    def lock_manager(self) -> LockManager:
        if self._lock_manager is None:
            self._lock_manager = LockManager()
        return self._lock_manager

    @property
    def platform(self) -> PlatformInfo:
        if self._platform is None:
            self._platform = detect_platform()
        return self._platform

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """
        Request cancellation. Takes effect before the next step starts;
        the step in progress always runs to completion.
        """
        self._cancel_requested = True

    @property
    def cancelled(self) -> bool:
        return self._cancel_requested

    def _check_cancelled(self, state: RunState) -> None:
        if self._cancel_requested:
            raise ProvisionCancelled(f"Cancelled after reaching '{state.value}'")

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    def flow_for(self, request: InstallRequest) -> ProvisionFlow:
        """
        Build the flow for request's artifact kind.

        Raises:
            ConfigurationError: If the toolchain has no descriptor
        """
        if request.kind is ArtifactKind.TOOLCHAIN:
            return ToolchainFlow(
                descriptor=self.settings.toolchain(request.target),
                fetcher=self.fetcher,
                extractor=self.extractor,
                runner=self.runner,
                platform=self.platform,
                environment=self.settings.environment,
                progress_callback=self.progress_callback,
            )

        repository = self.settings.repository
        builder = Builder(self.compiler, self.runner, repository.smoke_test_args)
        kwargs = {"find_tool": self.find_tool} if self.find_tool else {}
        return RepositoryFlow(
            vcs_provider=lambda: self.vcs,
            builder=builder,
            settings=repository,
            confirm=self.confirm,
            **kwargs,
        )

    def log_file_for(self, request: InstallRequest) -> Path:
        if self.log_file:
            return self.log_file
        if self.settings.log_dir:
            log_dir = Path(self.settings.log_dir).expanduser()
            return log_dir / f"install-{request.kind.value}.log"
        return default_log_file(request.kind.value)

    def run(self, request: InstallRequest) -> InstallOutcome:
        """
        Provision request.

        Args:
            request: What to provision and where

        Returns:
            InstallOutcome. Fatal errors are reported as FAILED outcomes,
            never raised.
        """
        log = StepLog(self.log_file_for(request))
        context = RunContext(request=request, log=log)
        state = RunState.START
        flow: Optional[ProvisionFlow] = None

        log.info(
            f"Provisioning {request.kind.value} {request.target} "
            f"into {request.destination}"
        )

        try:
            flow = self.flow_for(request)
            with self.lock_manager.destination_lock(request.destination):
                flow.preflight(context)
                for step in flow.steps(context):
                    self._check_cancelled(state)
                    log.info(step.description)
                    message = step.action(context)
                    state = step.state
                    log.ok(message or step.description)

        except ProvisionKitError as e:
            log.fail(str(e))
            return self._finalize(context, OutcomeStatus.FAILED, state, error=e)

        finally:
            if flow is not None:
                flow.cleanup(context)

        state = RunState.REPORTED
        log.ok(f"Provisioned {self._describe(context)}")
        return self._finalize(context, OutcomeStatus.SUCCESS, state)

    def _describe(self, context: RunContext) -> str:
        request = context.request
        if context.version is None:
            return request.target
        return f"{request.target} {context.version.describe()} at {request.destination}"

    def _finalize(
        self,
        context: RunContext,
        status: OutcomeStatus,
        state: RunState,
        error: Optional[ProvisionKitError] = None,
    ) -> InstallOutcome:
        artifact_path = None
        if status is OutcomeStatus.SUCCESS and context.built is not None:
            artifact_path = context.built.executable

        return InstallOutcome(
            status=status,
            request=context.request,
            final_state=state,
            version=context.version,
            artifact_path=artifact_path,
            error=str(error) if error is not None else None,
            error_type=type(error).__name__ if error is not None else None,
            log=context.log.freeze(),
        )

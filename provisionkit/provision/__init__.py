"""
Provisioning workflow for ProvisionKit.

The git client (provisionkit.provision.vcs) is not imported here: GitPython
fails at import time when no git executable is installed.
"""

from .models import (
    ArtifactKind,
    BuiltArtifact,
    InstallOutcome,
    InstallRequest,
    OutcomeStatus,
    RunState,
    StagedArtifact,
    VersionChoice,
    VersionInfo,
    VersionSource,
)
from .steplog import LogEntry, StepLog
from .flows import ProvisionFlow, RepositoryFlow, ToolchainFlow, repository_name
from .provisioner import Provisioner

__all__ = [
    "ArtifactKind",
    "BuiltArtifact",
    "InstallOutcome",
    "InstallRequest",
    "OutcomeStatus",
    "RunState",
    "StagedArtifact",
    "VersionChoice",
    "VersionInfo",
    "VersionSource",
    "LogEntry",
    "StepLog",
    "ProvisionFlow",
    "RepositoryFlow",
    "ToolchainFlow",
    "repository_name",
    "Provisioner",
]

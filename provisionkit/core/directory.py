"""
Directory layout for ProvisionKit.

Global state directory (~/.provisionkit/ or %USERPROFILE%\\.provisionkit\\):
    - config.yaml : Optional user configuration
    - logs/       : One log file per artifact kind, rewritten every run
    - lock/       : Per-destination lock files
"""

import os
from pathlib import Path

from provisionkit.core.exceptions import ProvisionKitError


class DirectoryError(ProvisionKitError):
    """Base exception for directory-related errors."""

    pass


def get_global_dir() -> Path:
    """
    Get the platform-specific global ProvisionKit directory.

    Returns:
        - Windows: %USERPROFILE%\\.provisionkit
        - Linux/macOS: ~/.provisionkit/
    """
    if os.name == "nt":
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise DirectoryError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine global directory."
            )
        return Path(user_profile) / ".provisionkit"
    return Path.home() / ".provisionkit"


def get_default_config_path() -> Path:
    return get_global_dir() / "config.yaml"


def get_log_dir() -> Path:
    return get_global_dir() / "logs"


def get_lock_dir() -> Path:
    return get_global_dir() / "lock"


def default_log_file(kind: str) -> Path:
    """
    Fixed log file location for an artifact kind.

    Example:
        >>> default_log_file("repository")
        PosixPath('/home/user/.provisionkit/logs/install-repository.log')
    """
    return get_log_dir() / f"install-{kind}.log"


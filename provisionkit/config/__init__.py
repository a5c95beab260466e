"""
Configuration for ProvisionKit.
"""

from .settings import (
    GO_DESCRIPTOR,
    EnvironmentSettings,
    RepositorySettings,
    Settings,
    ToolchainDescriptor,
    load_settings,
    parse_settings,
)

__all__ = [
    "GO_DESCRIPTOR",
    "EnvironmentSettings",
    "RepositorySettings",
    "Settings",
    "ToolchainDescriptor",
    "load_settings",
    "parse_settings",
]

"""
Platform detection for ProvisionKit.

Detects the current operating system and CPU architecture so the toolchain
flow can pick the right distribution archive.

Usage:
    from provisionkit.core.platform import detect_platform

    info = detect_platform()
    print(info)                       # 'linux-x64'
    print(info.distribution_arch())   # 'amd64'
"""

import functools
import platform
from dataclasses import dataclass

from provisionkit.core.exceptions import UnsupportedPlatformError


@dataclass(frozen=True)
class PlatformInfo:
    """
    Basic platform information.

    Attributes:
        os: Operating system ('windows', 'linux', 'macos', 'freebsd')
        arch: CPU architecture ('x64', 'arm64', 'x86', 'arm')
    """

    os: str
    arch: str

    def distribution_os(self) -> str:
        """OS name as used in toolchain distribution file names."""
        return {"macos": "darwin"}.get(self.os, self.os)

    def distribution_arch(self) -> str:
        """Architecture name as used in toolchain distribution file names."""
        arch_map = {
            "x64": "amd64",
            "arm64": "arm64",
            "x86": "386",
            "arm": "armv6l",
        }
        return arch_map.get(self.arch, self.arch)

    def archive_extension(self) -> str:
        """Preferred archive extension for distributions on this OS."""
        return "zip" if self.os == "windows" else "tar.gz"

    def __str__(self) -> str:
        return f"{self.os}-{self.arch}"


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current platform information.

    This function is cached - it only runs detection once per process.

    Raises:
        UnsupportedPlatformError: If the OS is not supported
    """
    return PlatformInfo(os=_detect_os(), arch=_detect_architecture())


def _detect_os() -> str:
    """
    Detect operating system.

    Returns:
        Normalized OS name: 'windows', 'linux', 'macos', 'freebsd'

    Raises:
        UnsupportedPlatformError: If OS is not supported
    """
    system = platform.system().lower()

    if system == "windows":
        return "windows"
    elif system == "linux":
        return "linux"
    elif system == "darwin":
        return "macos"
    elif system == "freebsd":
        return "freebsd"
    else:
        raise UnsupportedPlatformError(f"Unsupported operating system: {system}")


def _detect_architecture() -> str:
    """
    Detect CPU architecture.

    Returns:
        Normalized architecture: 'x64', 'arm64', 'x86', 'arm'
    """
    machine = platform.machine().lower()

    if machine in ("x86_64", "amd64", "x64"):
        return "x64"
    elif machine in ("aarch64", "arm64"):
        return "arm64"
    elif machine in ("i386", "i686", "x86"):
        return "x86"
    elif machine.startswith("arm"):
        return "arm"
    else:
        # Return original for unknown architectures
        return machine


def clear_platform_cache():
    """Clear the cached platform detection result (used by tests)."""
    detect_platform.cache_clear()

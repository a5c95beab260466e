"""Post-install verification of toolchains."""

import logging
from pathlib import Path

from provisionkit.config.settings import ToolchainDescriptor
from provisionkit.core.exceptions import VerificationError
from provisionkit.core.interfaces import ProcessRunner

logger = logging.getLogger(__name__)

VERIFY_TIMEOUT = 60


def toolchain_executable(destination: Path, descriptor: ToolchainDescriptor) -> Path:
    """Path of the toolchain's main executable, e.g. /usr/local/go/bin/go."""
    return Path(destination) / descriptor.bin_dir / descriptor.executable


def verify_toolchain(
    destination: Path, descriptor: ToolchainDescriptor, runner: ProcessRunner
) -> str:
    """
    Ask the installed toolchain to report its version.

    Args:
        destination: Toolchain install directory
        descriptor: Toolchain descriptor (executable and version arguments)
        runner: Process runner

    Returns:
        First line of the tool's version output

    Raises:
        VerificationError: If the tool cannot be launched or exits non-zero
    """
    executable = toolchain_executable(destination, descriptor)
    result = runner.run(str(executable), descriptor.version_args, timeout=VERIFY_TIMEOUT)

    if not result.ok:
        raise VerificationError(
            f"`{executable} {' '.join(descriptor.version_args)}` failed "
            f"(exit {result.exit_code}): {result.output.strip()}"
        )

    reported = result.output.strip().splitlines()
    first = reported[0] if reported else ""
    logger.debug(f"Verified toolchain: {first}")
    return first

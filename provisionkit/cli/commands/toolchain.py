"""
Toolchain command implementation.

Installs a toolchain distribution (Go by default) system-wide.
"""

import logging
from pathlib import Path

from provisionkit.cli.utils import (
    cancel_on_signals,
    format_success_message,
    print_error,
    print_warning,
    make_progress_printer,
    safe_print,
)
from provisionkit.config.settings import load_settings
from provisionkit.provision.models import ArtifactKind, InstallOutcome, InstallRequest
from provisionkit.provision.provisioner import Provisioner

logger = logging.getLogger(__name__)


def build_request(args, settings) -> InstallRequest:
    """
    Build the InstallRequest for `pvkit toolchain`.

    Raises:
        ConfigurationError: If --name does not match a configured toolchain
    """
    descriptor = settings.toolchain(args.name)
    directory = Path(args.directory or descriptor.directory).expanduser()

    return InstallRequest(
        kind=ArtifactKind.TOOLCHAIN,
        target=descriptor.name,
        destination=directory,
        version=args.tool_version,
        force_reinstall=args.force,
        expected_sha256=args.sha256,
    )


def report(outcome: InstallOutcome, bin_dir: str, log_file) -> None:
    """Print the end-of-run summary."""
    request = outcome.request
    details = {
        "Installation directory": request.destination,
        "Version": outcome.version.describe() if outcome.version else "unknown",
        "Log file": log_file,
    }
    next_steps = [
        "To use it in this shell:",
        f"   export PATH=$PATH:{Path(request.destination) / bin_dir}",
        "New login shells pick up the PATH entry automatically.",
    ]
    safe_print(
        format_success_message(
            f"{request.target} installation complete!", details, next_steps
        )
    )


def run(args) -> int:
    """
    Run the toolchain command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    settings = load_settings(args.config)
    request = build_request(args, settings)
    descriptor = settings.toolchain(request.target)

    provisioner = Provisioner(
        settings,
        log_file=args.log_file,
        progress_callback=None if args.quiet else make_progress_printer(),
    )
    log_file = provisioner.log_file_for(request)

    with cancel_on_signals(provisioner.cancel):
        outcome = provisioner.run(request)

    for entry in outcome.warnings:
        print_warning(entry.message)

    if not outcome.success:
        print_error(outcome.error, f"See log file: {log_file}")
        return 1

    report(outcome, descriptor.bin_dir, log_file)
    return 0

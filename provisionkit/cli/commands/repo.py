"""
Repo command implementation.

Clones a source repository, checks out its latest release or development
branch, and optionally builds it into a single executable.
"""

import logging
from pathlib import Path

from provisionkit.cli.utils import (
    cancel_on_signals,
    format_success_message,
    make_confirm,
    print_error,
    print_warning,
    prompt_version_choice,
    safe_print,
)
from provisionkit.config.settings import load_settings
from provisionkit.core.exceptions import UsageError
from provisionkit.provision.flows import repository_name
from provisionkit.provision.models import (
    ArtifactKind,
    InstallOutcome,
    InstallRequest,
    VersionChoice,
)
from provisionkit.provision.provisioner import Provisioner

logger = logging.getLogger(__name__)


def build_request(args, settings) -> InstallRequest:
    """
    Build the InstallRequest for `pvkit repo`.

    Raises:
        UsageError: If no URL is available or the options conflict
    """
    url = args.url or settings.repository.url
    if not url:
        raise UsageError(
            "Repository URL is required (pass URL or set repository.url in the config)"
        )

    if args.ref and (args.dev or args.interactive):
        raise UsageError("--ref cannot be combined with --dev or --interactive")

    directory = args.directory or settings.repository.directory
    if not directory:
        directory = f"~/{repository_name(url)}"

    if args.dev:
        choice = VersionChoice.DEVELOPMENT
    elif args.interactive:
        choice = prompt_version_choice()
    else:
        choice = VersionChoice.RELEASE

    return InstallRequest(
        kind=ArtifactKind.REPOSITORY,
        target=url,
        destination=Path(directory).expanduser(),
        version=args.ref,
        force_reinstall=args.force,
        build_after_fetch=args.build,
        version_choice=choice,
        binary_name=args.binary_name or settings.repository.binary_name,
    )


def report(
    outcome: InstallOutcome, binary_name: str, log_file, compiler: str = "go"
) -> None:
    """Print the end-of-run summary with quick-start or build hints."""
    destination = outcome.request.destination
    details = {
        "Installation directory": destination,
        "Version": outcome.version.describe() if outcome.version else "unknown",
    }

    if outcome.artifact_path is not None:
        details["Binary"] = outcome.artifact_path
        next_steps = [
            "Quick start:",
            f"   cd {destination}",
            f"   ./{binary_name}",
        ]
    else:
        next_steps = [
            f"To build {binary_name}:",
            f"   cd {destination}",
            f"   {compiler} build -o {binary_name} .",
            "",
            "To run after building:",
            f"   ./{binary_name}",
        ]

    next_steps += ["", f"Log file: {log_file}"]

    if outcome.artifact_path is not None:
        next_steps += [
            "",
            f"Tip: To use {binary_name} from anywhere, add to your PATH:",
            f"   echo 'export PATH=$PATH:{destination}' >> ~/.bashrc",
            "   source ~/.bashrc",
        ]

    safe_print(format_success_message("Installation Complete!", details, next_steps))


def run(args) -> int:
    """
    Run the repo command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    settings = load_settings(args.config)
    request = build_request(args, settings)

    provisioner = Provisioner(
        settings,
        confirm=make_confirm(args.yes),
        log_file=args.log_file,
    )
    log_file = provisioner.log_file_for(request)
    binary_name = request.binary_name or repository_name(request.target)

    with cancel_on_signals(provisioner.cancel):
        outcome = provisioner.run(request)

    for entry in outcome.warnings:
        print_warning(entry.message)

    if not outcome.success:
        print_error(outcome.error, f"See log file: {log_file}")
        return 1

    report(outcome, binary_name, log_file, settings.repository.compiler)
    return 0

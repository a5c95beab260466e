"""
Shared utilities for CLI commands.

Output formatting, interactive prompts and signal handling used by both the
`toolchain` and `repo` commands.
"""

import logging
import signal
import sys
from contextlib import contextmanager
from typing import Any, Callable, Dict, Optional

from provisionkit.provision.models import VersionChoice

logger = logging.getLogger(__name__)


# ============================================================================
# Output Formatting
# ============================================================================


def format_success_message(
    title: str,
    details: Dict[str, Any],
    next_steps: Optional[list] = None,
    width: int = 41,
) -> str:
    """
    Format a standardized success message.

    Args:
        title: Success message title
        details: Key-value pairs to display
        next_steps: Optional list of next step instructions
        width: Width of the surrounding rule

    Returns:
        Formatted message string
    """
    lines = ["", "=" * width, title, "=" * width]

    for key, value in details.items():
        lines.append(f"{key}: {value}")

    if next_steps:
        lines.append("")
        lines.extend(next_steps)

    lines.append("")
    return "\n".join(lines)


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)


def print_warning(message: str):
    """Print warning message to stderr."""
    print(f"WARNING: {message}", file=sys.stderr)


def safe_print(message: str, file=None):
    """
    Print message, degrading to ASCII if the console cannot encode it.

    Args:
        message: Message to print
        file: Output file (default: stdout)
    """
    try:
        print(message, file=file)
    except UnicodeEncodeError:
        print(message.encode("ascii", errors="replace").decode("ascii"), file=file)


def make_progress_printer(file=None) -> Callable[[Any], None]:
    """
    Build a download progress callback that redraws one console line.

    The line is cleared once the transfer reports completion.

    Args:
        file: Output stream (default: stderr)
    """

    def show(progress) -> None:
        out = file or sys.stderr
        if progress.done:
            print("\r" + " " * 72 + "\r", end="", file=out, flush=True)
            return
        print(f"\r  Downloading: {progress}", end="", file=out, flush=True)

    return show


# ============================================================================
# Prompts
# ============================================================================


def _read_reply(prompt: str, input_func: Optional[Callable[[str], str]]) -> str:
    input_func = input_func or input
    try:
        return input_func(prompt).strip()
    except EOFError:
        return ""


def confirm_prompt(
    message: str, input_func: Optional[Callable[[str], str]] = None
) -> bool:
    """
    Ask a y/N question. Anything but 'y' or 'yes' means no.

    Example:
        >>> confirm_prompt("Continue anyway?", input_func=lambda p: "y")
        True
    """
    reply = _read_reply(f"{message} (y/N): ", input_func)
    return reply.lower() in ("y", "yes")


def make_confirm(assume_yes: bool, interactive: Optional[bool] = None) -> Callable[[str], bool]:
    """
    Pick the confirm decision for a run.

    Args:
        assume_yes: --yes was given
        interactive: Whether prompting is possible (default: stdin is a TTY)

    Returns:
        Callable answering yes/no questions
    """
    if assume_yes:
        return lambda message: True

    if interactive is None:
        interactive = sys.stdin.isatty()
    if interactive:
        return confirm_prompt

    def decline(message: str) -> bool:
        logger.info(f"{message} -> no (non-interactive)")
        return False

    return decline


def prompt_version_choice(
    input_func: Optional[Callable[[str], str]] = None,
) -> VersionChoice:
    """
    Ask whether to install the latest release or the development branch.

    Defaults to the release on empty or unrecognized input.
    """
    safe_print("")
    safe_print("Available options:")
    safe_print("1) Latest release - Recommended")
    safe_print("2) Development branch - Latest features but potentially unstable")
    safe_print("")
    reply = _read_reply("Choose version (1 or 2, default: 1): ", input_func)
    if reply == "2":
        return VersionChoice.DEVELOPMENT
    return VersionChoice.RELEASE


# ============================================================================
# Signals
# ============================================================================


@contextmanager
def cancel_on_signals(cancel: Callable[[], None]):
    """
    Route SIGINT/SIGTERM to cancel() for the duration of the block.

    The run stops before its next step; previous handlers are restored on exit.
    """
    def handler(signum, frame):
        logger.warning(
            f"Received {signal.Signals(signum).name}, stopping after the current step"
        )
        cancel()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, handler)

    try:
        yield
    finally:
        for signum, old in previous.items():
            signal.signal(signum, old)

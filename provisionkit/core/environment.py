"""
Persistent search-path configuration.

The shell profile that carries PATH is shared, global state. It is only ever
touched through ensure_path_entry(), which appends an export line when it is
missing and leaves the file alone otherwise, so running it any number of
times yields exactly one entry.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from provisionkit.core.exceptions import ProvisionKitError
from provisionkit.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROFILE_DIR = Path("/etc/profile.d")
DEFAULT_USER_PROFILE = Path("~/.profile")


class EnvironmentConfigError(ProvisionKitError):
    """Raised when no search-path configuration file could be updated."""

    pass


@dataclass
class PathConfiguration:
    """Where the search-path entry lives after configuration."""

    config_file: Path
    bin_dir: Path
    added: bool
    system_wide: bool


def path_export_line(bin_dir: Path) -> str:
    """
    Shell line that appends bin_dir to PATH.

    Example:
        >>> path_export_line(Path("/usr/local/go/bin"))
        'export PATH=$PATH:/usr/local/go/bin'
    """
    return f"export PATH=$PATH:{bin_dir}"


def has_path_entry(config_file: Path, bin_dir: Path) -> bool:
    """Check whether config_file already exports bin_dir."""
    if not config_file.exists():
        return False

    wanted = path_export_line(bin_dir)
    content = config_file.read_text(encoding="utf-8", errors="replace")
    return any(line.strip() == wanted for line in content.splitlines())


def ensure_path_entry(config_file: Path, bin_dir: Path) -> bool:
    """
    Ensure config_file contains the export line for bin_dir.

    Args:
        config_file: Shell profile to update (created if missing)
        bin_dir: Directory to append to PATH

    Returns:
        True if the entry was added, False if it was already present

    Raises:
        OSError: If the file cannot be read or written
    """
    config_file = Path(config_file)

    if has_path_entry(config_file, bin_dir):
        logger.debug(f"PATH entry for {bin_dir} already present in {config_file}")
        return False

    existing = ""
    if config_file.exists():
        existing = config_file.read_text(encoding="utf-8", errors="replace")
        if existing and not existing.endswith("\n"):
            existing += "\n"

    atomic_write(config_file, existing + path_export_line(bin_dir) + "\n")
    logger.debug(f"Added PATH entry for {bin_dir} to {config_file}")
    return True


def _system_profile_writable(profile_dir: Path) -> bool:
    return profile_dir.is_dir() and os.access(profile_dir, os.W_OK)


def add_to_process_path(bin_dir: Path) -> None:
    """Make bin_dir visible to this process and its children."""
    current = os.environ.get("PATH", "")
    entries = current.split(os.pathsep) if current else []
    if str(bin_dir) not in entries:
        os.environ["PATH"] = os.pathsep.join(entries + [str(bin_dir)])


def configure_environment(
    bin_dir: Path,
    profile_name: str,
    system_profile_dir: Optional[Path] = None,
    user_profile: Optional[Path] = None,
) -> PathConfiguration:
    """
    Put bin_dir on the persistent search path.

    Prefers a system-wide profile script (/etc/profile.d/<profile_name>.sh)
    when that directory is writable and falls back to the user's ~/.profile.

    Args:
        bin_dir: Directory holding the installed executables
        profile_name: Base name for the system-wide profile script
        system_profile_dir: Override for /etc/profile.d
        user_profile: Override for ~/.profile

    Returns:
        PathConfiguration describing the file that holds the entry

    Raises:
        EnvironmentConfigError: If neither location could be updated
    """
    system_profile_dir = Path(system_profile_dir or DEFAULT_SYSTEM_PROFILE_DIR)
    user_profile = Path(user_profile or DEFAULT_USER_PROFILE).expanduser()
    bin_dir = Path(bin_dir)

    if _system_profile_writable(system_profile_dir):
        config_file = system_profile_dir / f"{profile_name}.sh"
        try:
            added = ensure_path_entry(config_file, bin_dir)
            add_to_process_path(bin_dir)
            return PathConfiguration(config_file, bin_dir, added, system_wide=True)
        except OSError as e:
            logger.warning(
                f"Could not update {config_file}: {e}; falling back to {user_profile}"
            )

    try:
        added = ensure_path_entry(user_profile, bin_dir)
    except OSError as e:
        raise EnvironmentConfigError(
            f"Failed to update PATH in {user_profile}: {e}"
        ) from e

    add_to_process_path(bin_dir)
    return PathConfiguration(user_profile, bin_dir, added, system_wide=False)

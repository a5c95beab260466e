"""
Concurrent access control for ProvisionKit.

Provisioning the same destination from two processes at once is unsupported.
Rather than let the runs corrupt each other, each run takes a file-based lock
keyed on the destination path and a second run fails fast.

Usage:
    from provisionkit.core.locking import LockManager

    lock_manager = LockManager()
    with lock_manager.destination_lock(Path("/usr/local/go")):
        # Only this process stages into /usr/local/go
        pass
"""

import hashlib
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from filelock import FileLock, Timeout as LockTimeout

from provisionkit.core.directory import get_lock_dir
from provisionkit.core.exceptions import ProvisionLockError

logger = logging.getLogger(__name__)


class LockManager:
    """
    Manages per-destination locks.

    Uses file-based locking with the `filelock` library for cross-platform
    compatibility and automatic cleanup on process death.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Optional[Path] = None):
        """
        Initialize lock manager.

        Args:
            lock_dir: Directory for lock files (default: ~/.provisionkit/lock/)
        """
        self.lock_dir = Path(lock_dir) if lock_dir is not None else get_lock_dir()

    def lock_path_for(self, destination: Path) -> Path:
        """Lock file path for a destination (stable across runs)."""
        resolved = str(Path(destination).expanduser().resolve())
        digest = hashlib.sha256(resolved.encode("utf-8")).hexdigest()[:16]
        safe_name = Path(resolved).name or "root"
        return self.lock_dir / f"dest-{safe_name}-{digest}.lock"

    @contextmanager
    def destination_lock(self, destination: Path, timeout: float = 0):
        """
        Acquire the lock for a destination directory.

        Args:
            destination: Destination being provisioned
            timeout: Seconds to wait; 0 fails immediately if held

        Raises:
            ProvisionLockError: If another run holds the lock or the lock file
                cannot be created
        """
        lock_path = self.lock_path_for(destination)
        lock = FileLock(lock_path, timeout=timeout)

        try:
            self.lock_dir.mkdir(parents=True, exist_ok=True)
            lock.acquire()
        except LockTimeout as e:
            logger.error(f"Destination {destination} is locked by another run")
            raise ProvisionLockError(
                f"Another provisioning run is using {destination}. "
                "Wait for it to finish before retrying."
            ) from e
        except OSError as e:
            raise ProvisionLockError(f"Cannot create lock file {lock_path}: {e}") from e

        logger.debug(f"Acquired destination lock: {lock_path}")
        try:
            yield
        finally:
            lock.release()
            logger.debug(f"Released destination lock: {lock_path}")

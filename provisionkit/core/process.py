"""
Child process execution.

Thin ProcessRunner implementation over subprocess. Output is captured with
stderr folded into stdout so the step log can show what a tool printed.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from provisionkit.core.interfaces import ProcessResult, ProcessRunner

logger = logging.getLogger(__name__)

# Exit code used by shells for "command not found"
NOT_FOUND_EXIT_CODE = 127


class SubprocessRunner(ProcessRunner):
    """Run executables with subprocess.run."""

    def __init__(self, env: Optional[dict] = None):
        self.env = env

    def run(
        self,
        executable: str,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        timeout: Optional[int] = None,
    ) -> ProcessResult:
        cmd = [str(executable), *args]
        logger.debug(f"Running: {' '.join(cmd)} (cwd={cwd})")

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=timeout,
                env=self.env,
            )
        except FileNotFoundError as e:
            return ProcessResult(exit_code=NOT_FOUND_EXIT_CODE, output=str(e))
        except PermissionError as e:
            return ProcessResult(exit_code=126, output=str(e))
        except subprocess.TimeoutExpired as e:
            output = e.output if isinstance(e.output, str) else ""
            return ProcessResult(
                exit_code=-1, output=f"{output}\nTimed out after {timeout}s"
            )

        if result.returncode != 0:
            logger.debug(f"{cmd[0]} exited with code {result.returncode}")
        return ProcessResult(exit_code=result.returncode, output=result.stdout or "")

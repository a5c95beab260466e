"""
Build a staged source tree into a single executable.

The compiler is reached through the Compiler interface; GoCompiler drives the
`go` binary through a ProcessRunner. After compiling, the Builder marks the
output executable and runs a smoke test (`<binary> -h`). A failing smoke test
is reported as VerificationWarning, never as a build failure.
"""

import logging
import os
import re
import stat
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from provisionkit.core.exceptions import (
    BuildError,
    DependencyMissingError,
    VerificationWarning,
)
from provisionkit.core.filesystem import remove_path
from provisionkit.core.interfaces import Compiler, ProcessRunner
from provisionkit.provision.models import BuiltArtifact
from provisionkit.provision.versions import compiler_meets_minimum

logger = logging.getLogger(__name__)

# "go version go1.22.3 linux/amd64"
GO_VERSION_RE = re.compile(r"\bgo(\d+(?:\.\d+)+)")

BUILD_TIMEOUT = 1800
SMOKE_TEST_TIMEOUT = 30


def _tail(output: str, lines: int = 20) -> str:
    return "\n".join(output.strip().splitlines()[-lines:])


class GoCompiler(Compiler):
    """Compiler backed by the `go` command."""

    def __init__(
        self,
        runner: ProcessRunner,
        executable: str = "go",
        build_flags: Optional[List[str]] = None,
    ):
        self.runner = runner
        self.executable = executable
        self.build_flags = (
            list(build_flags) if build_flags is not None else ["-ldflags", "-s -w"]
        )

    def version(self) -> Optional[str]:
        result = self.runner.run(self.executable, ["version"])
        if not result.ok:
            return None
        match = GO_VERSION_RE.search(result.output)
        return match.group(1) if match else None

    def tidy(self, source_dir: Path) -> None:
        logger.info("Resolving module dependencies (go mod tidy)")
        result = self.runner.run(
            self.executable, ["mod", "tidy"], cwd=source_dir, timeout=BUILD_TIMEOUT
        )
        if not result.ok:
            raise BuildError(
                f"Dependency resolution failed (exit {result.exit_code}):\n"
                f"{_tail(result.output)}"
            )

    def build(self, source_dir: Path, output_path: Path) -> None:
        args = ["build", "-o", str(output_path), *self.build_flags, "."]
        logger.info(f"Compiling {source_dir.name} into {output_path.name}")
        result = self.runner.run(
            self.executable, args, cwd=source_dir, timeout=BUILD_TIMEOUT
        )
        if not result.ok:
            raise BuildError(
                f"Compilation failed (exit {result.exit_code}):\n{_tail(result.output)}"
            )


class Builder:
    """
    Compiles a checked-out repository and smoke-tests the result.

    Example:
        >>> builder = Builder(GoCompiler(SubprocessRunner()), SubprocessRunner())
        >>> artifact = builder.build(Path("~/app").expanduser(), "app")
        >>> builder.smoke_test(artifact)
    """

    def __init__(
        self,
        compiler: Compiler,
        runner: ProcessRunner,
        smoke_test_args: Sequence[str] = ("-h",),
    ):
        self.compiler = compiler
        self.runner = runner
        self.smoke_test_args = list(smoke_test_args)

    def check_compiler(
        self,
        name: str,
        minimum: str,
        confirm: Callable[[str], bool],
    ) -> str:
        """
        Make sure a usable compiler is installed.

        An older compiler than minimum is accepted only if confirm() agrees.

        Returns:
            Installed compiler version

        Raises:
            DependencyMissingError: If the compiler is missing, or too old and
                the caller declined to continue
        """
        installed = self.compiler.version()
        if installed is None:
            raise DependencyMissingError(name)

        if not compiler_meets_minimum(installed, minimum):
            message = (
                f"{name} {minimum} or later is recommended "
                f"(found {installed}). Continue anyway?"
            )
            if not confirm(message):
                raise DependencyMissingError(
                    name, f"version {installed} is older than required {minimum}"
                )
            logger.warning(f"Continuing with {name} {installed} (< {minimum})")

        return installed

    def build(self, source_dir: Path, binary_name: str) -> BuiltArtifact:
        """
        Compile source_dir into source_dir/binary_name.

        Raises:
            BuildError: If binary_name names a directory in the tree, or if
                dependency resolution or compilation fails. No executable is
                left at the output path.
        """
        output_path = source_dir / binary_name

        if output_path.is_dir():
            raise BuildError(
                f"{output_path} is a directory in the source tree; "
                "choose another name with --binary-name"
            )

        if (source_dir / "go.mod").exists():
            self.compiler.tidy(source_dir)

        try:
            self.compiler.build(source_dir, output_path)
        except BuildError:
            if output_path.is_file() or output_path.is_symlink():
                remove_path(output_path)
            raise

        if not output_path.is_file():
            raise BuildError(f"Compiler reported success but {output_path} is missing")

        try:
            mode = output_path.stat().st_mode
            os.chmod(output_path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except OSError as e:
            raise BuildError(f"Cannot mark {output_path} executable: {e}") from e

        return BuiltArtifact(executable=output_path, smoke_test_passed=False)

    def smoke_test(self, artifact: BuiltArtifact) -> BuiltArtifact:
        """
        Run the built executable with the smoke-test arguments.

        Raises:
            VerificationWarning: If the executable exits non-zero
        """
        result = self.runner.run(
            str(artifact.executable),
            self.smoke_test_args,
            cwd=artifact.executable.parent,
            timeout=SMOKE_TEST_TIMEOUT,
        )
        artifact.smoke_test_output = result.output
        if not result.ok:
            raise VerificationWarning(
                f"Smoke test `{artifact.executable.name} "
                f"{' '.join(self.smoke_test_args)}` exited with {result.exit_code}"
            )
        artifact.smoke_test_passed = True
        return artifact

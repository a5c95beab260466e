"""
Fake collaborators.

These replace the network, git, the compiler and child processes so the
provisioning flows can be exercised end to end on a temporary directory.
"""

import io
import tarfile
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from provisionkit.core.exceptions import (
    BuildError,
    CheckoutError,
    CloneError,
    DownloadError,
)
from provisionkit.core.interfaces import (
    Compiler,
    HttpFetcher,
    ProcessResult,
    ProcessRunner,
    VersionControl,
)


def make_tarball(files: Dict[str, bytes]) -> bytes:
    """Build an in-memory .tar.gz from a {member path: content} mapping."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


class FakeFetcher(HttpFetcher):
    """Serves canned bodies keyed by URL."""

    def __init__(self, responses: Optional[Dict[str, bytes]] = None):
        self.responses = dict(responses or {})
        self.requests: List[str] = []

    def fetch(self, url: str) -> bytes:
        self.requests.append(url)
        if url not in self.responses:
            raise DownloadError(f"404 for {url}")
        return self.responses[url]

    def download(
        self,
        url: str,
        destination: Path,
        expected_sha256: Optional[str] = None,
        progress_callback: Optional[Callable] = None,
    ) -> Path:
        content = self.fetch(url)
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(content)
        return destination


class FakeVersionControl(VersionControl):
    """
    A remote with fixed tags and branches.

    clone() writes a marker file; checkout() records the reference in it.
    """

    def __init__(
        self,
        tags: Sequence[str] = (),
        branches: Sequence[str] = ("main",),
        default: str = "main",
        files: Optional[Dict[str, str]] = None,
        fail_clone: bool = False,
    ):
        self.tags = list(tags)
        self.branches = list(branches)
        self.default = default
        self.files = dict(files or {"main.go": "package main\n"})
        self.fail_clone = fail_clone
        self.cloned: List[Tuple[str, Path]] = []

    def list_remote_tags(self, url: str) -> List[str]:
        return list(self.tags)

    def list_remote_branches(self, url: str) -> List[str]:
        return list(self.branches)

    def default_branch(self, url: str) -> str:
        return self.default

    def clone(self, url: str, target_dir: Path) -> None:
        if self.fail_clone:
            raise CloneError(f"Failed to clone {url}")
        target_dir = Path(target_dir)
        target_dir.mkdir(parents=True)
        for name, content in self.files.items():
            (target_dir / name).write_text(content)
        self.cloned.append((url, target_dir))

    def fetch_tags(self, repo_dir: Path) -> None:
        pass

    def checkout(self, repo_dir: Path, ref: str) -> None:
        if ref not in self.tags and ref not in self.branches:
            raise CheckoutError(f"Failed to checkout {ref}")
        (Path(repo_dir) / ".checked_out").write_text(ref)

    def head_commit(self, repo_dir: Path) -> str:
        ref = (Path(repo_dir) / ".checked_out").read_text()
        return f"c0ffee{len(ref)}"


class FakeRunner(ProcessRunner):
    """
    Answers process launches from a handler table.

    Handlers are keyed by executable name (the last path component) and
    return a ProcessResult. Unknown executables exit 127.
    """

    def __init__(self, handlers: Optional[Dict[str, Callable]] = None):
        self.handlers = dict(handlers or {})
        self.calls: List[Tuple[str, List[str]]] = []

    def run(
        self,
        executable: str,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        timeout: Optional[int] = None,
    ) -> ProcessResult:
        self.calls.append((str(executable), list(args)))
        handler = self.handlers.get(Path(str(executable)).name)
        if handler is None:
            return ProcessResult(exit_code=127, output=f"{executable}: not found")
        return handler(list(args))


class FakeCompiler(Compiler):
    """Writes a stub executable unless told to fail."""

    def __init__(
        self,
        version: Optional[str] = "1.22.3",
        fail_build: bool = False,
        partial_output: bool = False,
    ):
        self._version = version
        self.fail_build = fail_build
        self.partial_output = partial_output
        self.tidied: List[Path] = []

    def version(self) -> Optional[str]:
        return self._version

    def tidy(self, source_dir: Path) -> None:
        self.tidied.append(source_dir)

    def build(self, source_dir: Path, output_path: Path) -> None:
        if self.fail_build:
            if self.partial_output:
                output_path.write_bytes(b"half-written")
            raise BuildError("Compilation failed (exit 1):\nmain.go:1: syntax error")
        output_path.write_bytes(b"#!/bin/sh\nexit 0\n")

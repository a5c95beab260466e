"""
Git operations for repository provisioning.

GitPython refuses to import when no git executable is available, so this
module is only imported once the repository flow has confirmed git exists.
"""

import logging
from pathlib import Path
from typing import List, Optional

import git
from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from provisionkit.core.exceptions import (
    CheckoutError,
    CloneError,
    VersionResolutionError,
)
from provisionkit.core.interfaces import VersionControl

logger = logging.getLogger(__name__)

TAG_PREFIX = "refs/tags/"
HEAD_PREFIX = "refs/heads/"


def _parse_ls_remote(output: str, prefix: str) -> List[str]:
    """
    Extract ref names from `git ls-remote` output.

    Args:
        output: Raw ls-remote output ("<sha>\\t<ref>" per line)
        prefix: Ref namespace to keep (e.g. "refs/tags/")

    Returns:
        Names with the prefix stripped, peeled tag entries (^{}) dropped
    """
    names = []
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) != 2:
            continue
        ref = parts[1].strip()
        if not ref.startswith(prefix) or ref.endswith("^{}"):
            continue
        names.append(ref[len(prefix) :])
    return names


def _parse_symref_head(output: str) -> Optional[str]:
    """Extract the branch from `git ls-remote --symref <url> HEAD` output."""
    for line in output.splitlines():
        if line.startswith("ref: ") and line.rstrip().endswith("HEAD"):
            ref = line[len("ref: ") :].split("\t")[0].strip()
            if ref.startswith(HEAD_PREFIX):
                return ref[len(HEAD_PREFIX) :]
    return None


class GitVersionControl(VersionControl):
    """VersionControl backed by GitPython."""

    def __init__(self) -> None:
        self._git = git.cmd.Git()

    def _ls_remote(self, *args: str) -> str:
        try:
            return self._git.ls_remote(*args)
        except GitCommandError as e:
            raise VersionResolutionError(
                f"Failed to query remote repository: {e.stderr.strip() or e}"
            ) from e

    def list_remote_tags(self, url: str) -> List[str]:
        """
        List tag names published by url.

        Args:
            url: Git repository URL

        Returns:
            Tag names in the order the remote reports them

        Raises:
            VersionResolutionError: If the remote cannot be queried
        """
        return _parse_ls_remote(self._ls_remote("--tags", url), TAG_PREFIX)

    def list_remote_branches(self, url: str) -> List[str]:
        return _parse_ls_remote(self._ls_remote("--heads", url), HEAD_PREFIX)

    def default_branch(self, url: str) -> str:
        """
        Get the branch the remote HEAD points to.

        Raises:
            VersionResolutionError: If the remote cannot be queried or
                does not advertise its HEAD
        """
        branch = _parse_symref_head(self._ls_remote("--symref", url, "HEAD"))
        if not branch:
            raise VersionResolutionError(f"Remote {url} does not advertise a HEAD branch")
        return branch

    def clone(self, url: str, target_dir: Path) -> None:
        """
        Clone the full repository into target_dir.

        Raises:
            CloneError: If git clone fails
        """
        try:
            Repo.clone_from(url, target_dir)
        except GitCommandError as e:
            raise CloneError(f"Failed to clone {url}: {e.stderr.strip() or e}") from e
        logger.debug(f"Cloned {url} into {target_dir}")

    def _open(self, repo_dir: Path) -> Repo:
        try:
            return Repo(repo_dir)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise CheckoutError(f"Not a git repository: {repo_dir}") from e

    def fetch_tags(self, repo_dir: Path) -> None:
        repo = self._open(repo_dir)
        try:
            repo.git.fetch("--tags")
        except GitCommandError as e:
            raise CheckoutError(f"Failed to fetch tags: {e.stderr.strip() or e}") from e

    def checkout(self, repo_dir: Path, ref: str) -> None:
        """
        Check out a tag or branch.

        Raises:
            CheckoutError: If the reference does not exist or checkout fails
        """
        repo = self._open(repo_dir)
        try:
            repo.git.checkout(ref)
        except GitCommandError as e:
            raise CheckoutError(
                f"Failed to checkout {ref}: {e.stderr.strip() or e}"
            ) from e
        logger.debug(f"Checked out {ref} in {repo_dir}")

    def head_commit(self, repo_dir: Path) -> str:
        repo = self._open(repo_dir)
        try:
            return repo.git.rev_parse("--short", "HEAD")
        except GitCommandError as e:
            raise CheckoutError(f"Failed to read HEAD: {e.stderr.strip() or e}") from e

"""
Version resolution.

Turns an InstallRequest into a VersionInfo before anything is written to
disk. Toolchains are resolved by querying the distribution's "latest version"
endpoint; repositories by listing remote tags and the remote default branch.
"""

import logging
import re
from typing import Iterable, List, Optional

from packaging.version import InvalidVersion, Version

from provisionkit.config.settings import ToolchainDescriptor
from provisionkit.core.exceptions import DownloadError, VersionResolutionError
from provisionkit.core.interfaces import HttpFetcher, VersionControl
from provisionkit.provision.models import (
    InstallRequest,
    VersionChoice,
    VersionInfo,
    VersionSource,
)

logger = logging.getLogger(__name__)

# 1.22, 1.22.3, 1.23rc1
TOOLCHAIN_VERSION_RE = re.compile(r"^\d+(\.\d+)+([A-Za-z]+\d*)?$")


def parse_toolchain_version(text: str, prefix: str = "") -> str:
    """
    Parse the first line of a "latest version" response.

    Args:
        text: Response body, e.g. "go1.22.3\\ntime 2024-05-01T..."
        prefix: Prefix to strip from the version, e.g. "go"

    Returns:
        Bare version string, e.g. "1.22.3"

    Raises:
        VersionResolutionError: If no parseable version is present
    """
    lines = text.strip().splitlines()
    first = lines[0].strip() if lines else ""
    return normalize_toolchain_version(first, prefix)


def normalize_toolchain_version(version: str, prefix: str = "") -> str:
    """
    Strip the distribution prefix and validate a toolchain version.

    Raises:
        VersionResolutionError: If version is not a dotted numeric version
    """
    candidate = version.strip()
    if prefix and candidate.startswith(prefix):
        candidate = candidate[len(prefix) :]

    if not TOOLCHAIN_VERSION_RE.match(candidate):
        raise VersionResolutionError(
            f"Could not parse a version from {version!r}"
        )
    return candidate


def _parse_tag(tag: str) -> Optional[Version]:
    try:
        return Version(tag)
    except InvalidVersion:
        return None


def select_latest_release(tags: Iterable[str]) -> Optional[str]:
    """
    Pick the latest tagged release.

    Tags are ordered by PEP 440 version (a leading 'v' is accepted). Stable
    releases win over pre-releases; tags that are not versions are ignored.

    Example:
        >>> select_latest_release(["v1.2.0", "v1.3.0", "nightly"])
        'v1.3.0'

    Returns:
        The tag name, or None if no tag looks like a release
    """
    parsed = [(v, tag) for tag in tags if (v := _parse_tag(tag)) is not None]
    if not parsed:
        return None

    stable = [item for item in parsed if not item[0].is_prerelease]
    candidates = stable or parsed
    return max(candidates, key=lambda item: item[0])[1]


def compiler_meets_minimum(version: str, minimum: str) -> bool:
    """
    Check a compiler version against a minimum.

    Only major and minor numbers are compared. Unparseable versions are
    treated as meeting the minimum.

    Example:
        >>> compiler_meets_minimum("1.18.10", "1.19")
        False
    """
    installed = _parse_tag(version)
    required = _parse_tag(minimum)
    if installed is None or required is None:
        return True
    return installed.release[:2] >= required.release[:2]


def resolve_toolchain_version(
    request: InstallRequest, descriptor: ToolchainDescriptor, fetcher: HttpFetcher
) -> VersionInfo:
    """
    Resolve the toolchain version to install.

    Raises:
        VersionResolutionError: If the remote is unreachable or unparseable
    """
    prefix = descriptor.version_prefix

    if not request.wants_latest:
        version = normalize_toolchain_version(request.version, prefix)
        return VersionInfo(
            version=version,
            source=VersionSource.EXPLICIT,
            resolved_reference=f"{prefix}{version}",
        )

    logger.debug(f"Querying latest {descriptor.name} version from {descriptor.version_url}")
    try:
        body = fetcher.fetch(descriptor.version_url)
    except DownloadError as e:
        raise VersionResolutionError(
            f"Failed to fetch the latest {descriptor.name} version: {e}"
        ) from e

    version = parse_toolchain_version(body.decode("utf-8", errors="replace"), prefix)
    return VersionInfo(
        version=version,
        source=VersionSource.LATEST,
        resolved_reference=f"{prefix}{version}",
    )


def resolve_repository_version(
    request: InstallRequest, vcs: VersionControl
) -> VersionInfo:
    """
    Resolve the reference to check out for a repository.

    Policy: the latest tagged release, unless the caller asked for the
    development branch or the repository has no releases. An explicit ref must
    name an existing tag or branch.

    Raises:
        VersionResolutionError: If the remote cannot be queried or the
            explicit ref does not exist
    """
    url = request.target
    tags: List[str] = vcs.list_remote_tags(url)

    if not request.wants_latest:
        ref = request.version
        if ref in tags:
            return VersionInfo(ref, VersionSource.EXPLICIT, resolved_reference=ref)
        if ref in vcs.list_remote_branches(url):
            return VersionInfo(ref, VersionSource.BRANCH, resolved_reference=ref)
        raise VersionResolutionError(f"Reference {ref!r} not found in {url}")

    branch = vcs.default_branch(url)

    if request.version_choice is VersionChoice.DEVELOPMENT:
        return VersionInfo(branch, VersionSource.BRANCH, resolved_reference=branch)

    latest = select_latest_release(tags)
    if latest is None:
        logger.info(f"No releases found, using {branch} branch")
        return VersionInfo(branch, VersionSource.BRANCH, resolved_reference=branch)

    return VersionInfo(latest, VersionSource.LATEST, resolved_reference=latest)

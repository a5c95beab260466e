"""
Pytest configuration and shared fixtures for ProvisionKit tests.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from provisionkit.config.settings import EnvironmentSettings, Settings
from provisionkit.core.interfaces import ProcessResult
from provisionkit.core.locking import LockManager
from provisionkit.core.platform import PlatformInfo
from provisionkit.provision.provisioner import Provisioner
from tests.mocks import (
    FakeCompiler,
    FakeFetcher,
    FakeRunner,
    FakeVersionControl,
    make_tarball,
)

GO_VERSION = "1.22.3"
GO_ARCHIVE = f"go{GO_VERSION}.linux-amd64.tar.gz"
GO_ARCHIVE_URL = f"https://go.dev/dl/{GO_ARCHIVE}"
GO_VERSION_URL = "https://go.dev/VERSION?m=text"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests that need external tools such as git",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests when git is not installed."""
    if shutil.which("git") is not None:
        return
    skip_integration = pytest.mark.skip(reason="git executable not available")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def isolated_home(temp_dir: Path, monkeypatch) -> Path:
    """Create isolated home directory for tests."""
    fake_home = temp_dir / "home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("USERPROFILE", str(fake_home))

    return fake_home


@pytest.fixture
def linux_x64() -> PlatformInfo:
    return PlatformInfo("linux", "x64")


@pytest.fixture
def lock_manager(temp_dir: Path) -> LockManager:
    return LockManager(temp_dir / "locks")


@pytest.fixture
def settings(temp_dir: Path) -> Settings:
    """Default settings with profile locations inside the temp directory."""
    profile_dir = temp_dir / "profile.d"
    return Settings(
        environment=EnvironmentSettings(
            system_profile_dir=str(profile_dir),
            user_profile=str(temp_dir / "home" / ".profile"),
        ),
        log_dir=str(temp_dir / "logs"),
    )


@pytest.fixture
def go_tarball() -> bytes:
    return make_tarball(
        {
            "go/bin/go": b"#!/bin/sh\necho go version go1.22.3 linux/amd64\n",
            "go/VERSION": b"go1.22.3\n",
        }
    )


@pytest.fixture
def go_fetcher(go_tarball: bytes) -> FakeFetcher:
    return FakeFetcher(
        {
            GO_VERSION_URL: b"go1.22.3\ntime 2024-05-01T00:00:00Z\n",
            GO_ARCHIVE_URL: go_tarball,
        }
    )


@pytest.fixture
def go_runner() -> FakeRunner:
    """Runner where the installed `go` reports its version."""
    return FakeRunner(
        {"go": lambda args: ProcessResult(0, "go version go1.22.3 linux/amd64\n")}
    )


@pytest.fixture
def app_runner() -> FakeRunner:
    """Runner where the built `app` binary passes its smoke test."""
    return FakeRunner({"app": lambda args: ProcessResult(0, "Usage of app:\n")})


@pytest.fixture
def release_vcs() -> FakeVersionControl:
    return FakeVersionControl(tags=["v1.2.0", "v1.3.0"], branches=["main"])


@pytest.fixture
def make_provisioner(settings, lock_manager, linux_x64, temp_dir):
    """Factory for a Provisioner wired to fakes."""

    def factory(**overrides) -> Provisioner:
        kwargs = dict(
            settings=settings,
            fetcher=FakeFetcher(),
            vcs=FakeVersionControl(),
            runner=FakeRunner(),
            compiler=FakeCompiler(),
            lock_manager=lock_manager,
            platform=linux_x64,
            log_file=temp_dir / "logs" / "run.log",
            find_tool=lambda name: Path(f"/usr/bin/{name}"),
        )
        kwargs.update(overrides)
        return Provisioner(**kwargs)

    return factory


@pytest.fixture(autouse=True)
def preserve_process_path(monkeypatch):
    """PATH configuration mutates os.environ; undo it after each test."""
    monkeypatch.setenv("PATH", os.environ.get("PATH", ""))

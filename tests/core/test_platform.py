"""
Tests for platform detection.
"""

import pytest

from provisionkit.core.exceptions import UnsupportedPlatformError
from provisionkit.core.platform import PlatformInfo, clear_platform_cache, detect_platform


class TestPlatformInfo:
    @pytest.mark.parametrize(
        "os_name,arch,dist_os,dist_arch",
        [
            ("linux", "x64", "linux", "amd64"),
            ("linux", "arm64", "linux", "arm64"),
            ("macos", "arm64", "darwin", "arm64"),
            ("linux", "x86", "linux", "386"),
            ("linux", "arm", "linux", "armv6l"),
        ],
    )
    def test_distribution_names(self, os_name, arch, dist_os, dist_arch):
        info = PlatformInfo(os_name, arch)

        assert info.distribution_os() == dist_os
        assert info.distribution_arch() == dist_arch

    def test_archive_extension(self):
        assert PlatformInfo("linux", "x64").archive_extension() == "tar.gz"
        assert PlatformInfo("windows", "x64").archive_extension() == "zip"

    def test_str(self):
        assert str(PlatformInfo("linux", "x64")) == "linux-x64"


def test_detect_platform_is_cached():
    clear_platform_cache()
    first = detect_platform()
    assert detect_platform() is first
    assert first.os in ("linux", "macos", "windows", "freebsd")


def test_unsupported_os(monkeypatch):
    """Test an unknown OS raises a ProvisionKitError subclass."""
    monkeypatch.setattr("platform.system", lambda: "Plan9")
    clear_platform_cache()

    try:
        with pytest.raises(UnsupportedPlatformError, match="plan9"):
            detect_platform()
    finally:
        clear_platform_cache()

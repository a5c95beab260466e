"""
In-memory collaborators for provisioning tests.
"""

from .collaborators import (
    FakeCompiler,
    FakeFetcher,
    FakeRunner,
    FakeVersionControl,
    make_tarball,
)

__all__ = [
    "FakeCompiler",
    "FakeFetcher",
    "FakeRunner",
    "FakeVersionControl",
    "make_tarball",
]

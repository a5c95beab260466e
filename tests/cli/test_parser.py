"""
Tests for CLI argument parser.
"""

from pathlib import Path

import pytest

from provisionkit.cli.parser import CLI
from provisionkit.core.exceptions import UsageError


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_no_command_shows_help(self, capsys):
        """Test that running without command shows help."""
        result = CLI().run([])

        assert result == 1
        assert "usage:" in capsys.readouterr().out.lower()

    def test_version_flag(self, capsys):
        """Test --version flag."""
        with pytest.raises(SystemExit) as exc_info:
            CLI().run(["--version"])

        assert exc_info.value.code == 0
        assert "ProvisionKit" in capsys.readouterr().out

    def test_help_exits_zero(self, capsys):
        """Test -h prints usage and exits with 0."""
        with pytest.raises(SystemExit) as exc_info:
            CLI().run(["repo", "-h"])

        assert exc_info.value.code == 0
        assert "--build" in capsys.readouterr().out

    def test_unknown_flag_exits_one(self, capsys):
        """Test an unknown flag is a usage error with exit code 1."""
        result = CLI().run(["repo", "--frobnicate"])

        assert result == 1
        assert "ERROR:" in capsys.readouterr().err

    def test_parse_raises_usage_error(self):
        with pytest.raises(UsageError, match="unrecognized arguments"):
            CLI().parse_args(["toolchain", "--bogus"])


class TestRepoCommand:
    """Test repo command parsing."""

    def test_defaults(self):
        args = CLI().parse_args(["repo", "https://example.com/app.git"])

        assert args.command == "repo"
        assert args.url == "https://example.com/app.git"
        assert args.directory is None
        assert args.force is False
        assert args.build is False
        assert args.ref is None
        assert args.dev is False
        assert args.yes is False

    def test_all_flags(self):
        args = CLI().parse_args(
            [
                "--log-file",
                "/tmp/run.log",
                "repo",
                "https://example.com/app.git",
                "-d",
                "/opt/app",
                "-f",
                "-b",
                "-r",
                "v1.2.0",
                "-y",
                "--binary-name",
                "tool",
            ]
        )

        assert args.log_file == Path("/tmp/run.log")
        assert args.directory == Path("/opt/app")
        assert args.force and args.build and args.yes
        assert args.ref == "v1.2.0"
        assert args.binary_name == "tool"

    def test_url_optional(self):
        assert CLI().parse_args(["repo"]).url is None


class TestToolchainCommand:
    """Test toolchain command parsing."""

    def test_defaults(self):
        args = CLI().parse_args(["toolchain"])

        assert args.name == "go"
        assert args.tool_version is None
        assert args.directory is None
        assert args.sha256 is None

    def test_options(self):
        args = CLI().parse_args(
            ["toolchain", "--tool-version", "1.21.0", "-d", "/opt/go", "-f", "--sha256", "ab" * 32]
        )

        assert args.tool_version == "1.21.0"
        assert args.directory == Path("/opt/go")
        assert args.force is True

"""
ProvisionKit CLI argument parser.

This module implements the command-line interface for ProvisionKit using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from provisionkit import __version__
from provisionkit.cli.utils import print_error
from provisionkit.core.exceptions import ProvisionKitError, UsageError

logger = logging.getLogger(__name__)


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting with code 2."""

    def error(self, message):
        raise UsageError(f"{self.prog}: {message}")


class CLI:
    """ProvisionKit command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = ArgumentParser(
            prog="pvkit",
            description="ProvisionKit - provision toolchains and source repositories",
            epilog='Use "pvkit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"ProvisionKit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ~/.provisionkit/config.yaml)",
        )
        parser.add_argument(
            "--log-file",
            type=Path,
            metavar="PATH",
            help="Step log file (default: ~/.provisionkit/logs/install-<kind>.log)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_toolchain_command(subparsers)
        self._add_repo_command(subparsers)

        return parser

    def _add_toolchain_command(self, subparsers):
        """Add 'toolchain' subcommand."""
        parser = subparsers.add_parser(
            "toolchain",
            help="Install a toolchain distribution",
            description=(
                "Download a toolchain distribution, install it system-wide, "
                "add it to PATH and verify it"
            ),
        )
        parser.add_argument(
            "--name",
            default="go",
            metavar="NAME",
            help="Toolchain descriptor to install (default: go)",
        )
        parser.add_argument(
            "--tool-version",
            metavar="VERSION",
            help="Version to install (default: latest)",
        )
        parser.add_argument(
            "-d",
            "--directory",
            type=Path,
            metavar="DIR",
            help="Installation directory (default: /usr/local/<name>)",
        )
        parser.add_argument(
            "-f",
            "--force",
            action="store_true",
            help="Force reinstall (remove existing installation)",
        )
        parser.add_argument(
            "--sha256",
            metavar="HEX",
            help="Expected SHA-256 of the distribution archive",
        )

    def _add_repo_command(self, subparsers):
        """Add 'repo' subcommand."""
        parser = subparsers.add_parser(
            "repo",
            help="Clone a source repository and optionally build it",
            description=(
                "Clone a repository, check out its latest release (or the "
                "development branch) and optionally build it"
            ),
            epilog=(
                "Examples:\n"
                "  pvkit repo URL                 # Clone into ~/<name>\n"
                "  pvkit repo URL -d /opt/app     # Clone into a custom directory\n"
                "  pvkit repo URL -f -b           # Force reinstall and build binary"
            ),
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        parser.add_argument(
            "url",
            nargs="?",
            metavar="URL",
            help="Repository URL (default: repository.url from config)",
        )
        parser.add_argument(
            "-d",
            "--directory",
            type=Path,
            metavar="DIR",
            help="Installation directory (default: ~/<repository name>)",
        )
        parser.add_argument(
            "-f",
            "--force",
            action="store_true",
            help="Force reinstall (remove existing installation)",
        )
        parser.add_argument(
            "-b", "--build", action="store_true", help="Build the binary after download"
        )
        parser.add_argument(
            "-r", "--ref", metavar="REF", help="Tag or branch to check out"
        )
        parser.add_argument(
            "--dev",
            action="store_true",
            help="Use the development branch instead of the latest release",
        )
        parser.add_argument(
            "--interactive",
            action="store_true",
            help="Ask which version to install",
        )
        parser.add_argument(
            "-y",
            "--yes",
            action="store_true",
            help="Answer yes to confirmation prompts",
        )
        parser.add_argument(
            "--binary-name",
            metavar="NAME",
            help="Name of the built executable (default: repository name)",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace

        Raises:
            UsageError: If the arguments are invalid
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        try:
            parsed_args = self.parse_args(args)
        except UsageError as e:
            self.parser.print_usage(sys.stderr)
            print_error(str(e))
            return 1

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except ProvisionKitError as e:
            print_error(str(e))
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "toolchain": "provisionkit.cli.commands.toolchain",
            "repo": "provisionkit.cli.commands.repo",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()

"""
hygeia CLI argument parser.

This module implements the command-line interface for hygeia using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from hygeia.core.about import __version__
from hygeia.core.exceptions import HygeiaError

logger = logging.getLogger(__name__)

SUPPORTED_SHELLS = ("bash", "zsh", "fish", "powershell")
COMPLETION_SHELLS = ("bash", "zsh", "fish")


class CLI:
    """hygeia command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="hygeia",
            description="hygeia - per-directory Python interpreter manager",
            epilog='Use "hygeia COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"hygeia {__version__}"
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

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_install_command(subparsers)
        self._add_use_command(subparsers)
        self._add_select_command(subparsers)
        self._add_list_command(subparsers)
        self._add_path_command(subparsers)
        self._add_version_command(subparsers)
        self._add_run_command(subparsers)
        self._add_setup_command(subparsers)
        self._add_autocomplete_command(subparsers)

        return parser

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        parser = subparsers.add_parser(
            "install",
            help="Install a Python interpreter",
            description=(
                "Download and install the latest Python release matching VERSION. "
                "Without VERSION, the requirement is read from the nearest "
                ".python-version file."
            ),
        )
        parser.add_argument(
            "requested_version",
            nargs="?",
            metavar="VERSION",
            help="Version requirement (e.g., 3.7.4, =3.7.4, ~3.7, 3, latest)",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Reinstall even if a matching interpreter is already installed",
        )
        parser.add_argument(
            "--select",
            action="store_true",
            help="Write the installed version to .python-version in the current directory",
        )
        parser.add_argument(
            "--release",
            action="store_true",
            help="Build with optimizations (--enable-optimizations, much slower)",
        )
        parser.add_argument(
            "--extra",
            action="store_true",
            help="Install extra packages listed in the default extra packages file",
        )
        parser.add_argument(
            "--extra-from",
            type=Path,
            metavar="FILE",
            help="Install extra packages listed in FILE (one per line)",
        )
        parser.add_argument(
            "--yes",
            "-y",
            action="store_true",
            help="Answer yes to every extra package question",
        )

    def _add_use_command(self, subparsers):
        """Add 'use' subcommand."""
        parser = subparsers.add_parser(
            "use",
            help="Select a version, installing it if needed",
            description=(
                "Select the installed interpreter matching VERSION for the current "
                "directory, installing the best match first if none is installed"
            ),
        )
        parser.add_argument(
            "requested_version",
            metavar="VERSION",
            help="Version requirement (e.g., 3.7.4, ~3.7, latest)",
        )

    def _add_select_command(self, subparsers):
        """Add 'select' subcommand."""
        parser = subparsers.add_parser(
            "select",
            help="Select an installed version or interpreter directory",
            description=(
                "Write .python-version in the current directory. Accepts a version "
                "requirement matching an installed interpreter, or a directory "
                "containing an interpreter"
            ),
        )
        parser.add_argument(
            "requested",
            metavar="VERSION_OR_PATH",
            help="Version requirement or interpreter directory",
        )

    def _add_list_command(self, subparsers):
        """Add 'list' subcommand."""
        subparsers.add_parser(
            "list",
            help="List installed interpreters",
            description="List managed and discovered Python interpreters",
        )

    def _add_path_command(self, subparsers):
        """Add 'path' subcommand."""
        parser = subparsers.add_parser(
            "path",
            help="Print the directory of the active interpreter",
            description="Print the binary directory of the interpreter selected for the current directory",
        )
        parser.add_argument(
            "--version",
            dest="requested_version",
            metavar="VERSION",
            help="Use the interpreter matching VERSION instead",
        )

    def _add_version_command(self, subparsers):
        """Add 'version' subcommand."""
        parser = subparsers.add_parser(
            "version",
            help="Print the version of the active interpreter",
            description="Print the version of the interpreter selected for the current directory",
        )
        parser.add_argument(
            "--version",
            dest="requested_version",
            metavar="VERSION",
            help="Use the interpreter matching VERSION instead",
        )

    def _add_run_command(self, subparsers):
        """Add 'run' subcommand."""
        parser = subparsers.add_parser(
            "run",
            help="Run a command with the active interpreter",
            description=(
                "Run COMMAND_LINE exactly like a shim would, with the selected "
                "interpreter first on PATH"
            ),
        )
        parser.add_argument(
            "--version",
            dest="requested_version",
            metavar="VERSION",
            help="Use the interpreter matching VERSION (must be installed)",
        )
        parser.add_argument(
            "command_line",
            metavar="COMMAND_LINE",
            help='Command line to run (quote it, e.g. "python -m pip list")',
        )

    def _add_setup_command(self, subparsers):
        """Add 'setup' subcommand."""
        parser = subparsers.add_parser(
            "setup",
            help="Install shims and configure a shell",
            description=(
                "Copy hygeia into the shims directory, create every shim, and add "
                "the shims directory to PATH in the shell's profile"
            ),
        )
        parser.add_argument(
            "shell",
            choices=SUPPORTED_SHELLS,
            metavar="SHELL",
            help=f"Shell to configure ({'|'.join(SUPPORTED_SHELLS)})",
        )

    def _add_autocomplete_command(self, subparsers):
        """Add 'autocomplete' subcommand."""
        parser = subparsers.add_parser(
            "autocomplete",
            help="Print a shell completion script",
            description="Print a completion script for SHELL to standard output",
        )
        parser.add_argument(
            "shell",
            choices=COMPLETION_SHELLS,
            metavar="SHELL",
            help=f"Shell to generate completions for ({'|'.join(COMPLETION_SHELLS)})",
        )

    def commands(self) -> List[Tuple[str, str]]:
        """(name, help) of every subcommand, in declaration order."""
        for action in self.parser._actions:
            if isinstance(action, argparse._SubParsersAction):
                return [(a.dest, a.help or "") for a in action._choices_actions]
        return []

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
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
        parsed_args = self.parse_args(args)

        # Configure logging
        self._configure_logging(parsed_args)

        # Check if command specified
        if not parsed_args.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except HygeiaError as e:
            logger.error(f"Error: {e}")
            return 1
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
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
        # Command module mapping
        command_map = {
            "install": "hygeia.cli.commands.install",
            "use": "hygeia.cli.commands.use",
            "select": "hygeia.cli.commands.select",
            "list": "hygeia.cli.commands.list",
            "path": "hygeia.cli.commands.path",
            "version": "hygeia.cli.commands.version",
            "run": "hygeia.cli.commands.run",
            "setup": "hygeia.cli.commands.setup",
            "autocomplete": "hygeia.cli.commands.autocomplete",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)

        # Call run() function in module
        if not hasattr(module, "run"):
            logger.error(f"Command module {module_name} has no run() function")
            return 1

        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()

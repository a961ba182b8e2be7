"""
Entry point for hygeia.

The same executable serves as the management CLI and as every shim: when
invoked under its own name (or as ``python -m hygeia``) it parses
subcommands, otherwise it dispatches the command it was invoked as.

Usage: python -m hygeia [command] [options]
"""

import sys
from pathlib import Path

from hygeia.toolchain.installed import EXECUTABLE_NAME


def is_cli_invocation(argv0: str) -> bool:
    """True when ``argv0`` names hygeia itself rather than a shim."""
    name = Path(argv0).name.lower()
    if name.endswith(".exe"):
        name = name[: -len(".exe")]
    return name.startswith(EXECUTABLE_NAME) or name == "__main__.py"


def main():
    """Main entry point for both the CLI and the shims."""
    argv0 = sys.argv[0] if sys.argv else EXECUTABLE_NAME

    if is_cli_invocation(argv0):
        from hygeia.cli.parser import main as cli_main

        cli_main()
        return

    from hygeia.shim.main import run_shim

    sys.exit(run_shim(argv0, sys.argv[1:]))


if __name__ == "__main__":
    main()

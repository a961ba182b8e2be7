"""
Autocomplete command implementation.

Prints a completion script for bash, zsh or fish that completes hygeia's
subcommands and falls back to file names for their arguments.
"""

import logging
from typing import List, Sequence, Tuple

from hygeia.toolchain.installed import EXECUTABLE_NAME

logger = logging.getLogger(__name__)

BASH_TEMPLATE = """\
# bash completion for {prog}
_{prog}_complete() {{
    local cur="${{COMP_WORDS[COMP_CWORD]}}"
    if [ "${{COMP_CWORD}}" -eq 1 ]; then
        COMPREPLY=( $(compgen -W "{commands}" -- "${{cur}}") )
    else
        COMPREPLY=( $(compgen -f -- "${{cur}}") )
    fi
}}
complete -F _{prog}_complete {prog}
"""

ZSH_TEMPLATE = """\
#compdef {prog}
_{prog}() {{
    local -a commands
    commands=(
{entries}
    )
    if (( CURRENT == 2 )); then
        _describe 'command' commands
    else
        _files
    fi
}}
compdef _{prog} {prog}
"""


def _zsh_entry(name: str, help_text: str) -> str:
    # Inside single quotes: close, escape, reopen. Colons separate name from help.
    escaped = help_text.replace("'", "'\\''").replace(":", "\\:")
    return f"        '{name}:{escaped}'"


def _fish_quote(text: str) -> str:
    return text.replace("\\", "\\\\").replace("'", "\\'")


def completion_script(shell: str, commands: Sequence[Tuple[str, str]]) -> str:
    """
    Build the completion script for ``shell``.

    Args:
        shell: ``bash``, ``zsh`` or ``fish``
        commands: (name, help) pairs of the subcommands

    Raises:
        ValueError: If ``shell`` is not supported
    """
    prog = EXECUTABLE_NAME
    if shell == "bash":
        return BASH_TEMPLATE.format(prog=prog, commands=" ".join(n for n, _ in commands))

    if shell == "zsh":
        entries = "\n".join(_zsh_entry(name, help_text) for name, help_text in commands)
        return ZSH_TEMPLATE.format(prog=prog, entries=entries)

    if shell == "fish":
        lines: List[str] = [f"# fish completion for {prog}", f"complete -c {prog} -f"]
        for name, help_text in commands:
            lines.append(
                f"complete -c {prog} -n '__fish_use_subcommand' "
                f"-a {name} -d '{_fish_quote(help_text)}'"
            )
        return "\n".join(lines) + "\n"

    raise ValueError(f"Unsupported shell for completion: {shell}")


def run(args) -> int:
    """
    Run the autocomplete command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    from hygeia.cli.parser import CLI

    print(completion_script(args.shell, CLI().commands()), end="")
    return 0

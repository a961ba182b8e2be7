"""
Setup command implementation.

Installs hygeia as the shim launcher and wires the shims directory into a
shell:

1. Copy the running ``hygeia`` executable into ``<home>/shims/``
2. Hard link it under every shim name (``python3``, ``pip2.7``, ...)
3. Write the default extra packages file if it is missing
4. Write ``<home>/shell/<shell>/`` (PATH setup and completions)
5. Add a marked block sourcing that configuration to the shell profile

Re-running setup replaces the marked block instead of adding a second one.
"""

import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Dict, List, Optional

from hygeia.cli.context import context_from_args
from hygeia.core.directory import HOME_ENV_VAR, PathsProvider
from hygeia.core.exceptions import ShimError
from hygeia.core.filesystem import atomic_write, executable_name
from hygeia.install.extras import write_default_extra_packages
from hygeia.toolchain.installed import EXECUTABLE_NAME

logger = logging.getLogger(__name__)

BLOCK_START = f"# >>> {EXECUTABLE_NAME} setup >>>"
BLOCK_END = f"# <<< {EXECUTABLE_NAME} setup <<<"

INITIALIZED_ENV_VAR = "HYGEIA_INITIALIZED"


# ============================================================================
# Launcher
# ============================================================================


def find_launcher(argv0: Optional[str] = None) -> Path:
    """
    Locate the hygeia executable to copy into the shims directory.

    Raises:
        ShimError: If it cannot be found
    """
    argv0 = argv0 if argv0 is not None else sys.argv[0]
    candidate = Path(argv0)
    if candidate.name.lower().startswith(EXECUTABLE_NAME) and candidate.is_file():
        return candidate.resolve()

    found = shutil.which(executable_name(EXECUTABLE_NAME))
    if found:
        return Path(found).resolve()
    raise ShimError(
        f"Cannot locate the {EXECUTABLE_NAME} executable; run setup through it, "
        f"not through 'python -m {EXECUTABLE_NAME}'"
    )


def install_launcher(source: Path, target: Path) -> bool:
    """Copy ``source`` to ``target``. Returns False when they are the same file."""
    if target.exists() and source.samefile(target):
        logger.debug(f"{target} is already the running launcher")
        return False
    if target.exists():
        # Shims are relinked to the new copy afterwards
        target.unlink()
    target.parent.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Copying {source} into {target}...")
    shutil.copy2(source, target)
    return True


# ============================================================================
# Shell Configuration
# ============================================================================


def shell_config_files(paths: PathsProvider, shell: str) -> Dict[str, Path]:
    """Files written under ``<home>/shell/<shell>/``."""
    directory = paths.shell() / shell
    if shell in ("bash", "zsh"):
        return {"config": directory / "config.sh", "completion": directory / "completion.sh"}
    if shell == "fish":
        return {"config": directory / "config.fish", "completion": directory / "completion.fish"}
    if shell == "powershell":
        return {"config": directory / "config.ps1"}
    raise ValueError(f"Unsupported shell: {shell}")


def shell_config(shell: str, completion_file: Optional[Path] = None) -> str:
    """
    Shell code putting the shims directory first on PATH.

    The shims directory is read from ``$HYGEIA_HOME``, which the profile
    block exports before sourcing this file.
    """
    if shell in ("bash", "zsh"):
        lines = [
            "# Add the hygeia shims directory to PATH, removing other occurrences of it.",
            f"if [ -z ${{{INITIALIZED_ENV_VAR}+x}} ]; then",
            f'    export PATH="${{{HOME_ENV_VAR}}}/shims:${{PATH//${{{HOME_ENV_VAR}}}\\/shims:/}}"',
            f"    export {INITIALIZED_ENV_VAR}=1",
            "fi",
        ]
        if completion_file is not None:
            lines.append(f'source "{completion_file}"')
        return "\n".join(lines) + "\n"

    if shell == "fish":
        lines = [
            "# Add the hygeia shims directory to PATH.",
            f'if not contains "${HOME_ENV_VAR}/shims" $PATH',
            f'    set -gx PATH "${HOME_ENV_VAR}/shims" $PATH',
            "end",
        ]
        if completion_file is not None:
            lines.append(f'source "{completion_file}"')
        return "\n".join(lines) + "\n"

    if shell == "powershell":
        return (
            "# Add the hygeia shims directory to PATH.\n"
            f'$hygeiaShims = Join-Path $env:{HOME_ENV_VAR} "shims"\n'
            "if (-not ($env:PATH -split ';' -contains $hygeiaShims)) {\n"
            '    $env:PATH = "$hygeiaShims;$env:PATH"\n'
            "}\n"
        )

    raise ValueError(f"Unsupported shell: {shell}")


def profile_block(shell: str, home: Path, config_file: Path) -> str:
    """The marked block added to a shell profile."""
    if shell == "fish":
        body = [f'set -gx {HOME_ENV_VAR} "{home}"', f'source "{config_file}"']
    elif shell == "powershell":
        body = [f'$env:{HOME_ENV_VAR} = "{home}"', f'. "{config_file}"']
    else:
        body = [f'export {HOME_ENV_VAR}="{home}"', f'source "{config_file}"']

    lines = [
        BLOCK_START,
        f"# These lines were added by '{EXECUTABLE_NAME} setup {shell}'.",
        *body,
        BLOCK_END,
    ]
    return "\n".join(lines) + "\n"


def replace_block(text: str, block: str) -> str:
    """
    Remove any existing marked block from ``text`` and append ``block``.

    Example:
        >>> replace_block("alias ll='ls -l'\\n", "# >>> hygeia setup >>>\\n...")
    """
    kept: List[str] = []
    inside = False
    for line in text.splitlines():
        stripped = line.strip()
        if stripped == BLOCK_START:
            inside = True
            continue
        if stripped == BLOCK_END:
            inside = False
            continue
        if not inside:
            kept.append(line)

    while kept and not kept[-1].strip():
        kept.pop()

    prefix = "\n".join(kept)
    if prefix:
        prefix += "\n\n"
    return prefix + block


def profile_files(shell: str, user_home: Path, environ: Optional[dict] = None) -> List[Path]:
    """
    Profiles to edit for ``shell``.

    Bash profiles are only edited when they exist; ``.bashrc`` is created when
    neither does. The other shells have a single profile, created if needed.
    """
    environ = os.environ if environ is None else environ
    if shell == "bash":
        existing = [user_home / name for name in (".bashrc", ".bash_profile") if (user_home / name).exists()]
        return existing or [user_home / ".bashrc"]
    if shell == "zsh":
        zdotdir = environ.get("ZDOTDIR")
        return [Path(zdotdir) / ".zshrc" if zdotdir else user_home / ".zshrc"]
    if shell == "fish":
        config_home = environ.get("XDG_CONFIG_HOME")
        base = Path(config_home) if config_home else user_home / ".config"
        return [base / "fish" / "config.fish"]
    if shell == "powershell":
        return [user_home / "Documents" / "WindowsPowerShell" / "Microsoft.PowerShell_profile.ps1"]
    raise ValueError(f"Unsupported shell: {shell}")


def update_profile(profile: Path, block: str) -> None:
    """Write ``block`` into ``profile`` (write-then-rename)."""
    current = profile.read_text(encoding="utf-8") if profile.exists() else ""
    logger.info(f"Adding configuration to {profile}...")
    atomic_write(profile, replace_block(current, block))


def write_shell_configuration(
    paths: PathsProvider, shell: str, user_home: Path, environ: Optional[dict] = None
) -> List[Path]:
    """
    Write ``<home>/shell/<shell>/`` and update the shell's profile files.

    Returns:
        The profile files that were edited
    """
    from hygeia.cli.commands.autocomplete import completion_script
    from hygeia.cli.parser import CLI

    files = shell_config_files(paths, shell)
    completion_file = files.get("completion")
    if completion_file is not None:
        atomic_write(completion_file, completion_script(shell, CLI().commands()))
    atomic_write(files["config"], shell_config(shell, completion_file))

    block = profile_block(shell, paths.home(), files["config"])
    edited = []
    for profile in profile_files(shell, user_home, environ):
        update_profile(profile, block)
        edited.append(profile)
    return edited


# ============================================================================
# Command
# ============================================================================


def run(args) -> int:
    """
    Run the setup command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    logger.debug("Setting up the shim...")
    context = context_from_args(args)
    paths = context.paths
    paths.ensure_structure()

    shim_links = context.shim_links()
    install_launcher(find_launcher(), shim_links.launcher)
    shim_links.install_all()

    extras_file = paths.default_extra_package_file()
    if write_default_extra_packages(extras_file):
        logger.info(f"Wrote default extra packages list to {extras_file}")

    edited = write_shell_configuration(paths, args.shell, Path.home())

    print(f"hygeia shims installed in {paths.shims()}")
    for profile in edited:
        print(f"  updated {profile}")
    print("Restart your shell (or source the profile) to use them.")
    return 0

"""Shell and git utilities.

Provides simple wrappers around subprocess calls for running shell commands,
git and gh operations, plus output formatting helpers.

Every command takes an explicit ``cwd``; nothing here changes the process
working directory.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

import click


def git(*args: str, cwd: Path | str | None = None, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "status", "--short").
        cwd: Directory to run git in. Defaults to the current directory.
        check: If True (default), raise on non-zero exit. Set to False
               for commands that may legitimately fail (e.g., tag lookup).

    Returns:
        Stripped stdout from the git command.
    """
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=check
    )
    return result.stdout.strip()


def gh(
    *args: str,
    cwd: Path | str | None = None,
    token: str | None = None,
    check: bool = True,
) -> str:
    """Run a GitHub CLI command and return stdout.

    The token, when given, is handed to gh through ``GH_TOKEN`` so it never
    shows up in the process list.

    Raises:
        subprocess.CalledProcessError: On non-zero exit when check is True.
            ``stderr`` carries gh's error text (e.g. "HTTP 404").
    """
    env = None
    if token:
        env = {**os.environ, "GH_TOKEN": token}
    result = subprocess.run(
        ["gh", *args], cwd=cwd, env=env, capture_output=True, text=True, check=check
    )
    return result.stdout.strip()


def run(
    *args: str, cwd: Path | str | None = None, check: bool = True
) -> subprocess.CompletedProcess[bytes]:
    """Run an arbitrary shell command.

    Unlike git(), this doesn't capture output - it streams directly to
    the terminal so users can see build and upload progress.

    Args:
        *args: Command and arguments (e.g., "uv", "build", "--out-dir", "dist").
        cwd: Directory to run the command in.
        check: If True (default), raise on non-zero exit.

    Returns:
        CompletedProcess with returncode for checking success.
    """
    return subprocess.run(args, cwd=cwd, check=check)


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of the release pipeline in terminal output.
    """
    click.echo(f"\n{'─' * 60}\n{click.style(msg, fg='blue')}\n{'─' * 60}")


def info(msg: str) -> None:
    click.echo(msg)


def warn(msg: str) -> None:
    click.echo(click.style(f"Warning: {msg}", fg="yellow"), err=True)


def error(msg: str) -> None:
    click.echo(click.style(f"ERROR: {msg}", fg="red"), err=True)


def dry_run_note(dry_run: bool, msg: str) -> None:
    """Print a note that only matters when rehearsing a release."""
    if dry_run:
        click.echo(click.style(f"  ℹ {msg}", fg="yellow"))


def echo_command(args: tuple[str, ...], cwd: Path | str) -> None:
    """Show a command about to be executed (rehearsal mode only)."""
    command = " ".join(args)
    click.echo(
        f"  {click.style('Execute:', fg='bright_black')} "
        f'"{click.style(command, fg="cyan")}" in "{cwd}".'
    )


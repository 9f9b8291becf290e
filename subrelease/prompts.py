"""Operator prompts."""

from __future__ import annotations

from collections.abc import Mapping

import click

from .models import ReleaseDetails, ReleaseOptions

MIN_TOKEN_LENGTH = 40


def _validate_token(value: str) -> str:
    value = value.strip()
    if len(value) < MIN_TOKEN_LENGTH:
        raise click.BadParameter("Please provide a valid token.")
    return value


def configure_release_options(token: str | None = None) -> ReleaseOptions:
    """Ask which targets to release on, and for a GitHub token if needed.

    A token passed in (e.g. from $GITHUB_TOKEN) is used without asking.
    """
    registry = click.confirm("Should we publish packages on the registry?", default=True)
    github = click.confirm("Should we create releases on GitHub?", default=True)

    if github and not token:
        token = click.prompt(
            "Provide the GitHub token", hide_input=True, value_proc=_validate_token
        )

    return ReleaseOptions(registry=registry, github=github, token=token)


def format_release_summary(packages: Mapping[str, ReleaseDetails]) -> str:
    """List the packages about to be released and where."""
    lines = ["Packages to release:"]
    for name in sorted(packages):
        details = packages[name]
        label = f'  * "{name}" as "v{details.version}"'
        if details.should_release_on_registry and details.should_release_on_host:
            lines.append(f"{label}.")
        elif details.should_release_on_registry:
            lines.append(f"{label} (only registry).")
        elif details.should_release_on_host:
            lines.append(f"{label} (only GitHub).")
    return "\n".join(lines)


def confirm_publishing(packages: Mapping[str, ReleaseDetails]) -> bool:
    click.echo(format_release_summary(packages))
    return click.confirm("Continue?", default=True)


def confirm_removing_files() -> bool:
    return click.confirm("Remove created archives?", default=True)


def provide_version(package_name: str, current: str, suggested: str) -> str:
    """Ask for the next version of a package, suggesting one."""
    return click.prompt(
        f'New version for "{package_name}" (current: {current})', default=suggested
    ).strip()

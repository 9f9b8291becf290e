"""CLI entry point for subrelease."""

from __future__ import annotations

from pathlib import Path

import click
from packaging.utils import canonicalize_name

from subrelease.changelog import (
    collect_package_commits,
    find_last_tag,
    generate_changelog_for_subpackages,
    get_repository_url,
)
from subrelease.commits import display_commits, get_commits, get_new_release_type
from subrelease.discovery import get_sub_repositories_paths, read_package
from subrelease.errors import SubreleaseError
from subrelease.models import ReleaseConfig, TransformContext
from subrelease.outcome import exit_code
from subrelease.pipeline import release_sub_repositories
from subrelease.toml import get_release_config, load_pyproject

CWD_OPTION = click.option(
    "--cwd",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Repository root holding the main package.",
)
PACKAGES_OPTION = click.option(
    "--packages",
    default=None,
    help="Directory with sub-packages, relative to --cwd. [default: packages]",
)
SKIP_OPTION = click.option(
    "--skip-package",
    "skip_packages",
    multiple=True,
    help="Glob pattern on package names to leave out (repeatable).",
)


def load_config(cwd: Path, **overrides: object) -> ReleaseConfig:
    """Read [tool.subrelease] and apply CLI options that were given."""
    pyproject = cwd / "pyproject.toml"
    if not pyproject.exists():
        raise click.ClickException("No pyproject.toml found in the repository root.")

    try:
        config = get_release_config(load_pyproject(pyproject))
    except SubreleaseError as exc:
        raise click.ClickException(str(exc)) from exc

    # Options left unset on the command line keep the file's value.
    updates = {
        key: list(value) if isinstance(value, tuple) else value
        for key, value in overrides.items()
        if value not in (None, ())
    }
    return config.model_copy(update=updates)


@click.group()
@click.version_option(package_name="subrelease")
def cli() -> None:
    """Release the packages of a monorepo and keep their changelogs."""


@cli.command()
@CWD_OPTION
@PACKAGES_OPTION
@SKIP_OPTION
@click.option(
    "--skip-main-repository/--no-skip-main-repository",
    default=None,
    help="Leave the package in --cwd out of the release.",
)
@click.option(
    "--empty-release",
    "empty_releases",
    multiple=True,
    help="Package to publish from an empty directory (repeatable).",
)
@click.option("--branch", default=None, help="Branch pushed with the tags. [default: master]")
@click.option("--registry-url", default=None, help="PyPI-compatible JSON API base URL.")
@click.option(
    "--token",
    envvar="GITHUB_TOKEN",
    default=None,
    help="GitHub token. Asked for when GitHub releases are requested.",
)
@click.option("--dry-run", is_flag=True, help="Build archives instead of publishing anything.")
def release(
    cwd: Path,
    packages: str | None,
    skip_packages: tuple[str, ...],
    skip_main_repository: bool | None,
    empty_releases: tuple[str, ...],
    branch: str | None,
    registry_url: str | None,
    token: str | None,
    dry_run: bool,
) -> None:
    """Publish changed packages on the registry and on GitHub."""
    config = load_config(
        cwd,
        packages=packages,
        skip_packages=skip_packages,
        skip_main_repository=skip_main_repository,
        empty_releases=empty_releases,
        branch=branch,
        registry_url=registry_url,
    )
    outcome = release_sub_repositories(cwd, config, dry_run=dry_run, token=token)
    raise SystemExit(exit_code(outcome))


@cli.command()
@CWD_OPTION
@PACKAGES_OPTION
@SKIP_OPTION
@click.option("--from", "from_ref", default=None, help="Tag or commit to start from.")
@click.option("--yes", "assume_yes", is_flag=True, help="Accept the suggested versions.")
@click.option("--no-bump", is_flag=True, help="Do not write new versions to pyproject.toml.")
def changelog(
    cwd: Path,
    packages: str | None,
    skip_packages: tuple[str, ...],
    from_ref: str | None,
    assume_yes: bool,
    no_bump: bool,
) -> None:
    """Write changelog entries for sub-packages from the git history."""
    config = load_config(cwd, packages=packages, skip_packages=skip_packages)
    try:
        versions = generate_changelog_for_subpackages(
            cwd,
            config.packages,
            skip_packages=config.skip_packages,
            from_ref=from_ref,
            assume_yes=assume_yes,
            bump=not no_bump,
        )
    except SubreleaseError as exc:
        raise click.ClickException(str(exc)) from exc

    if not versions:
        click.echo("\nNo package has new commits.")
        return
    click.echo("\nUpdated:")
    for name, version in versions.items():
        click.echo(f"  {name} {version}")


@cli.command()
@click.argument("package")
@CWD_OPTION
@PACKAGES_OPTION
@click.option("--from", "from_ref", default=None, help="Tag or commit to start from.")
def commits(cwd: Path, package: str, packages: str | None, from_ref: str | None) -> None:
    """Show how commits since the last tag are classified for PACKAGE."""
    config = load_config(cwd, packages=packages)
    cwd = cwd.resolve()

    wanted = canonicalize_name(package)
    paths = get_sub_repositories_paths(cwd, config.packages, skip_main_repository=True)
    records = [read_package(path) for path in paths.matched]
    record = next((r for r in records if r.name == wanted), None)
    if record is None:
        raise click.ClickException(f'Package "{package}" not found in {config.packages}/.')

    from_ref = from_ref or find_last_tag(cwd)
    context = TransformContext(
        packages_dir=config.packages,
        repository_url=get_repository_url(cwd),
        return_invalid_commit=True,
        cwd=cwd,
    )
    transformed = collect_package_commits(record, get_commits(cwd, from_ref), context)

    click.echo(f'Commits for "{record.name}" since {from_ref or "the beginning"}:')
    display_commits(transformed)
    included = [c for c in transformed if c.classification == "included"]
    click.echo(f"\nSuggested release type: {get_new_release_type(included)}")

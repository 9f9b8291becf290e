"""Release pipeline: discover → compare → confirm → publish → push → release.

This module orchestrates the release of every package in a monorepo:
1. Ask which targets to release on (registry, GitHub)
2. Read the version and changelog of each package
3. Compare the declared versions with the registry and with GitHub releases
4. Ask the operator to confirm
5. Prepare empty directories for packages released without their sources
6. Publish on the registry (build + upload)
7. Push the version tags
8. Create GitHub releases
9. Remove temporary directories and, when rehearsing, the built archives

Steps run one after another and each package is handled in turn. All
commands receive the package directory explicitly; the process working
directory is never changed.

In dry-run mode nothing is published: archives are built instead of
uploaded, pushes and GitHub releases are only reported, and every command
is echoed before it runs.
"""

from __future__ import annotations

import shutil
import tempfile
import traceback
from dataclasses import dataclass, field
from pathlib import Path

import click
from packaging.utils import canonicalize_name

from .changelog import get_changes_for_version
from .discovery import get_sub_repositories_paths, read_package
from .errors import GitHubApiError
from .github import create_release, get_latest_release, get_repository_coordinates, release_url
from .models import PackageRecord, PathsCollection, ReleaseConfig, ReleaseDetails, ReleaseOptions
from .outcome import Aborted, Failed, NothingToRelease, Released, ReleaseOutcome
from .prompts import configure_release_options, confirm_publishing, confirm_removing_files
from .registry import get_registry_version
from .shell import dry_run_note, echo_command, error, info, run, step, warn
from .toml import get_project_table, load_pyproject, write_release_manifest
from .versions import normalize_version, should_release

TEMPLATES_DIR = Path(__file__).parent / "templates"
RELEASE_MANIFEST_TEMPLATE = TEMPLATES_DIR / "release-pyproject.toml"
EMPTY_RELEASE_DIR_PREFIX = ".release-directory-"

# Copied from the real package into an empty release directory.
ADDITIONAL_FILES = ("CHANGELOG.md", "LICENSE.md", "README.md")


@dataclass
class RunContext:
    """Everything a release run knows and collects.

    Attributes:
        cwd: Repository root.
        config: Settings from [tool.subrelease] merged with CLI options.
        paths: Discovered package directories.
        dry_run: Rehearse instead of publishing.
        token: GitHub token given up front; asked for when missing.
        options: Targets picked by the operator.
        records: Package read from each matched directory.
        packages: Release details per package name.
        releases_on_registry: Directories to publish as they are.
        empty_releases_on_registry: Empty release directory → real package
            directory.
        releases_on_github: Directories to push and release on GitHub.
        released_packages: Directories released on at least one target.
        files_to_remove: Archives built in dry-run mode.
    """

    cwd: Path
    config: ReleaseConfig
    paths: PathsCollection
    dry_run: bool = False
    token: str | None = None
    options: ReleaseOptions = field(default_factory=ReleaseOptions)
    records: dict[Path, PackageRecord] = field(default_factory=dict)
    packages: dict[str, ReleaseDetails] = field(default_factory=dict)
    releases_on_registry: list[Path] = field(default_factory=list)
    empty_releases_on_registry: dict[Path, Path] = field(default_factory=dict)
    releases_on_github: list[Path] = field(default_factory=list)
    released_packages: set[Path] = field(default_factory=set)
    files_to_remove: list[Path] = field(default_factory=list)

    def details(self, path: Path) -> ReleaseDetails:
        return self.packages[self.records[path].name]


def execute(ctx: RunContext, *args: str, cwd: Path) -> None:
    """Run a command, echoing it first when rehearsing."""
    if ctx.dry_run:
        echo_command(args, cwd)
    run(*args, cwd=cwd)


def display_skipped_packages(skipped: list[Path]) -> None:
    if not skipped:
        return
    info("Packages that will not be released:")
    for path in skipped:
        info(f"  * {path}")


def prepare_packages(ctx: RunContext) -> None:
    """Read version, changelog and GitHub coordinates of every package."""
    step("Preparing packages that will be released")
    display_skipped_packages(ctx.paths.skipped)

    for path in ctx.paths.matched:
        record = read_package(path)
        details = ReleaseDetails(
            version=record.version,
            changes=get_changes_for_version(record.version, path),
        )
        ctx.records[path] = record
        ctx.packages[record.name] = details

        if ctx.options.github:
            owner, name = get_repository_coordinates(path)
            details.repository_owner = owner
            details.repository_name = name

        info(f"  {record.name} {record.version} ({path})")


def filter_packages_to_release_on_registry(ctx: RunContext) -> None:
    """Mark packages whose version differs from the registry's."""
    if not ctx.options.registry:
        return

    step("Collecting the latest versions published on the registry")

    for path in ctx.paths.matched:
        record = ctx.records[path]
        details = ctx.details(path)
        info(f'\nChecking "{record.name}"...')

        registry_version = get_registry_version(record.name, ctx.config.registry_url)
        dry_run_note(
            ctx.dry_run,
            f'Versions: pyproject.toml: "{details.version}", '
            f'registry: "{registry_version or "initial release"}".',
        )

        details.registry_version = registry_version
        details.should_release_on_registry = should_release(details.version, registry_version)

        if details.should_release_on_registry:
            dry_run_note(ctx.dry_run, "Package will be released.")
            ctx.releases_on_registry.append(path)
        else:
            info("  Nothing to release.")


def filter_packages_to_release_on_github(ctx: RunContext) -> None:
    """Mark packages whose version differs from the latest GitHub release.

    A failed query skips the package on GitHub; the run goes on.
    """
    if not ctx.options.github:
        return

    step("Collecting the latest releases published on GitHub")

    for path in ctx.paths.matched:
        record = ctx.records[path]
        details = ctx.details(path)
        info(f'\nChecking "{record.name}"...')

        try:
            tag = get_latest_release(
                details.repository_owner, details.repository_name, ctx.options.token
            )
        except GitHubApiError as exc:
            warn(f"Cannot check GitHub releases of {record.name}: {exc}")
            continue

        hosted_version = normalize_version(tag) if tag else None
        dry_run_note(
            ctx.dry_run,
            f'Versions: pyproject.toml: "{details.version}", '
            f'GitHub: "{hosted_version or "initial release"}".',
        )

        details.hosted_version = hosted_version
        details.should_release_on_host = should_release(details.version, hosted_version)

        if details.should_release_on_host:
            dry_run_note(ctx.dry_run, "Package will be published.")
            ctx.releases_on_github.append(path)
        else:
            info("  Nothing to publish.")


def confirm_release(ctx: RunContext) -> ReleaseOutcome | None:
    """Ask the operator to go ahead.

    Returns:
        NothingToRelease or Aborted to stop the run, None to continue.
    """
    if not ctx.releases_on_registry and not ctx.releases_on_github:
        return NothingToRelease()

    step("Should we continue?")
    pending = {
        name: details
        for name, details in ctx.packages.items()
        if details.should_release_on_registry or details.should_release_on_host
    }
    if not confirm_publishing(pending):
        return Aborted()
    return None


def prepare_directories_for_empty_releases(ctx: RunContext) -> None:
    """Replace packages listed in empty_releases with bare directories.

    Each directory gets a pyproject.toml made from the bundled template,
    the package's overrides and its own [project] table, plus the files
    listed in ADDITIONAL_FILES.
    """
    if not ctx.options.registry:
        return

    empty_releases = {canonicalize_name(name) for name in ctx.config.empty_releases}
    overrides = {
        canonicalize_name(name): values
        for name, values in ctx.config.empty_release_overrides.items()
    }

    step("Preparing directories for empty releases")

    for path in list(ctx.releases_on_registry):
        record = ctx.records[path]
        if record.name not in empty_releases:
            continue

        info(f'\nPreparing "{record.name}"...')

        tmp_dir = Path(tempfile.mkdtemp(prefix=EMPTY_RELEASE_DIR_PREFIX, dir=path))
        ctx.releases_on_registry.remove(path)
        ctx.empty_releases_on_registry[tmp_dir] = path

        for name in ADDITIONAL_FILES:
            dry_run_note(ctx.dry_run, f"Copying {name} to {tmp_dir}")
            shutil.copyfile(path / name, tmp_dir / name)

        dry_run_note(ctx.dry_run, "Updating pyproject.toml...")
        write_release_manifest(
            RELEASE_MANIFEST_TEMPLATE,
            tmp_dir / "pyproject.toml",
            overrides.get(record.name, {}),
            get_project_table(load_pyproject(path / "pyproject.toml")),
        )


def release_packages_on_registry(ctx: RunContext) -> None:
    """Build and upload every registry candidate.

    In dry-run mode the archives are only built, moved next to the real
    package and recorded in files_to_remove.
    """
    if not ctx.options.registry:
        return

    step("Publishing on the registry")

    for path in [*ctx.empty_releases_on_registry, *ctx.releases_on_registry]:
        real_path = ctx.empty_releases_on_registry.get(path, path)
        record = read_package(path)

        info(f'\nPublishing "{record.name}" as "v{record.version}"...')
        dry_run_note(
            ctx.dry_run,
            "Do not panic. DRY RUN mode is active. "
            "Archives with the release will be created instead.",
        )

        with tempfile.TemporaryDirectory(prefix="subrelease-dist-") as out_dir:
            execute(ctx, "uv", "build", str(path), "--out-dir", out_dir, cwd=path)
            archives = sorted(Path(out_dir).iterdir())

            if ctx.dry_run:
                for archive in archives:
                    dest = real_path / archive.name
                    shutil.move(str(archive), dest)
                    ctx.files_to_remove.append(dest)
            else:
                execute(ctx, "uv", "publish", *map(str, archives), cwd=path)

        ctx.released_packages.add(real_path)


def push_packages(ctx: RunContext) -> None:
    """Push the branch and the version tag of every GitHub candidate."""
    step("Pushing packages to the remote")

    for path in ctx.releases_on_github:
        record = ctx.records[path]
        details = ctx.details(path)
        info(f'\nPushing "{record.name}" package...')

        command = ("git", "push", "origin", ctx.config.branch, f"v{details.version}")
        if ctx.dry_run:
            dry_run_note(ctx.dry_run, f'Command: "{" ".join(command)}" would be executed.')
        else:
            execute(ctx, *command, cwd=path)


def create_releases_on_github(ctx: RunContext) -> None:
    """Create a GitHub release for every candidate.

    A failed release is reported and the package skipped.
    """
    if not ctx.options.github:
        return

    step("Creating releases on GitHub")

    for path in ctx.releases_on_github:
        record = ctx.records[path]
        details = ctx.details(path)
        info(f'\nCreating a GitHub release for "{record.name}"...')

        url = release_url(details.repository_owner, details.repository_name, details.version)
        dry_run_note(ctx.dry_run, f"Created release will be available under: {url}")

        if ctx.dry_run:
            continue

        try:
            create_release(
                ctx.options.token,
                details.repository_owner,
                details.repository_name,
                f"v{details.version}",
                details.changes,
            )
        except GitHubApiError as exc:
            info("  Cannot create a release on GitHub. Skipping that package.")
            error(str(exc))
            continue

        ctx.released_packages.add(path)
        info(f"  Created the release: {click.style(url, fg='green')}")


def remove_temporary_directories(ctx: RunContext) -> None:
    if not ctx.options.registry or not ctx.empty_releases_on_registry:
        return

    step("Removing temporary directories created for empty releases")

    for tmp_dir in ctx.empty_releases_on_registry:
        dry_run_note(ctx.dry_run, f"Removing {tmp_dir}")
        shutil.rmtree(tmp_dir)


def remove_release_archives(ctx: RunContext) -> None:
    """Offer to delete the archives built in dry-run mode."""
    if not ctx.options.registry or not ctx.dry_run:
        return

    step("Removing archives created by the dry run")

    if not confirm_removing_files():
        dry_run_note(ctx.dry_run, "You can remove these files manually by calling `git clean -f`.")
        return

    for archive in ctx.files_to_remove:
        archive.unlink(missing_ok=True)


def run_release_pipeline(ctx: RunContext) -> ReleaseOutcome:
    """Run every stage on a prepared context.

    Errors propagate; release_sub_repositories() turns them into Failed.
    """
    dry_run_note(ctx.dry_run, "DRY RUN mode")
    dry_run_note(ctx.dry_run, "The script WILL NOT publish anything but will create some files.")
    step("Configuring the release")

    ctx.options = configure_release_options(ctx.token)
    if not ctx.options.registry and not ctx.options.github:
        return Aborted()

    prepare_packages(ctx)
    filter_packages_to_release_on_registry(ctx)
    filter_packages_to_release_on_github(ctx)

    stop = confirm_release(ctx)
    if stop is not None:
        return stop

    try:
        prepare_directories_for_empty_releases(ctx)
        release_packages_on_registry(ctx)
        push_packages(ctx)
        create_releases_on_github(ctx)
    finally:
        remove_temporary_directories(ctx)
    remove_release_archives(ctx)

    return Released(count=len(ctx.released_packages))


def release_sub_repositories(
    cwd: Path,
    config: ReleaseConfig,
    *,
    dry_run: bool = False,
    token: str | None = None,
) -> ReleaseOutcome:
    """Release every package of the monorepo rooted at ``cwd``.

    Args:
        cwd: Repository root.
        config: Release settings.
        dry_run: Build archives instead of publishing; report pushes and
                 GitHub releases without doing them.
        token: GitHub token; asked for interactively when missing.

    Returns:
        Released, Aborted, NothingToRelease, or Failed with the cause.
    """
    try:
        ctx = RunContext(
            cwd=cwd.resolve(),
            config=config,
            paths=get_sub_repositories_paths(
                cwd,
                config.packages,
                config.skip_packages,
                config.skip_main_repository,
            ),
            dry_run=dry_run,
            token=token,
        )
        outcome = run_release_pipeline(ctx)
    except click.Abort:
        outcome = Aborted()
    except Exception as exc:
        error("".join(traceback.format_exception(exc)) if dry_run else str(exc))
        return Failed(exc)

    match outcome:
        case Aborted():
            step("Publishing has been aborted.")
        case NothingToRelease():
            step("There is nothing to release. The process was aborted.")
        case Released(count):
            step(f"Finished releasing {count} packages.")
            dry_run_note(
                dry_run,
                "Because of the DRY RUN mode, nothing has been changed. "
                "All changes were reverted.",
            )
    return outcome

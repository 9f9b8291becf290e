"""Changelog reading and generation.

Each package keeps a CHANGELOG.md made of version sections::

    Changelog
    =========

    ## [1.1.0](https://github.com/acme/widgets/compare/v1.0.0...v1.1.0) (2024-05-02)

    ### Features

    * Added the thing. ([684997d](https://github.com/acme/widgets/commit/684997d...))

The section of the version being released becomes the GitHub release
description.
"""

from __future__ import annotations

import re
import subprocess
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from .commits import (
    SHORT_HASH_LENGTH,
    TYPE_TITLES,
    display_commits,
    get_commits,
    get_new_release_type,
    transform_commit_for_subpackage,
)
from .discovery import get_sub_repositories_paths, read_package
from .github import get_repository_coordinates
from .models import CommitRecord, NormalizedCommit, PackageRecord, TransformContext
from .prompts import provide_version
from .shell import git, info, step, warn
from .toml import set_project_version
from .versions import bump_version

CHANGELOG_FILE = "CHANGELOG.md"
CHANGELOG_HEADER = "Changelog\n=========\n\n"
NOTE_SECTIONS = ("BREAKING CHANGES", "NOTE")
INTERNAL_CHANGES_ONLY = (
    "Internal changes only (updated dependencies, documentation, etc.)."
)


def get_changelog(cwd: Path) -> str | None:
    path = cwd / CHANGELOG_FILE
    if not path.is_file():
        return None
    return path.read_text()


def save_changelog(cwd: Path, section: str) -> None:
    """Insert a version section right after the changelog header.

    Creates CHANGELOG.md when the package has none.
    """
    content = get_changelog(cwd) or CHANGELOG_HEADER
    if content.startswith(CHANGELOG_HEADER):
        rest = content[len(CHANGELOG_HEADER) :]
    else:
        rest = content
    new_content = CHANGELOG_HEADER + section.rstrip("\n") + "\n"
    if rest.strip():
        new_content += "\n\n" + rest.lstrip("\n")
    (cwd / CHANGELOG_FILE).write_text(new_content)


def get_changes_for_version(version: str, cwd: Path) -> str | None:
    """Return the body of one version's section in CHANGELOG.md.

    Returns None when there is no changelog or no section for the version.
    """
    changelog = get_changelog(cwd)
    if changelog is None:
        return None

    version = version.removeprefix("v")
    changelog = "\n" + changelog.replace(CHANGELOG_HEADER, "\n", 1)
    match = re.search(
        rf"\n(## \[?{re.escape(version)}\]?[\s\S]+?)(?:\n## \[?|\Z)", changelog
    )
    if not match:
        return None
    return re.sub(r"##[^\n]+\n", "", match.group(1), count=1).strip() or None


def render_changelog_entries(
    version: str,
    commits: Iterable[NormalizedCommit],
    *,
    previous_version: str | None = None,
    repository_url: str | None = None,
    date: str | None = None,
) -> str:
    """Render a version section from included commits.

    Commits are grouped by type in the order Features, Bug fixes, Other
    changes, followed by breaking changes and notes.
    """
    date = date or datetime.now(timezone.utc).strftime("%Y-%m-%d")
    commits = [c for c in commits if c.classification == "included"]

    if repository_url and previous_version:
        compare = f"{repository_url}/compare/v{previous_version}...v{version}"
        lines = [f"## [{version}]({compare}) ({date})", ""]
    else:
        lines = [f"## {version} ({date})", ""]

    if not commits:
        lines.append(INTERNAL_CHANGES_ONLY)
        return "\n".join(lines) + "\n"

    for title in TYPE_TITLES.values():
        group = [c for c in commits if c.type == title]
        if not group:
            continue
        lines += [f"### {title}", ""]
        for commit in group:
            lines.append(f"* {commit.subject or commit.header} ({_commit_link(commit, repository_url)})")
        lines.append("")

    for title in NOTE_SECTIONS:
        notes = [note for c in commits for note in c.notes if note.title == title]
        if not notes:
            continue
        lines += [f"### {title}", ""]
        lines += [f"* {note.text}" for note in notes]
        lines.append("")

    return "\n".join(lines).rstrip("\n") + "\n"


def _commit_link(commit: NormalizedCommit, repository_url: str | None) -> str:
    short_hash = (commit.hash or "")[:SHORT_HASH_LENGTH]
    if not repository_url:
        return short_hash
    return f"[{short_hash}]({repository_url}/commit/{commit.hash})"


def find_last_tag(cwd: Path) -> str | None:
    """Most recent tag reachable from HEAD, or None for a fresh repository."""
    return git("describe", "--tags", "--abbrev=0", cwd=cwd, check=False) or None


def get_repository_url(cwd: Path) -> str | None:
    try:
        owner, name = get_repository_coordinates(cwd)
    except (subprocess.CalledProcessError, ValueError):
        warn("No GitHub remote found; commit links will be left out.")
        return None
    return f"https://github.com/{owner}/{name}"


def collect_package_commits(
    package: PackageRecord,
    commits: Iterable[CommitRecord],
    context: TransformContext,
) -> list[NormalizedCommit]:
    """Transform commits for one package, dropping those that do not apply.

    Files are matched against the package's real directory, which may be
    spelled differently from its canonical name (``packages/My_Widgets``
    for ``my-widgets``).
    """
    if context.cwd is not None:
        package_dir = package.directory.relative_to(context.cwd.resolve()).as_posix()
    else:
        package_dir = f"{context.packages_dir.strip('/')}/{package.directory.name}"
    context = context.model_copy(
        update={"package_name": package.name, "package_dir": package_dir}
    )
    transformed = (transform_commit_for_subpackage(c, context) for c in commits)
    return [c for c in transformed if c is not None]


def generate_changelog_for_package(
    package: PackageRecord,
    commits: list[CommitRecord],
    context: TransformContext,
    *,
    assume_yes: bool = False,
    bump: bool = True,
) -> str | None:
    """Write a new CHANGELOG.md section for one package.

    Returns:
        The new version, or None when no commit touched the package.
    """
    info(f'\nGenerating changelog for "{package.name}"...')
    display_context = context.model_copy(update={"return_invalid_commit": True})
    all_commits = collect_package_commits(package, commits, display_context)
    if not all_commits:
        info("  No commits touched this package.")
        return None
    display_commits(all_commits)

    included = [c for c in all_commits if c.classification == "included"]
    suggested = bump_version(package.version, get_new_release_type(included))
    version = suggested if assume_yes else provide_version(package.name, package.version, suggested)

    section = render_changelog_entries(
        version,
        included,
        previous_version=package.version,
        repository_url=context.repository_url,
    )
    save_changelog(package.directory, section)
    info(f"  Saved {CHANGELOG_FILE} for v{version}")

    if bump:
        set_project_version(package.directory / "pyproject.toml", version)
        info(f"  {package.name}: {package.version} → {version}")

    return version


def generate_changelog_for_subpackages(
    cwd: Path,
    packages: str,
    *,
    skip_packages: list[str] | None = None,
    from_ref: str | None = None,
    assume_yes: bool = False,
    bump: bool = True,
) -> dict[str, str]:
    """Generate changelog sections for every sub-package with new commits.

    Args:
        cwd: Repository root.
        packages: Directory with sub-packages, relative to ``cwd``.
        skip_packages: Glob patterns on package names to leave out.
        from_ref: Only consider commits after this ref. Defaults to the
                  most recent tag.
        assume_yes: Accept suggested versions without asking.
        bump: Also write the new version to each package's pyproject.toml.

    Returns:
        Map of package name → new version for every updated package.
    """
    step("Generating changelogs")

    cwd = cwd.resolve()
    from_ref = from_ref or find_last_tag(cwd)
    info(f"  Commits since: {from_ref or '<beginning of history>'}")

    commits = get_commits(cwd, from_ref)
    context = TransformContext(
        packages_dir=packages,
        repository_url=get_repository_url(cwd),
        cwd=cwd,
    )
    paths = get_sub_repositories_paths(
        cwd, packages, skip_packages, skip_main_repository=True
    )

    versions: dict[str, str] = {}
    for path in paths.matched:
        package = read_package(path)
        version = generate_changelog_for_package(
            package, commits, context, assume_yes=assume_yes, bump=bump
        )
        if version:
            versions[package.name] = version
    return versions

"""Commit parsing, classification and display.

Commits follow the ``Type: Subject.`` convention. ``Feature``, ``Fix`` and
``Other`` commits end up in changelogs; ``Docs``, ``Internal``, ``Tests`` and
the like are internal and skipped; anything else is invalid.

Two transformers turn a CommitRecord into a NormalizedCommit (or None when
the commit does not belong in the changelog):

- transform_commit() for a repository holding a single package,
- transform_commit_for_subpackage() for one package of a monorepo; it also
  drops commits that did not touch the package's directory.

Neither of them modifies the record it is given.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path

import click

from .models import (
    Classification,
    CommitRecord,
    NormalizedCommit,
    NoteRecord,
    TransformContext,
)
from .shell import git, info
from .versions import ReleaseType

# Commit type → whether it goes to the changelog.
AVAILABLE_COMMIT_TYPES: dict[str, bool] = {
    "Feature": True,
    "Fix": True,
    "Other": True,
    "Code style": False,
    "Docs": False,
    "Internal": False,
    "Tests": False,
    "Revert": False,
    "Release": False,
}

# Changelog section title for each included type.
TYPE_TITLES: dict[str, str] = {
    "Feature": "Features",
    "Fix": "Bug fixes",
    "Other": "Other changes",
}

NOTE_KEYWORDS = ("BREAKING CHANGES", "BREAKING CHANGE", "NOTE")
BREAKING_NOTE_TITLES = {"BREAKING CHANGE", "BREAKING CHANGES"}
PUBLISH_HEADER = "Publish"
SHORT_HASH_LENGTH = 7
MAX_HEADER_LENGTH = 100
INDENT_SIZE = 2

LOG_FORMAT = "%B%n-hash-%n%H%n-end-"

_HEADER_PATTERN = re.compile(r"^([^:]+): (.*)$")
_MERGE_PATTERN = re.compile(r"^Merge .*$")
_NOTE_PATTERN = re.compile(
    r"^(" + "|".join(re.escape(k) for k in NOTE_KEYWORDS) + r"):\s*(.*)$"
)
_ISSUE_PATTERN = re.compile(r"(?<![\w\[])#(\d+)")


def parse_commit(raw: str) -> CommitRecord:
    """Parse one ``git log --format=LOG_FORMAT`` record.

    A leading ``Merge ...`` line is stored as ``merge`` and the next line
    becomes the header. When a merge commit has no second line, the merge
    line is the header too.
    """
    message, _, hash_part = raw.partition("\n-hash-\n")
    lines = message.strip("\n").splitlines()

    merge = None
    if lines and _MERGE_PATTERN.match(lines[0]):
        merge = lines.pop(0)
        while lines and not lines[0].strip():
            lines.pop(0)

    header = lines.pop(0) if lines else merge
    commit_type = subject = None
    if header:
        match = _HEADER_PATTERN.match(header)
        if match:
            commit_type, subject = match.group(1), match.group(2)

    body_lines: list[str] = []
    footer_lines: list[str] = []
    notes: list[NoteRecord] = []
    for line in lines:
        note_match = _NOTE_PATTERN.match(line)
        if note_match:
            notes.append(NoteRecord(title=note_match.group(1), text=note_match.group(2)))
            footer_lines.append(line)
        elif notes:
            notes[-1].text = f"{notes[-1].text}\n{line}".strip()
            footer_lines.append(line)
        else:
            body_lines.append(line)

    return CommitRecord(
        hash=hash_part.strip() or None,
        header=header,
        type=commit_type,
        subject=subject,
        body="\n".join(body_lines).strip() or None,
        footer="\n".join(footer_lines).strip() or None,
        notes=notes,
        merge=merge,
    )


def get_commits(cwd: Path, from_ref: str | None = None) -> list[CommitRecord]:
    """Read commits reachable from HEAD, newest first.

    Args:
        cwd: Repository root.
        from_ref: Only list commits after this tag or commit.
    """
    rev_range = f"{from_ref}..HEAD" if from_ref else "HEAD"
    output = git("log", rev_range, f"--format={LOG_FORMAT}", cwd=cwd)
    records = re.split(r"^-end-$", output, flags=re.MULTILINE)
    return [parse_commit(record) for record in records if record.strip()]


def get_changed_files_for_commit(commit_hash: str | None, cwd: Path | None = None) -> list[str]:
    """List files touched by a commit (both parents for merges)."""
    if not commit_hash:
        return []
    output = git(
        "log", "-m", "-1", "--name-only", "--pretty=format:", commit_hash, cwd=cwd
    )
    return [line.strip() for line in output.splitlines() if line.strip()]


def package_directory_name(package_name: str) -> str:
    """Directory name of a package: its name without a ``scope/`` prefix."""
    if "/" in package_name:
        return package_name.split("/", 1)[1]
    return package_name


def package_path_prefix(context: TransformContext) -> str:
    """Prefix shared by the repository paths of every file in the package.

    Ends with "/" so that ``packages/pkg-a`` does not claim files of
    ``packages/pkg-ab``. The repository root yields "" (every file).
    """
    if context.package_dir is not None:
        directory = context.package_dir.strip("/")
    else:
        name = package_directory_name(context.package_name)
        directory = f"{context.packages_dir.strip('/')}/{name}"
    if directory in ("", "."):
        return ""
    return f"{directory}/"


def classify(commit_type: str | None) -> Classification:
    if commit_type not in AVAILABLE_COMMIT_TYPES:
        return "invalid"
    return "included" if AVAILABLE_COMMIT_TYPES[commit_type] else "skipped"


def truncate(sentence: str, length: int) -> str:
    """Shorten a sentence to ``length`` characters, ending with "..."."""
    if len(sentence) <= length:
        return sentence
    return sentence[: length - 3].strip() + "..."


def format_commit_line(commit: NormalizedCommit, indent: str = "", color: bool = False) -> str:
    """One-line summary of a commit, plus the merge line for merges.

    Example:
        * 684997d "Fix: Simple fix." INCLUDED
    """
    short_hash = (commit.hash or "")[:SHORT_HASH_LENGTH]
    label = commit.classification.upper()
    if color:
        short_hash = click.style(short_hash, fg="yellow")
        label = click.style(
            label,
            fg={"included": "green", "skipped": "bright_black", "invalid": "red"}[
                commit.classification
            ],
        )

    line = f'{indent}* {short_hash} "{truncate(commit.header or "", MAX_HEADER_LENGTH)}" {label}'
    # Avoid displaying the merge line twice.
    if commit.merge and commit.merge != commit.header:
        line += f"\n{indent}{' ' * INDENT_SIZE}{commit.merge}"
    return line


def display_commits(commits: Iterable[NormalizedCommit], indent_level: int = 1) -> None:
    """Print one entry per commit with its classification."""
    indent = " " * (INDENT_SIZE * indent_level)
    commits = list(commits)
    if not commits:
        info(indent + "No commits to display.")
        return
    for commit in commits:
        info(format_commit_line(commit, indent=indent, color=True))


def _link_issues(text: str, repository_url: str) -> str:
    return _ISSUE_PATTERN.sub(
        lambda m: f"[#{m.group(1)}]({repository_url}/issues/{m.group(1)})", text
    )


def _prepare(raw: CommitRecord) -> NormalizedCommit | None:
    """Copy a commit and apply the rules shared by both transformers."""
    commit = NormalizedCommit.model_validate(raw.model_dump())

    # Automated version bump commits.
    if not commit.type and commit.header == PUBLISH_HEADER and commit.body:
        return None

    # A merge commit made by git has no second line, so the parser reads
    # the hash as the body.
    if commit.merge and not commit.hash:
        commit.hash = commit.body
        commit.header = commit.merge
        commit.body = None

    return commit


def transform_commit(
    raw: CommitRecord, context: TransformContext | None = None
) -> NormalizedCommit | None:
    """Turn a commit into a changelog entry.

    Returns None when the commit should not be added to the changelog.
    Skipped and invalid commits are returned anyway (without any changelog
    formatting) when ``context.return_invalid_commit`` is set.
    """
    context = context or TransformContext()
    commit = _prepare(raw)
    if commit is None:
        return None

    commit.raw_type = commit.type
    commit.classification = classify(commit.type)
    commit.display = format_commit_line(commit)

    if commit.classification != "included":
        return commit if context.return_invalid_commit else None

    commit.type = TYPE_TITLES[commit.raw_type]

    for note in commit.notes:
        if note.title == "BREAKING CHANGE":
            note.title = "BREAKING CHANGES"

    if context.repository_url:
        if commit.subject:
            commit.subject = _link_issues(commit.subject, context.repository_url)
        for note in commit.notes:
            note.text = _link_issues(note.text, context.repository_url)

    return commit


def transform_commit_for_subpackage(
    raw: CommitRecord, context: TransformContext
) -> NormalizedCommit | None:
    """Turn a commit into a changelog entry of one monorepo package.

    The commit is kept only if at least one of its files lies inside the
    package's directory (``context.package_dir``, or
    ``<packages_dir>/<package directory>`` when that is unset). Otherwise
    behaves like transform_commit().
    """
    commit = _prepare(raw)
    if commit is None:
        return None

    files = get_changed_files_for_commit(commit.hash, cwd=context.cwd)
    prefix = package_path_prefix(context)
    if not any(path.startswith(prefix) for path in files):
        return None

    return transform_commit(commit, context)


def get_new_release_type(commits: Iterable[CommitRecord]) -> ReleaseType:
    """Pick the release type the commits call for.

    major if any commit carries a breaking change note, minor if any commit
    is a feature, patch otherwise.
    """
    has_features = False
    for commit in commits:
        if any(note.title in BREAKING_NOTE_TITLES for note in commit.notes):
            return "major"
        commit_type = commit.raw_type if isinstance(commit, NormalizedCommit) else commit.type
        if commit_type == "Feature":
            has_features = True
    return "minor" if has_features else "patch"

"""Data models for subrelease.

These Pydantic models represent the core data structures used throughout
the release pipeline and the changelog tools.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Classification = Literal["included", "skipped", "invalid"]


class PackageRecord(BaseModel):
    """A package discovered in the monorepo.

    Attributes:
        name: Canonical (PEP 503) package name from pyproject.toml.
        directory: Absolute path to the package directory.
        version: Version declared in pyproject.toml.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    directory: Path
    version: str


class PathsCollection(BaseModel):
    """Package directories found by discovery.

    Attributes:
        matched: Directories that take part in the run, in discovery order.
        skipped: Directories excluded by the skip list or by
                 ``skip_main_repository``.
    """

    matched: list[Path] = Field(default_factory=list)
    skipped: list[Path] = Field(default_factory=list)


class ReleaseDetails(BaseModel):
    """What the sequencer knows about one package.

    Filled in progressively: version and changes first, then the remote
    versions and the release decisions, then the GitHub coordinates.
    """

    version: str
    changes: str | None = None
    registry_version: str | None = None
    hosted_version: str | None = None
    should_release_on_registry: bool = False
    should_release_on_host: bool = False
    repository_owner: str | None = None
    repository_name: str | None = None


class ReleaseOptions(BaseModel):
    """Targets picked by the operator for this run."""

    registry: bool = False
    github: bool = False
    token: str | None = None


class ReleaseConfig(BaseModel):
    """Settings from ``[tool.subrelease]`` in the root pyproject.toml."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    packages: str = "packages"
    skip_packages: list[str] = Field(default_factory=list, alias="skip-packages")
    skip_main_repository: bool = Field(default=False, alias="skip-main-repository")
    empty_releases: list[str] = Field(default_factory=list, alias="empty-releases")
    empty_release_overrides: dict[str, dict[str, Any]] = Field(
        default_factory=dict, alias="empty-release-overrides"
    )
    branch: str = "master"
    registry_url: str = Field(default="https://pypi.org/pypi", alias="registry-url")


class NoteRecord(BaseModel):
    """A commit footer note such as ``BREAKING CHANGE: ...``."""

    title: str
    text: str


class CommitRecord(BaseModel):
    """A parsed git commit.

    ``merge`` holds the ``Merge ...`` line for merge commits. ``hash`` may be
    missing for merge commits whose message has no second line.
    """

    hash: str | None = None
    header: str | None = None
    type: str | None = None
    subject: str | None = None
    body: str | None = None
    footer: str | None = None
    notes: list[NoteRecord] = Field(default_factory=list)
    merge: str | None = None


class NormalizedCommit(CommitRecord):
    """A commit ready for the changelog.

    Attributes:
        raw_type: The commit type as written in the header.
        classification: Whether the commit goes to the changelog
                        (included), is internal (skipped), or does not
                        follow the commit convention (invalid).
        display: One-line summary; two lines for merge commits whose
                 merge line differs from the header.
    """

    raw_type: str | None = None
    classification: Classification = "invalid"
    display: str = ""


class TransformContext(BaseModel):
    """Settings for the commit transformers.

    Attributes:
        package_name: Package whose changelog is being built.
        package_dir: Directory of that package relative to the repository
                     root, in POSIX form. When unset it is derived from
                     ``packages_dir`` and ``package_name``.
        packages_dir: Directory holding sub-packages, relative to the
                      repository root.
        repository_url: ``https://github.com/<owner>/<repo>``; used to link
                        issue references when set.
        return_invalid_commit: Return skipped and invalid commits instead of
                               dropping them.
        cwd: Repository root for git queries.
    """

    package_name: str = ""
    package_dir: str | None = None
    packages_dir: str = "packages"
    repository_url: str | None = None
    return_invalid_commit: bool = False
    cwd: Path | None = None

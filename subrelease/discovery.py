"""Package discovery and metadata.

Finds the root package and every sub-package under ``<cwd>/<packages>`` and
reads their names and versions from pyproject.toml.
"""

from __future__ import annotations

from fnmatch import fnmatchcase
from pathlib import Path

from .errors import ManifestNotFoundError
from .models import PackageRecord, PathsCollection
from .toml import get_project_name, get_project_version, load_pyproject


def read_package(directory: Path) -> PackageRecord:
    """Read name and version of the package in ``directory``.

    Raises:
        ManifestNotFoundError: If the directory has no pyproject.toml.
    """
    pyproject = directory / "pyproject.toml"
    if not pyproject.is_file():
        raise ManifestNotFoundError(directory)

    doc = load_pyproject(pyproject)
    return PackageRecord(
        name=get_project_name(doc, directory.name),
        directory=directory.resolve(),
        version=get_project_version(doc),
    )


def is_skipped(package_name: str, skip_packages: list[str]) -> bool:
    """Check a package name against glob patterns such as ``"*-internal"``."""
    return any(fnmatchcase(package_name, pattern) for pattern in skip_packages)


def get_sub_repositories_paths(
    cwd: Path,
    packages: str,
    skip_packages: list[str] | None = None,
    skip_main_repository: bool = False,
) -> PathsCollection:
    """Collect the directories of all packages taking part in a release.

    The root package (``cwd`` itself) comes first, followed by sub-packages
    in alphabetical order of their directory names. Directories without a
    pyproject.toml are not packages and are ignored.

    Args:
        cwd: Repository root; holds the main package.
        packages: Directory with sub-packages, relative to ``cwd``.
        skip_packages: Glob patterns on package names to leave out.
        skip_main_repository: Leave the root package out.

    Returns:
        Matched and skipped directories.
    """
    skip_packages = skip_packages or []
    collection = PathsCollection()
    cwd = cwd.resolve()

    main_name = read_package(cwd).name
    if skip_main_repository or is_skipped(main_name, skip_packages):
        collection.skipped.append(cwd)
    else:
        collection.matched.append(cwd)

    packages_path = cwd / packages
    if not packages_path.is_dir():
        return collection

    for directory in sorted(p for p in packages_path.iterdir() if p.is_dir()):
        if not (directory / "pyproject.toml").is_file():
            continue
        name = read_package(directory).name
        if is_skipped(name, skip_packages):
            collection.skipped.append(directory)
        else:
            collection.matched.append(directory)

    return collection

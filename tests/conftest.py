"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
import tomlkit

from subrelease.models import CommitRecord


def write_package(directory: Path, name: str, version: str, extra: str = "") -> Path:
    """Create a package directory with a minimal pyproject.toml."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "pyproject.toml").write_text(
        f'[project]\nname = "{name}"\nversion = "{version}"\n{extra}'
    )
    return directory


@pytest.fixture
def monorepo(tmp_path: Path) -> Path:
    """A repository with a main package and two sub-packages.

    Layout:
        pyproject.toml              (umbrella 3.0.0)
        packages/pkg-a              (pkg-a 1.0.0)
        packages/pkg-b              (pkg-b 2.0.0)
        packages/not-a-package      (no pyproject.toml)
    """
    write_package(tmp_path, "umbrella", "3.0.0")
    write_package(tmp_path / "packages" / "pkg-a", "pkg-a", "1.0.0")
    write_package(tmp_path / "packages" / "pkg-b", "pkg-b", "2.0.0")
    (tmp_path / "packages" / "not-a-package").mkdir()
    return tmp_path


@pytest.fixture
def sample_toml_doc() -> tomlkit.TOMLDocument:
    """Create a sample TOML document."""
    content = """\
[project]
name = "My_Package"
version = "2.0.0"
description = "A package."
license = "MIT"

[tool.subrelease]
packages = "libs"
skip-packages = ["*-internal"]
empty-releases = ["my-package"]

[tool.subrelease.empty-release-overrides.my-package]
description = "Custom description"
"""
    return tomlkit.parse(content)


@pytest.fixture
def fix_commit() -> CommitRecord:
    return CommitRecord(
        hash="684997d0eb2eca76b9e058fb1c3fa00b50059cdc",
        header="Fix: Simple fix.",
        type="Fix",
        subject="Simple fix.",
    )

"""TOML reading and writing utilities.

Uses tomlkit to preserve formatting and comments when modifying pyproject.toml
files. This is important for maintaining readable, diff-friendly files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
from packaging.utils import canonicalize_name
from pydantic import ValidationError

from .errors import ConfigError
from .models import ReleaseConfig


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a pyproject.toml file.

    Returns a TOMLDocument that preserves formatting when modified and saved.
    """
    return tomlkit.parse(path.read_text())


def save_pyproject(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, preserving original formatting."""
    path.write_text(tomlkit.dumps(doc))


def get_project_table(doc: tomlkit.TOMLDocument) -> dict[str, Any]:
    """Return [project] as plain Python values (empty dict when missing)."""
    project = doc.get("project")
    if project is None:
        return {}
    return project.unwrap()


def get_project_name(doc: tomlkit.TOMLDocument, fallback: str) -> str:
    """Extract the canonical package name from [project].name.

    Names are normalized per PEP 503 (lowercase, hyphens instead of
    underscores) for consistent comparison.

    Args:
        doc: Parsed pyproject.toml document.
        fallback: Value to return if name is not specified.
    """
    return canonicalize_name(doc.get("project", {}).get("name", fallback))


def get_project_version(doc: tomlkit.TOMLDocument) -> str:
    """Extract version from [project].version, defaulting to '0.0.0'."""
    return doc.get("project", {}).get("version", "0.0.0")


def set_project_version(path: Path, new_version: str) -> None:
    """Rewrite [project].version in place, keeping the rest of the file."""
    doc = load_pyproject(path)
    doc["project"]["version"] = new_version
    save_pyproject(path, doc)


def get_release_config(doc: tomlkit.TOMLDocument) -> ReleaseConfig:
    """Read [tool.subrelease] from the root pyproject.toml.

    A missing table yields the defaults.

    Raises:
        ConfigError: If the table holds unknown keys or values of the
            wrong type.
    """
    table = doc.get("tool", {}).get("subrelease")
    raw = table.unwrap() if table is not None else {}
    try:
        return ReleaseConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid [tool.subrelease] configuration:\n{exc}") from exc


def synthesize_manifest(
    template: dict[str, Any],
    overrides: dict[str, Any],
    source: dict[str, Any],
) -> dict[str, Any]:
    """Build the [project] table of an empty release.

    Overrides are applied on top of the template first. Every field that is
    still empty afterwards is then copied from the real package's [project]
    table. Empty fields the real package does not define are dropped.

    An override with an empty value ("" or {}) adds a field the template
    lacks and lets it be copied from the real package.

    Example:
        template = {"name": "", "version": "", "description": ""}
        overrides = {"description": "X"}
        source = {"name": "pkg", "version": "1.0.0", "description": "orig"}
        → {"name": "pkg", "version": "1.0.0", "description": "X"}
    """
    project = dict(template)
    project.update(overrides)

    for key, value in list(project.items()):
        if value:
            continue
        if key in source:
            project[key] = source[key]
        else:
            del project[key]

    return project


def write_release_manifest(
    template_path: Path,
    dest: Path,
    overrides: dict[str, Any],
    source: dict[str, Any],
) -> None:
    """Write an empty release's pyproject.toml based on a template.

    Sections other than [project] (build system, build backend settings)
    come from the template untouched.
    """
    doc = load_pyproject(template_path)
    project = synthesize_manifest(get_project_table(doc), overrides, source)
    doc["project"] = project
    save_pyproject(dest, doc)

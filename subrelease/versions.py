"""Version parsing, comparison and bumping utilities.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0").
"""

from __future__ import annotations

from typing import Literal

import semver

ReleaseType = Literal["major", "minor", "patch"]


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "v1.2.3" → "1.2.3"

    Only the first 3 components are used (major.minor.patch).
    Prerelease/build metadata is not supported.
    """
    parts = normalize_version(version_str).split(".")
    # Pad with zeros to ensure we have at least 3 parts
    while len(parts) < 3:
        parts.append("0")
    return semver.Version.parse(".".join(parts[:3]))


def normalize_version(version_str: str) -> str:
    """Strip surrounding whitespace and a leading "v" from a version or tag."""
    version_str = version_str.strip()
    if version_str.startswith("v"):
        return version_str[1:]
    return version_str


def should_release(declared: str, remote: str | None) -> bool:
    """Decide whether a target needs a release of the declared version.

    There is no ordering here: any difference triggers a release, including
    a declared version lower than the published one. ``None`` means the
    target has never seen a release of the package.

    Examples:
        should_release("2.0.0", "1.9.0") → True
        should_release("2.0.0", "v2.0.0") → False
        should_release("2.0.0", None) → True
    """
    if remote is None:
        return True
    return normalize_version(remote) != normalize_version(declared)


def bump_version(version_str: str, release_type: ReleaseType) -> str:
    """Increment a version according to the release type.

    Examples:
        bump_version("1.2.3", "patch") → "1.2.4"
        bump_version("1.2.3", "minor") → "1.3.0"
        bump_version("1.2", "major") → "2.0.0"
    """
    version = parse_version(version_str)
    if release_type == "major":
        return str(version.bump_major())
    if release_type == "minor":
        return str(version.bump_minor())
    return str(version.bump_patch())

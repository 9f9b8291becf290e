"""Exceptions raised by subrelease.

Anything deriving from SubreleaseError is fatal for a release run. The one
exception meant to be caught per package is GitHubApiError: a failed GitHub
query or release creation skips that package and the run goes on.
"""

from __future__ import annotations

from pathlib import Path


class SubreleaseError(Exception):
    """Base class for subrelease errors."""


class ConfigError(SubreleaseError):
    """Invalid [tool.subrelease] configuration."""


class ManifestNotFoundError(SubreleaseError):
    """A package directory has no pyproject.toml."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        super().__init__(f"No pyproject.toml found in {directory}")


class RegistryError(SubreleaseError):
    """The package registry could not be queried."""

    def __init__(self, url: str, status: int, message: str) -> None:
        self.url = url
        self.status = status
        self.message = message
        if status:
            super().__init__(f"HTTP {status}: {message} ({url})")
        else:
            super().__init__(f"{message} ({url})")


class GitHubApiError(SubreleaseError):
    """A GitHub API call failed."""


class GitHubNotFoundError(GitHubApiError):
    """The GitHub API answered 404."""

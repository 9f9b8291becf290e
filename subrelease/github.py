"""GitHub repository coordinates and releases.

Release queries and creation go through ``gh api`` so authentication,
proxies and GitHub Enterprise hosts behave the same as in the gh CLI.
"""

from __future__ import annotations

import json
import re
import subprocess
from pathlib import Path

from .errors import GitHubApiError, GitHubNotFoundError
from .shell import gh, git

# git@github.com:owner/repo.git, ssh://git@github.com/owner/repo,
# https://github.com/owner/repo.git, git+https://...
_REMOTE_PATTERN = re.compile(
    r"^(?:[\w+.-]+://)?(?:[^@/]+@)?(?P<host>[^:/]+)[:/]"
    r"(?P<owner>[^/]+)/(?P<name>[^/]+?)(?:\.git)?/?$"
)


def parse_github_url(url: str) -> tuple[str, str]:
    """Extract (owner, repository name) from a git remote URL.

    Raises:
        ValueError: If the URL does not look like a repository URL.

    Examples:
        "git@github.com:acme/widgets.git" → ("acme", "widgets")
        "https://github.com/acme/widgets" → ("acme", "widgets")
    """
    match = _REMOTE_PATTERN.match(url.strip())
    if not match:
        raise ValueError(f"Cannot parse repository URL: {url!r}")
    return match.group("owner"), match.group("name")


def get_repository_coordinates(directory: Path) -> tuple[str, str]:
    """Return (owner, name) of the ``origin`` push remote of a checkout."""
    return parse_github_url(git("remote", "get-url", "origin", "--push", cwd=directory))


def release_url(owner: str, name: str, version: str) -> str:
    return f"https://github.com/{owner}/{name}/releases/tag/v{version}"


def _api(*args: str, token: str | None) -> str:
    """Call ``gh api`` and translate failures.

    Raises:
        GitHubNotFoundError: On HTTP 404.
        GitHubApiError: On any other failure.
    """
    try:
        return gh("api", *args, token=token)
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        if "HTTP 404" in stderr or "Not Found" in stderr:
            raise GitHubNotFoundError(stderr) from exc
        raise GitHubApiError(stderr or f"gh api {' '.join(args)} failed") from exc
    except FileNotFoundError as exc:
        raise GitHubApiError("gh: missing. Install GitHub CLI: https://cli.github.com/") from exc


def get_latest_release(owner: str, name: str, token: str | None = None) -> str | None:
    """Return the tag of the latest release, or None if there is none yet.

    Raises:
        GitHubApiError: If the API cannot be queried.
    """
    try:
        output = _api(f"repos/{owner}/{name}/releases/latest", token=token)
    except GitHubNotFoundError:
        return None

    try:
        data = json.loads(output)
    except json.JSONDecodeError as exc:
        raise GitHubApiError(f"Invalid JSON from GitHub: {exc}") from exc
    return data.get("tag_name") or None


def create_release(
    token: str | None, owner: str, name: str, tag: str, description: str | None
) -> str:
    """Create a GitHub release for an existing tag.

    Returns:
        The release page URL reported by GitHub.

    Raises:
        GitHubApiError: If the release could not be created.
    """
    output = _api(
        "-X",
        "POST",
        f"repos/{owner}/{name}/releases",
        "-f",
        f"tag_name={tag}",
        "-f",
        f"name={tag}",
        "-f",
        f"body={description or ''}",
        token=token,
    )
    try:
        return json.loads(output).get("html_url", "")
    except json.JSONDecodeError:
        return ""

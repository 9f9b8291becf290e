"""Tests for subrelease.github."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from subrelease.errors import GitHubApiError
from subrelease.github import (
    create_release,
    get_latest_release,
    get_repository_coordinates,
    parse_github_url,
    release_url,
)


class TestParseGithubUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "git@github.com:acme/widgets.git",
            "https://github.com/acme/widgets",
            "https://github.com/acme/widgets.git",
            "ssh://git@github.com/acme/widgets",
            "git+https://github.com/acme/widgets.git",
        ],
    )
    def test_supported_urls(self, url: str) -> None:
        """SSH and HTTPS remotes are understood."""
        assert parse_github_url(url) == ("acme", "widgets")

    def test_invalid_url(self) -> None:
        """Anything else raises ValueError."""
        with pytest.raises(ValueError, match="Cannot parse"):
            parse_github_url("widgets")


@patch("subrelease.github.git")
def test_get_repository_coordinates(mock_git: MagicMock, tmp_path: Path) -> None:
    """The push URL of origin is parsed."""
    mock_git.return_value = "git@github.com:acme/widgets.git"

    assert get_repository_coordinates(tmp_path) == ("acme", "widgets")
    mock_git.assert_called_once_with("remote", "get-url", "origin", "--push", cwd=tmp_path)


def test_release_url() -> None:
    """The URL points at the version tag."""
    assert release_url("acme", "widgets", "1.0.0") == (
        "https://github.com/acme/widgets/releases/tag/v1.0.0"
    )


class TestGetLatestRelease:
    @patch("subrelease.github.gh")
    def test_latest_tag(self, mock_gh: MagicMock) -> None:
        """The tag of the latest release is returned."""
        mock_gh.return_value = json.dumps({"tag_name": "v1.0.0"})

        assert get_latest_release("acme", "widgets", "token") == "v1.0.0"
        mock_gh.assert_called_once_with(
            "api", "repos/acme/widgets/releases/latest", token="token"
        )

    @patch("subrelease.github.gh")
    def test_no_release_yet(self, mock_gh: MagicMock) -> None:
        """A 404 means no release yet."""
        mock_gh.side_effect = subprocess.CalledProcessError(
            1, ["gh"], stderr="gh: Not Found (HTTP 404)"
        )

        assert get_latest_release("acme", "widgets") is None

    @patch("subrelease.github.gh")
    def test_api_failure(self, mock_gh: MagicMock) -> None:
        """Other errors are raised."""
        mock_gh.side_effect = subprocess.CalledProcessError(
            1, ["gh"], stderr="gh: Bad credentials (HTTP 401)"
        )

        with pytest.raises(GitHubApiError, match="Bad credentials"):
            get_latest_release("acme", "widgets")

    @patch("subrelease.github.gh")
    def test_gh_missing(self, mock_gh: MagicMock) -> None:
        """A missing gh binary is reported."""
        mock_gh.side_effect = FileNotFoundError("gh")

        with pytest.raises(GitHubApiError, match="gh: missing"):
            get_latest_release("acme", "widgets")


class TestCreateRelease:
    @patch("subrelease.github.gh")
    def test_creates_release(self, mock_gh: MagicMock) -> None:
        """The release is created for the tag with the changes as body."""
        mock_gh.return_value = json.dumps(
            {"html_url": "https://github.com/acme/widgets/releases/tag/v1.0.0"}
        )

        url = create_release("token", "acme", "widgets", "v1.0.0", "### Features")

        assert url == "https://github.com/acme/widgets/releases/tag/v1.0.0"
        args = mock_gh.call_args[0]
        assert args[:4] == ("api", "-X", "POST", "repos/acme/widgets/releases")
        assert "tag_name=v1.0.0" in args
        assert "body=### Features" in args
        assert mock_gh.call_args[1] == {"token": "token"}

    @patch("subrelease.github.gh")
    def test_release_without_changes(self, mock_gh: MagicMock) -> None:
        """Missing changes give an empty body."""
        mock_gh.return_value = "{}"

        create_release("token", "acme", "widgets", "v1.0.0", None)

        assert "body=" in mock_gh.call_args[0]

    @patch("subrelease.github.gh")
    def test_failure(self, mock_gh: MagicMock) -> None:
        """A rejected release is raised."""
        mock_gh.side_effect = subprocess.CalledProcessError(
            1, ["gh"], stderr="gh: Validation Failed (HTTP 422)"
        )

        with pytest.raises(GitHubApiError):
            create_release("token", "acme", "widgets", "v1.0.0", "")

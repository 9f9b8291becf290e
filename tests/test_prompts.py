"""Tests for subrelease.prompts."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import click
import pytest

from subrelease.models import ReleaseDetails
from subrelease.prompts import (
    _validate_token,
    configure_release_options,
    format_release_summary,
    provide_version,
)

TOKEN = "ghp_" + "x" * 36


class TestConfigureReleaseOptions:
    @patch("subrelease.prompts.click.prompt")
    @patch("subrelease.prompts.click.confirm")
    def test_asks_for_token(self, mock_confirm: MagicMock, mock_prompt: MagicMock) -> None:
        """The token is asked for with hidden input."""
        mock_confirm.side_effect = [True, True]
        mock_prompt.return_value = TOKEN

        options = configure_release_options()

        assert options.registry and options.github
        assert options.token == TOKEN
        assert mock_prompt.call_args[1]["hide_input"] is True

    @patch("subrelease.prompts.click.prompt")
    @patch("subrelease.prompts.click.confirm")
    def test_uses_given_token(self, mock_confirm: MagicMock, mock_prompt: MagicMock) -> None:
        """A given token is not asked for."""
        mock_confirm.side_effect = [False, True]

        options = configure_release_options(TOKEN)

        assert not options.registry
        assert options.token == TOKEN
        mock_prompt.assert_not_called()

    @patch("subrelease.prompts.click.prompt")
    @patch("subrelease.prompts.click.confirm")
    def test_registry_only(self, mock_confirm: MagicMock, mock_prompt: MagicMock) -> None:
        """Without GitHub, no token is needed."""
        mock_confirm.side_effect = [True, False]

        options = configure_release_options()

        assert options.registry and not options.github
        assert options.token is None
        mock_prompt.assert_not_called()


class TestValidateToken:
    def test_valid(self) -> None:
        """Surrounding whitespace is stripped."""
        assert _validate_token(f"  {TOKEN}\n") == TOKEN

    def test_too_short(self) -> None:
        """Short tokens are rejected."""
        with pytest.raises(click.BadParameter, match="valid token"):
            _validate_token("short")


def test_format_release_summary() -> None:
    """Packages are sorted and their targets noted."""
    packages = {
        "pkg-b": ReleaseDetails(version="2.0.1", should_release_on_host=True),
        "pkg-a": ReleaseDetails(
            version="1.1.0", should_release_on_registry=True, should_release_on_host=True
        ),
        "umbrella": ReleaseDetails(version="3.0.0", should_release_on_registry=True),
    }

    assert format_release_summary(packages) == (
        "Packages to release:\n"
        '  * "pkg-a" as "v1.1.0".\n'
        '  * "pkg-b" as "v2.0.1" (only GitHub).\n'
        '  * "umbrella" as "v3.0.0" (only registry).'
    )


@patch("subrelease.prompts.click.prompt")
def test_provide_version(mock_prompt: MagicMock) -> None:
    """The suggested version is the default."""
    mock_prompt.return_value = " 1.2.0 "

    assert provide_version("pkg-a", "1.1.0", "1.1.1") == "1.2.0"
    assert mock_prompt.call_args[1]["default"] == "1.1.1"

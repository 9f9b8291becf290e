"""Tests for subrelease.toml."""

from __future__ import annotations

from pathlib import Path

import pytest
import tomlkit

from subrelease.errors import ConfigError
from subrelease.pipeline import RELEASE_MANIFEST_TEMPLATE
from subrelease.toml import (
    get_project_name,
    get_project_table,
    get_project_version,
    get_release_config,
    load_pyproject,
    save_pyproject,
    set_project_version,
    synthesize_manifest,
    write_release_manifest,
)


class TestLoadSavePyproject:
    def test_save_preserves_content(self, tmp_path: Path) -> None:
        """Comments survive a save."""
        path = tmp_path / "pyproject.toml"
        path.write_text('# keep me\n[project]\nname = "pkg"\nversion = "1.0.0"\n')

        doc = load_pyproject(path)
        doc["project"]["version"] = "9.9.9"
        save_pyproject(path, doc)

        assert "# keep me" in path.read_text()
        assert get_project_version(load_pyproject(path)) == "9.9.9"

    def test_set_project_version(self, tmp_path: Path) -> None:
        """Only the version changes."""
        path = tmp_path / "pyproject.toml"
        path.write_text('[project]\nname = "pkg"\nversion = "1.0.0"\n')

        set_project_version(path, "1.1.0")

        reloaded = load_pyproject(path)
        assert get_project_version(reloaded) == "1.1.0"
        assert get_project_name(reloaded, "") == "pkg"


class TestGetProjectFields:
    def test_normalizes_name(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        """Names are canonicalized."""
        assert get_project_name(sample_toml_doc, "fallback") == "my-package"

    def test_returns_fallback_when_no_project(self) -> None:
        """Without [project], the fallback is used."""
        assert get_project_name(tomlkit.parse(""), "fallback") == "fallback"

    def test_version_defaults(self) -> None:
        """A missing version is 0.0.0."""
        assert get_project_version(tomlkit.parse("[project]")) == "0.0.0"

    def test_project_table_is_plain_dict(
        self, sample_toml_doc: tomlkit.TOMLDocument
    ) -> None:
        """The table is unwrapped to plain values."""
        table = get_project_table(sample_toml_doc)
        assert table["license"] == "MIT"
        assert type(table) is dict

    def test_project_table_missing(self) -> None:
        """A missing table is empty."""
        assert get_project_table(tomlkit.parse("")) == {}


class TestGetReleaseConfig:
    def test_reads_kebab_case_keys(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        """Kebab-case keys map to fields."""
        config = get_release_config(sample_toml_doc)

        assert config.packages == "libs"
        assert config.skip_packages == ["*-internal"]
        assert config.empty_releases == ["my-package"]
        assert config.empty_release_overrides == {
            "my-package": {"description": "Custom description"}
        }

    def test_defaults_without_table(self) -> None:
        """A missing table yields the defaults."""
        config = get_release_config(tomlkit.parse('[project]\nname = "x"'))

        assert config.packages == "packages"
        assert config.skip_packages == []
        assert config.skip_main_repository is False
        assert config.branch == "master"
        assert config.registry_url == "https://pypi.org/pypi"

    def test_rejects_unknown_keys(self) -> None:
        """Unknown keys raise ConfigError."""
        with pytest.raises(ConfigError):
            get_release_config(tomlkit.parse("[tool.subrelease]\nunknown = 1"))

    def test_rejects_wrong_types(self) -> None:
        """Wrongly typed values raise ConfigError."""
        with pytest.raises(ConfigError):
            get_release_config(tomlkit.parse("[tool.subrelease]\nskip-packages = 3"))


class TestSynthesizeManifest:
    def test_override_wins_over_backfill(self) -> None:
        """Overrides beat values from the real package."""
        template = {"name": "", "version": "", "description": ""}
        source = {
            "name": "pkg",
            "version": "1.0.0",
            "description": "orig",
            "license": "MIT",
        }

        result = synthesize_manifest(template, {"description": "X"}, source)

        assert result == {"name": "pkg", "version": "1.0.0", "description": "X"}

    def test_template_values_are_kept(self) -> None:
        """Non-empty template values stay."""
        template = {"name": "", "readme": "README.md"}
        source = {"name": "pkg", "readme": "docs/README.rst"}

        result = synthesize_manifest(template, {}, source)

        assert result["readme"] == "README.md"

    def test_empty_override_adds_field_from_source(self) -> None:
        """An empty override pulls the field from the package."""
        template = {"name": ""}
        source = {"name": "pkg", "urls": {"Homepage": "https://example.com"}}

        result = synthesize_manifest(template, {"urls": ""}, source)

        assert result["urls"] == {"Homepage": "https://example.com"}

    def test_drops_fields_missing_everywhere(self) -> None:
        """Fields nobody fills are dropped."""
        result = synthesize_manifest({"name": "", "keywords": []}, {}, {"name": "pkg"})

        assert result == {"name": "pkg"}

    def test_does_not_modify_inputs(self) -> None:
        """Inputs are copied, not changed."""
        template = {"name": ""}
        overrides = {"description": "X"}

        synthesize_manifest(template, overrides, {"name": "pkg"})

        assert template == {"name": ""}
        assert overrides == {"description": "X"}


class TestWriteReleaseManifest:
    def test_keeps_other_sections(self, tmp_path: Path) -> None:
        """Only [project] is replaced."""
        template = tmp_path / "template.toml"
        template.write_text(
            '[build-system]\nrequires = ["hatchling"]\n\n'
            '[project]\nname = ""\nversion = ""\ndescription = ""\n'
        )
        dest = tmp_path / "pyproject.toml"

        write_release_manifest(
            template,
            dest,
            {"description": "X"},
            {"name": "pkg", "version": "1.0.0", "description": "orig", "license": "MIT"},
        )

        doc = load_pyproject(dest)
        assert doc["build-system"]["requires"] == ["hatchling"]
        assert get_project_table(doc) == {
            "name": "pkg",
            "version": "1.0.0",
            "description": "X",
        }

    def test_bundled_template(self, tmp_path: Path) -> None:
        """The shipped template yields a usable manifest."""
        dest = tmp_path / "pyproject.toml"

        write_release_manifest(
            RELEASE_MANIFEST_TEMPLATE,
            dest,
            {},
            {"name": "pkg", "version": "1.0.0", "description": "A package.", "license": "MIT"},
        )

        project = get_project_table(load_pyproject(dest))
        assert project["name"] == "pkg"
        assert project["version"] == "1.0.0"
        assert project["license"] == "MIT"
        assert project["readme"] == "README.md"
        assert "authors" not in project

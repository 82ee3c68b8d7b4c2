"""Tests for PathSource with cookbooks on a temporary filesystem."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from cookshelf.core.dependency import parse_version
from cookshelf.exceptions import CookbookNotFoundError, SourceConfigError
from cookshelf.sources.path import PathSource
from tests.helpers import write_cookbook


class TestConstruction:
    """Tests for PathSource construction."""

    def test_missing_path_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SourceConfigError):
            PathSource(tmp_path / "nope")

    def test_identity(self, cookbooks_dir: Path) -> None:
        src = PathSource(cookbooks_dir)
        assert src.name == f"path ({cookbooks_dir.resolve()})"
        assert src.location.type == "path"
        assert src.location.path == str(cookbooks_dir.resolve())


class TestDirectoryOfCookbooks:
    """A path whose sub-directories are cookbooks."""

    def test_list_versions(self, cookbooks_dir: Path) -> None:
        src = PathSource(cookbooks_dir)
        assert asyncio.run(src.list_versions("db")) == [parse_version("2.0.0")]

    def test_fetch_cookbook(self, cookbooks_dir: Path) -> None:
        src = PathSource(cookbooks_dir)
        cb = asyncio.run(src.fetch_cookbook("app", parse_version("0.3.0")))
        assert sorted(cb.dependencies) == ["db", "web"]
        assert cb.path == str(cookbooks_dir.resolve() / "app")
        assert cb.source == src.location

    def test_wrong_version(self, cookbooks_dir: Path) -> None:
        src = PathSource(cookbooks_dir)
        with pytest.raises(CookbookNotFoundError):
            asyncio.run(src.fetch_cookbook("db", parse_version("1.0.0")))

    def test_unknown_cookbook(self, cookbooks_dir: Path) -> None:
        with pytest.raises(CookbookNotFoundError):
            asyncio.run(PathSource(cookbooks_dir).list_versions("ghost"))

    def test_matches_metadata_name_over_directory_name(self, tmp_path: Path) -> None:
        directory = tmp_path / "nginx-cookbook"
        directory.mkdir()
        (directory / "metadata.json").write_text(json.dumps({"name": "nginx", "version": "2.7.6"}))
        src = PathSource(tmp_path)
        assert asyncio.run(src.list_versions("nginx")) == [parse_version("2.7.6")]


class TestSingleCookbook:
    """A path that is itself a cookbook."""

    def test_base_path_is_cookbook(self, tmp_path: Path) -> None:
        cookbook_dir = write_cookbook(tmp_path, "app", "1.4.0", {"base": "~> 1.0"})
        src = PathSource(cookbook_dir)
        assert asyncio.run(src.list_versions("app")) == [parse_version("1.4.0")]
        cb = asyncio.run(src.fetch_cookbook("app", parse_version("1.4.0")))
        assert list(cb.dependencies) == ["base"]

    def test_other_name_not_served(self, tmp_path: Path) -> None:
        cookbook_dir = write_cookbook(tmp_path, "app")
        with pytest.raises(CookbookNotFoundError):
            asyncio.run(PathSource(cookbook_dir).list_versions("base"))

"""Tests for GitSource: git invocations are replaced by a fake runner."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from cookshelf.core.dependency import parse_version
from cookshelf.exceptions import CookbookNotFoundError, SourceConfigError, SourceUnavailableError
from cookshelf.sources.git import GitSource, expand_github

URI = "https://example.com/cookbooks/app.git"

LS_REMOTE = (
    "1111\trefs/tags/v1.0.0\n"
    "2222\trefs/tags/v1.0.0^{}\n"
    "3333\trefs/tags/2.0.0\n"
    "4444\trefs/tags/nightly\n"
    "5555\trefs/heads/main\n"
)


def _fake_git(metadata: str, calls: list[tuple[str, ...]]):  # type: ignore[no-untyped-def]
    """Return a ``_run_git`` replacement that materializes clones on disk."""

    async def run(*args: str, cwd: Path | None = None) -> str:
        calls.append(args)
        if args[0] == "ls-remote":
            return LS_REMOTE
        if args[0] == "clone":
            target = Path(args[-1])
            (target / ".git").mkdir(parents=True)
            (target / "metadata.rb").write_text(metadata)
        return ""

    return run


class TestExpandGithub:
    """Tests for GitHub shorthand expansion."""

    @pytest.mark.parametrize(
        ("repo", "expected"),
        [
            ("example/app", "https://github.com/example/app.git"),
            ("example/app.git", "https://github.com/example/app.git"),
            ("https://github.com/example/app.git", "https://github.com/example/app.git"),
            ("git@github.com:example/app.git", "git@github.com:example/app.git"),
        ],
    )
    def test_expand(self, repo: str, expected: str) -> None:
        assert expand_github(repo) == expected


class TestIdentity:
    """Tests for name, pinning and location."""

    def test_requires_uri(self) -> None:
        with pytest.raises(SourceConfigError):
            GitSource("")

    def test_pinned_prefers_ref(self) -> None:
        src = GitSource(URI, branch="main", ref="abc123")
        assert src.pinned == "abc123"
        assert src.name == f"git ({URI}@abc123)"

    def test_location_carries_options(self) -> None:
        loc = GitSource(URI, tag="v1.0.0", rel="cookbooks/app").location
        assert loc.type == "git"
        assert loc.option("tag") == "v1.0.0"
        assert loc.path == "cookbooks/app"


class TestUnpinned:
    """Versions come from version-like tags."""

    def test_versions_from_tags(self, tmp_path: Path) -> None:
        src = GitSource(URI, cache_dir=tmp_path)
        calls: list[tuple[str, ...]] = []
        with patch.object(src, "_run_git", _fake_git("name 'app'\nversion '2.0.0'\n", calls)):
            versions = asyncio.run(src.list_versions("app"))
        assert versions == [parse_version("2.0.0"), parse_version("1.0.0")]
        assert calls == [("ls-remote", "--tags", URI)]

    def test_fetch_checks_out_tag(self, tmp_path: Path) -> None:
        src = GitSource(URI, cache_dir=tmp_path)
        calls: list[tuple[str, ...]] = []
        with patch.object(src, "_run_git", _fake_git("name 'app'\nversion '1.0.0'\ndepends 'base'\n", calls)):
            cb = asyncio.run(src.fetch_cookbook("app", parse_version("1.0.0")))
        assert cb.version == parse_version("1.0.0")
        assert list(cb.dependencies) == ["base"]
        clone = next(c for c in calls if c[0] == "clone")
        assert clone[clone.index("--branch") + 1] == "v1.0.0"


class TestPinned:
    """A pinned branch offers the version its metadata declares."""

    def test_branch_shallow_clone(self, tmp_path: Path) -> None:
        src = GitSource(URI, branch="main", cache_dir=tmp_path)
        calls: list[tuple[str, ...]] = []
        with patch.object(src, "_run_git", _fake_git("name 'app'\nversion '3.1.0'\n", calls)):
            versions = asyncio.run(src.list_versions("app"))
            cb = asyncio.run(src.fetch_cookbook("app", versions[0]))
        assert versions == [parse_version("3.1.0")]
        assert cb.source == src.location
        clones = [c for c in calls if c[0] == "clone"]
        assert len(clones) == 1
        assert "--depth" in clones[0]

    def test_ref_full_clone_and_checkout(self, tmp_path: Path) -> None:
        src = GitSource(URI, ref="abc123", cache_dir=tmp_path)
        calls: list[tuple[str, ...]] = []
        with patch.object(src, "_run_git", _fake_git("name 'app'\nversion '3.1.0'\n", calls)):
            asyncio.run(src.list_versions("app"))
        assert calls[0][0] == "clone"
        assert "--depth" not in calls[0]
        assert calls[1] == ("checkout", "--quiet", "abc123")

    def test_name_mismatch(self, tmp_path: Path) -> None:
        src = GitSource(URI, branch="main", cache_dir=tmp_path)
        with patch.object(src, "_run_git", _fake_git("name 'other'\nversion '1.0.0'\n", [])):
            with pytest.raises(CookbookNotFoundError):
                asyncio.run(src.list_versions("app"))


class TestGitFailures:
    """Failures running git."""

    def test_missing_executable(self, tmp_path: Path) -> None:
        src = GitSource(URI, cache_dir=tmp_path, git=str(tmp_path / "no-such-git"))
        with pytest.raises(SourceUnavailableError):
            asyncio.run(src.list_versions("app"))

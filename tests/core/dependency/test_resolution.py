"""Tests for the Resolution result object and ResolutionCache."""

from __future__ import annotations

import pytest

from cookshelf.core.dependency import (
    Cookbook,
    Resolution,
    ResolutionCache,
    ResolvedCookbook,
    parse_version,
)
from cookshelf.exceptions import (
    CookbookNotFoundError,
    CycleError,
    UnsatisfiableConstraintError,
    VersionConflictError,
)


def _rc(name: str, version: str = "1.0.0") -> ResolvedCookbook:
    return ResolvedCookbook(name=name, version=parse_version(version))


class TestResolutionQueries:
    """Tests for the query API."""

    def test_empty(self) -> None:
        res = Resolution()
        assert res.cookbook_count() == 0
        assert not res.has_errors()
        assert res.install_order == []

    def test_cookbooks(self) -> None:
        res = Resolution()
        res.add_cookbook(_rc("web", "2.0.0"))
        res.add_cookbook(_rc("base"))
        assert res.has_cookbook("web")
        assert res.get_cookbook("missing") is None
        assert [rc.name for rc in res.all_cookbooks()] == ["base", "web"]
        assert res.versions() == {"base": "1.0.0", "web": "2.0.0"}

    def test_returned_collections_are_copies(self) -> None:
        res = Resolution()
        res.add_cookbook(_rc("web"))
        res.cookbooks.clear()
        res.errors.append(CookbookNotFoundError("x"))
        assert res.cookbook_count() == 1
        assert not res.has_errors()

    def test_repr(self) -> None:
        assert repr(Resolution()) == "Resolution(cookbooks=0, errors=0)"


class TestResolutionSeal:
    """Tests for sealing and error ordering."""

    def test_sealed_rejects_changes(self) -> None:
        res = Resolution()
        res.seal()
        with pytest.raises(RuntimeError):
            res.add_cookbook(_rc("web"))
        with pytest.raises(RuntimeError):
            res.add_error(CookbookNotFoundError("web"))
        with pytest.raises(RuntimeError):
            res.set_install_order(["web"])

    def test_errors_sorted_on_seal(self) -> None:
        res = Resolution()
        res.add_error(CycleError(["a", "b", "a"]))
        res.add_error(VersionConflictError("zed", []))
        res.add_error(UnsatisfiableConstraintError("b", ">= 2", []))
        res.add_error(CookbookNotFoundError("y"))
        res.add_error(CookbookNotFoundError("x"))
        res.seal()
        assert [type(e).__name__ for e in res.errors] == [
            "CookbookNotFoundError",
            "CookbookNotFoundError",
            "UnsatisfiableConstraintError",
            "VersionConflictError",
            "CycleError",
        ]
        assert res.errors[0].name == "x"


class TestResolutionCache:
    """Tests for the version and metadata memo."""

    def test_versions_round_trip_copies(self) -> None:
        cache = ResolutionCache()
        key = ResolutionCache.versions_key("src", "nginx")
        versions = [parse_version("2.0.0"), parse_version("1.0.0")]
        cache.set_versions(key, versions)
        versions.clear()
        got = cache.get_versions(key)
        assert got == [parse_version("2.0.0"), parse_version("1.0.0")]
        got.clear()
        assert len(cache.get_versions(key)) == 2

    def test_keys_include_source(self) -> None:
        assert ResolutionCache.versions_key("a", "nginx") != ResolutionCache.versions_key("b", "nginx")
        assert ResolutionCache.metadata_key("a", "nginx", parse_version("1.0")) == "a:nginx@1.0.0"

    def test_metadata_and_clear(self) -> None:
        cache = ResolutionCache()
        key = ResolutionCache.metadata_key("src", "nginx", parse_version("1.0.0"))
        cookbook = Cookbook(name="nginx", version=parse_version("1.0.0"))
        cache.set_metadata(key, cookbook)
        assert cache.get_metadata(key) is cookbook
        cache.clear()
        assert cache.get_metadata(key) is None
        assert cache.get_versions(ResolutionCache.versions_key("src", "nginx")) is None

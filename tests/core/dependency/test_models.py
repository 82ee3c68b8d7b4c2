"""Tests for Requirement, Cookbook and SourceLocation."""

from __future__ import annotations

import pytest

from cookshelf.core.dependency import Cookbook, Requirement, SourceLocation, parse_constraint, parse_version
from cookshelf.exceptions import ParseError


class TestRequirement:
    """Tests for Requirement construction."""

    def test_default_constraint_is_any(self) -> None:
        r = Requirement("nginx")
        assert r.constraint.is_any
        assert r.source is None
        assert str(r) == "nginx >= 0.0.0"

    def test_parse(self) -> None:
        r = Requirement.parse("nginx", "~> 2.7")
        assert r.constraint.satisfies(parse_version("2.9.0"))
        assert not r.constraint.satisfies(parse_version("3.0.0"))

    def test_parse_invalid_constraint(self) -> None:
        with pytest.raises(ParseError):
            Requirement.parse("nginx", "~= 2")


class TestCookbook:
    """Tests for Cookbook validation."""

    def test_valid(self) -> None:
        cb = Cookbook(name="nginx", version=parse_version("1.0.0"))
        cb.add_dependency("apt", parse_constraint("~> 2.0"))
        cb.validate()
        assert cb.has_dependency("apt")
        assert str(cb) == "nginx (1.0.0)"

    def test_empty_name(self) -> None:
        with pytest.raises(ParseError):
            Cookbook(name="", version=parse_version("1.0.0")).validate()

    def test_missing_version(self) -> None:
        with pytest.raises(ParseError):
            Cookbook(name="nginx").validate()

    def test_empty_dependency_name(self) -> None:
        cb = Cookbook(name="nginx", version=parse_version("1.0.0"), dependencies={"": parse_constraint("")})
        with pytest.raises(ParseError):
            cb.validate()


class TestSourceLocation:
    """Tests for SourceLocation identity and options."""

    def test_create_normalizes_options(self) -> None:
        a = SourceLocation.create("git", url="u", options={"tag": "v1", "branch": "main"})
        b = SourceLocation.create("git", url="u", options={"branch": "main", "tag": "v1"})
        assert a == b
        assert a.key == b.key
        assert hash(a) == hash(b)

    def test_option_lookup(self) -> None:
        loc = SourceLocation.create("git", url="u", options={"branch": "main"})
        assert loc.option("branch") == "main"
        assert loc.option("tag") == ""

    def test_key_distinguishes_refs(self) -> None:
        a = SourceLocation(type="git", url="u", ref="abc")
        b = SourceLocation(type="git", url="u", ref="def")
        assert a.key != b.key

    def test_str(self) -> None:
        assert str(SourceLocation(type="path", path="/srv")) == "path (/srv)"
        assert str(SourceLocation(type="chef_server")) == "chef_server"

"""Tests for Version ordering and Constraint parsing/evaluation.

Covers every constraint operator, the pessimistic (``~>``) bound table,
pre-release precedence, and malformed input.
"""

from __future__ import annotations

import pytest

from cookshelf.core.dependency import (
    Constraint,
    Version,
    newest_satisfying,
    parse_constraint,
    parse_version,
    satisfies_all,
)
from cookshelf.exceptions import ParseError


def v(text: str) -> Version:
    return parse_version(text)


# ===========================================================================
# Version
# ===========================================================================


class TestVersionParsing:
    """Tests for parse_version."""

    def test_three_components(self) -> None:
        assert v("1.2.3").components == (1, 2, 3)

    def test_two_components_render_padded(self) -> None:
        """Short versions are displayed with three components."""
        assert str(v("2.7")) == "2.7.0"

    def test_leading_v_accepted(self) -> None:
        assert v("v1.0.0") == v("1.0.0")

    def test_prerelease_and_build(self) -> None:
        parsed = v("1.0.0-rc.1+build.5")
        assert parsed.prerelease == ("rc", "1")
        assert parsed.build == "build.5"
        assert str(parsed) == "1.0.0-rc.1+build.5"

    @pytest.mark.parametrize("text", ["", "abc", "1..2", "1.2.x", "-1.0", "1.0-"])
    def test_invalid_raises(self, text: str) -> None:
        with pytest.raises(ParseError):
            parse_version(text)

    def test_non_string_raises(self) -> None:
        with pytest.raises(ParseError):
            parse_version(123)  # type: ignore[arg-type]


class TestVersionOrdering:
    """Tests for Version comparison."""

    def test_numeric_not_lexical(self) -> None:
        assert v("1.10.0") > v("1.9.0")

    def test_missing_components_are_zero(self) -> None:
        assert v("1.2") == v("1.2.0")
        assert hash(v("1.2")) == hash(v("1.2.0"))

    def test_prerelease_below_release(self) -> None:
        assert v("1.0.0-alpha") < v("1.0.0")

    def test_prerelease_precedence(self) -> None:
        ordered = ["1.0.0-alpha", "1.0.0-alpha.1", "1.0.0-beta", "1.0.0-beta.2", "1.0.0-beta.11", "1.0.0"]
        versions = [v(t) for t in ordered]
        assert sorted(reversed(versions)) == versions

    def test_build_metadata_ignored(self) -> None:
        assert v("1.0.0+a") == v("1.0.0+b")

    def test_compare_helpers(self) -> None:
        assert v("2.0.0").compare(v("1.0.0")) == 1
        assert v("1.0.0").compare(v("2.0.0")) == -1
        assert v("1.0.0").equal(v("1.0"))
        assert v("1.1").greater_than(v("1.0.9"))
        assert v("0.9").less_than(v("1.0"))


# ===========================================================================
# Constraint
# ===========================================================================


class TestConstraintOperators:
    """Tests for each constraint operator."""

    @pytest.mark.parametrize(
        ("constraint", "version", "expected"),
        [
            ("= 1.0.0", "1.0.0", True),
            ("= 1.0.0", "1.0.1", False),
            ("== 1.0", "1.0.0", True),
            ("1.0.0", "1.0.0", True),
            ("!= 1.0.0", "1.0.0", False),
            ("!= 1.0.0", "1.0.1", True),
            (">= 1.2", "1.2.0", True),
            (">= 1.2", "1.1.9", False),
            ("> 1.2", "1.2.0", False),
            ("> 1.2", "1.2.1", True),
            ("<= 2.0", "2.0.0", True),
            ("< 2.0", "2.0.0", False),
            ("< 2.0", "1.99.0", True),
        ],
    )
    def test_operator(self, constraint: str, version: str, expected: bool) -> None:
        assert parse_constraint(constraint).satisfies(v(version)) is expected

    def test_no_space_between_operator_and_version(self) -> None:
        assert parse_constraint(">=1.0").satisfies(v("1.5.0"))


class TestPessimisticConstraint:
    """Tests for the ``~>`` operator bounds."""

    @pytest.mark.parametrize(
        ("constraint", "inside", "outside"),
        [
            ("~> 2.7", ["2.7.0", "2.8.0", "2.99.1"], ["2.6.9", "3.0.0"]),
            ("~> 1.2.3", ["1.2.3", "1.2.99"], ["1.2.2", "1.3.0"]),
            ("~> 1", ["1.0.0", "1.9.9"], ["0.9.0", "2.0.0"]),
            ("~> 0.1", ["0.1.0", "0.9.0"], ["0.0.9", "1.0.0"]),
        ],
    )
    def test_bounds(self, constraint: str, inside: list[str], outside: list[str]) -> None:
        c = parse_constraint(constraint)
        for text in inside:
            assert c.satisfies(v(text)), f"{text} should satisfy {constraint}"
        for text in outside:
            assert not c.satisfies(v(text)), f"{text} should not satisfy {constraint}"


class TestCompoundConstraint:
    """Tests for comma-separated conjunctions and intersection."""

    def test_range(self) -> None:
        c = parse_constraint(">= 1.0, < 2.0")
        assert c.satisfies(v("1.5.0"))
        assert not c.satisfies(v("2.0.0"))
        assert not c.satisfies(v("0.9.0"))

    def test_intersect_is_conjunction(self) -> None:
        c = parse_constraint(">= 1.0").intersect(parse_constraint("< 1.5"))
        assert c.satisfies(v("1.4.0"))
        assert not c.satisfies(v("1.5.0"))

    def test_intersect_with_any_returns_other(self) -> None:
        other = parse_constraint("~> 1.0")
        assert Constraint.any().intersect(other) is other
        assert other.intersect(Constraint.any()) is other


class TestDefaultConstraint:
    """Tests for the empty ("any version") constraint."""

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty_means_any(self, text: str | None) -> None:
        c = parse_constraint(text)
        assert c.is_any
        assert c.satisfies(v("0.0.0"))
        assert c.satisfies(v("99.0.0"))

    def test_renders_as_zero_lower_bound(self) -> None:
        assert str(Constraint.any()) == ">= 0.0.0"

    def test_skips_prereleases(self) -> None:
        assert not Constraint.any().satisfies(v("2.0.0-rc.1"))


class TestPrereleaseConstraints:
    """Pre-releases only match atoms anchored on a pre-release."""

    @pytest.mark.parametrize(
        ("constraint", "version"),
        [
            ("~> 1.2", "2.0.0-alpha"),
            ("~> 1.2", "1.5.0-beta"),
            (">= 1.0", "3.0.0-rc.1"),
            ("< 2.0", "1.0.0-rc.1"),
            ("!= 1.0.0", "1.1.0-rc.1"),
        ],
    )
    def test_release_anchor_rejects_prerelease(self, constraint: str, version: str) -> None:
        assert not parse_constraint(constraint).satisfies(v(version))

    @pytest.mark.parametrize(
        ("constraint", "version"),
        [
            (">= 2.0.0-rc.1", "2.0.0-rc.2"),
            ("= 1.0.0-beta", "1.0.0-beta"),
            (">= 2.0.0-rc.1", "2.1.0"),
        ],
    )
    def test_prerelease_anchor_admits(self, constraint: str, version: str) -> None:
        assert parse_constraint(constraint).satisfies(v(version))

    def test_newest_satisfying_prefers_release(self) -> None:
        candidates = [v("1.9.0"), v("2.0.0-rc.1")]
        assert newest_satisfying(candidates, [Constraint.any()]) == v("1.9.0")


class TestConstraintErrors:
    """Tests for malformed constraints."""

    @pytest.mark.parametrize("text", [">>= 1.0", "~= 1.0", ">= abc", ">= 1.0,", "=> 1.0", ">= 1.0 2.0"])
    def test_malformed_raises(self, text: str) -> None:
        with pytest.raises(ParseError):
            parse_constraint(text)


class TestHelpers:
    """Tests for satisfies_all and newest_satisfying."""

    def test_satisfies_all(self) -> None:
        cs = [parse_constraint(">= 1.0"), parse_constraint("~> 1.2")]
        assert satisfies_all(cs, v("1.5.0"))
        assert not satisfies_all(cs, v("2.0.0"))

    def test_satisfies_all_empty_is_true(self) -> None:
        assert satisfies_all([], v("1.0.0"))

    def test_newest_satisfying_picks_highest(self) -> None:
        versions = [v("1.0.0"), v("1.5.0"), v("2.0.0")]
        assert newest_satisfying(versions, [parse_constraint("< 2.0")]) == v("1.5.0")

    def test_newest_satisfying_none(self) -> None:
        assert newest_satisfying([v("1.0.0")], [parse_constraint("> 1.0")]) is None

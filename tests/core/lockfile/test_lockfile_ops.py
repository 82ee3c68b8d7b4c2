"""Tests for Lockfile.validate and Lockfile.diff."""

from __future__ import annotations

from cookshelf.core.lockfile import LockedCookbook, Lockfile


def _make(*cookbooks: LockedCookbook, order: list[str] | None = None) -> Lockfile:
    lf = Lockfile()
    for cb in cookbooks:
        lf.add_cookbook(cb)
    if order is not None:
        lf.metadata.install_order = order
    return lf


class TestValidate:
    """Internal consistency checks."""

    def test_valid(self) -> None:
        lf = _make(
            LockedCookbook("app", "1.0.0", dependencies={"lib": "1.0.0"}),
            LockedCookbook("lib", "1.0.0"),
            order=["lib", "app"],
        )
        assert lf.validate() == []

    def test_invalid_version(self) -> None:
        errors = _make(LockedCookbook("app", "latest")).validate()
        assert any("invalid version" in e for e in errors)

    def test_missing_dependency(self) -> None:
        errors = _make(LockedCookbook("app", "1.0.0", dependencies={"lib": "1.0.0"})).validate()
        assert any("not in the lockfile" in e for e in errors)

    def test_dependency_version_mismatch(self) -> None:
        errors = _make(
            LockedCookbook("app", "1.0.0", dependencies={"lib": "1.0.0"}),
            LockedCookbook("lib", "2.0.0"),
        ).validate()
        assert any("but 2.0.0 is locked" in e for e in errors)

    def test_cycle(self) -> None:
        errors = _make(
            LockedCookbook("a", "1.0.0", dependencies={"b": "1.0.0"}),
            LockedCookbook("b", "1.0.0", dependencies={"a": "1.0.0"}),
        ).validate()
        assert any("Circular dependency" in e for e in errors)

    def test_total_mismatch(self) -> None:
        lf = _make(LockedCookbook("a", "1.0.0"))
        lf.metadata.total_cookbooks = 5
        assert any("total_cookbooks" in e for e in lf.validate())

    def test_install_order_incomplete(self) -> None:
        lf = _make(LockedCookbook("a", "1.0.0"), LockedCookbook("b", "1.0.0"), order=["a"])
        assert any("exactly once" in e for e in lf.validate())

    def test_install_order_wrong_direction(self) -> None:
        lf = _make(
            LockedCookbook("app", "1.0.0", dependencies={"lib": "1.0.0"}),
            LockedCookbook("lib", "1.0.0"),
            order=["app", "lib"],
        )
        assert any("before its dependency" in e for e in lf.validate())


class TestDiff:
    """Structured comparison of two lockfiles."""

    def test_no_changes(self) -> None:
        a = _make(LockedCookbook("x", "1.0.0"))
        b = _make(LockedCookbook("x", "1.0.0"))
        assert a.diff(b) == {"added": [], "removed": [], "changed": []}

    def test_added_and_removed(self) -> None:
        old = _make(LockedCookbook("x", "1.0.0"), LockedCookbook("gone", "1.0.0"))
        new = _make(LockedCookbook("x", "1.0.0"), LockedCookbook("fresh", "1.0.0"))
        changes = old.diff(new)
        assert changes["added"] == ["fresh"]
        assert changes["removed"] == ["gone"]

    def test_version_change(self) -> None:
        changes = _make(LockedCookbook("x", "1.0.0")).diff(_make(LockedCookbook("x", "1.1.0")))
        assert changes["changed"] == [{"name": "x", "field": "version", "old": "1.0.0", "new": "1.1.0"}]

    def test_source_change(self) -> None:
        old = _make(LockedCookbook("x", "1.0.0", source_url="https://a"))
        new = _make(LockedCookbook("x", "1.0.0", source_url="https://b"))
        changes = old.diff(new)
        assert changes["changed"] == [{"name": "x", "field": "source", "old": "https://a", "new": "https://b"}]

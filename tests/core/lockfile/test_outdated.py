"""Tests for check_outdated.

Verifies:
    - Newer releases are reported, equal or older ones are not.
    - Sources are consulted in priority order.
    - Pre-releases only count for cookbooks locked at a pre-release.
    - Failing sources skip the cookbook instead of failing the check.
"""

from __future__ import annotations

import asyncio

from cookshelf.core.lockfile import LockedCookbook, Lockfile, check_outdated
from cookshelf.exceptions import SourceUnavailableError
from tests.helpers import StubSource


def _lockfile(**versions: str) -> Lockfile:
    lf = Lockfile()
    for name, version in versions.items():
        lf.add_cookbook(LockedCookbook(name=name, version=version))
    return lf


def _check(lf: Lockfile, *sources: StubSource, names: list[str] | None = None):  # type: ignore[no-untyped-def]
    return asyncio.run(check_outdated(lf, lambda name: list(sources), names=names))


class TestCheckOutdated:
    """Tests for the outdated comparison."""

    def test_reports_newer_versions_sorted(self) -> None:
        src = StubSource(
            "main",
            {
                "nginx": {"2.7.6": {}, "3.0.0": {}},
                "apt": {"2.2.0": {}},
                "ark": {"1.0.0": {}, "1.1.0": {}},
            },
        )
        outdated = _check(_lockfile(nginx="2.7.6", apt="2.2.0", ark="1.0.0"), src)
        assert [(o.name, o.current, o.latest) for o in outdated] == [
            ("ark", "1.0.0", "1.1.0"),
            ("nginx", "2.7.6", "3.0.0"),
        ]
        assert outdated[0].source == "stub (main)"

    def test_locked_newer_than_source(self) -> None:
        src = StubSource("main", {"nginx": {"1.0.0": {}}})
        assert _check(_lockfile(nginx="2.0.0"), src) == []

    def test_first_source_knowing_the_cookbook_wins(self) -> None:
        primary = StubSource("primary", {"nginx": {"1.1.0": {}}})
        fallback = StubSource("fallback", {"nginx": {"9.0.0": {}}, "apt": {"2.0.0": {}}})
        outdated = _check(_lockfile(nginx="1.0.0", apt="1.0.0"), primary, fallback)
        assert [(o.name, o.latest, o.source) for o in outdated] == [
            ("apt", "2.0.0", "stub (fallback)"),
            ("nginx", "1.1.0", "stub (primary)"),
        ]

    def test_prerelease_ignored_for_release(self) -> None:
        src = StubSource("main", {"nginx": {"1.0.0": {}, "2.0.0-rc.1": {}}})
        assert _check(_lockfile(nginx="1.0.0"), src) == []

    def test_prerelease_counts_for_prerelease(self) -> None:
        src = StubSource("main", {"nginx": {"2.0.0-rc.1": {}, "2.0.0-rc.2": {}}})
        outdated = _check(_lockfile(nginx="2.0.0-rc.1"), src)
        assert [o.latest for o in outdated] == ["2.0.0-rc.2"]

    def test_only_named_cookbooks(self) -> None:
        src = StubSource("main", {"nginx": {"3.0.0": {}}, "apt": {"3.0.0": {}}})
        outdated = _check(_lockfile(nginx="1.0.0", apt="1.0.0"), src, names=["apt"])
        assert [o.name for o in outdated] == ["apt"]
        assert src.list_calls == ["apt"]

    def test_failing_source_skips_cookbook(self) -> None:
        src = StubSource(
            "main",
            {"apt": {"3.0.0": {}}},
            failures={"nginx": SourceUnavailableError("stub (main)", "down", "nginx")},
        )
        outdated = _check(_lockfile(nginx="1.0.0", apt="1.0.0"), src)
        assert [o.name for o in outdated] == ["apt"]

    def test_unknown_everywhere_is_skipped(self) -> None:
        src = StubSource("main", {})
        assert _check(_lockfile(nginx="1.0.0"), src) == []

    def test_to_dict(self) -> None:
        src = StubSource("main", {"nginx": {"3.0.0": {}}})
        (item,) = _check(_lockfile(nginx="1.0.0"), src)
        assert item.to_dict() == {
            "name": "nginx",
            "current_version": "1.0.0",
            "latest_version": "3.0.0",
            "source": "stub (main)",
        }

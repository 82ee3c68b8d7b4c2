"""Cookbook versions and version constraints.

This module provides the foundational value types of the resolver: the
ordered ``Version`` and the ``Constraint`` predicate over versions.

Constraint semantics follow the cookbook ecosystem's conventions: exact match
(``=``, ``==``), not-equal (``!=``), range (``>=``, ``<=``, ``>``, ``<``), the
pessimistic operator (``~>``) and comma-separated conjunctions. An empty
constraint means "any version" (``>= 0.0.0``).

A pre-release version only satisfies an atom whose own version carries a
pre-release, so ``>= 1.0`` and the default constraint skip ``2.0.0-rc.1``.

Both parse functions are pure: they keep no module-level state and may be
called concurrently.

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/ (pre-release precedence, section 11)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from cookshelf.exceptions import ParseError


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

_VERSION_RE = re.compile(
    r"^v?(?P<core>\d+(?:\.\d+)*)"
    r"(?:-(?P<pre>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?$"
)


def _cmp(a: object, b: object) -> int:
    return (a > b) - (a < b)  # type: ignore[operator]


def _compare_prerelease(a: tuple[str, ...], b: tuple[str, ...]) -> int:
    """Compare pre-release identifier lists (SemVer section 11).

    A version without a pre-release ranks above one with a pre-release.
    Numeric identifiers compare numerically and rank below alphanumeric ones.
    """
    if a == b:
        return 0
    if not a:
        return 1
    if not b:
        return -1
    for x, y in zip(a, b):
        if x == y:
            continue
        x_num, y_num = x.isdigit(), y.isdigit()
        if x_num and y_num:
            return _cmp(int(x), int(y))
        if x_num != y_num:
            return -1 if x_num else 1
        return _cmp(x, y)
    return _cmp(len(a), len(b))


@dataclass(frozen=True, eq=False)
class Version:
    """An immutable, totally ordered cookbook version.

    Components are compared left to right; missing trailing components count
    as zero, so ``1.2`` equals ``1.2.0``. Build metadata is carried for
    display but never affects ordering or equality.

    Attributes:
        components: Numeric components of the dotted core.
        prerelease: Pre-release identifiers (empty for a release).
        build: Build metadata string ("" when absent).
    """

    components: tuple[int, ...]
    prerelease: tuple[str, ...] = ()
    build: str = ""

    @classmethod
    def parse(cls, text: str) -> Version:
        return parse_version(text)

    def compare(self, other: Version) -> int:
        """Return -1, 0 or 1 as this version is lower, equal or higher."""
        width = max(len(self.components), len(other.components))
        mine = self.components + (0,) * (width - len(self.components))
        theirs = other.components + (0,) * (width - len(other.components))
        result = _cmp(mine, theirs)
        if result:
            return result
        return _compare_prerelease(self.prerelease, other.prerelease)

    def equal(self, other: Version) -> bool:
        return self.compare(other) == 0

    def greater_than(self, other: Version) -> bool:
        return self.compare(other) > 0

    def less_than(self, other: Version) -> bool:
        return self.compare(other) < 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: Version) -> bool:
        return self.compare(other) < 0

    def __le__(self, other: Version) -> bool:
        return self.compare(other) <= 0

    def __gt__(self, other: Version) -> bool:
        return self.compare(other) > 0

    def __ge__(self, other: Version) -> bool:
        return self.compare(other) >= 0

    def __hash__(self) -> int:
        core = list(self.components)
        while core and core[-1] == 0:
            core.pop()
        return hash((tuple(core), self.prerelease))

    def __str__(self) -> str:
        core = self.components + (0,) * (3 - len(self.components))
        text = ".".join(str(c) for c in core)
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + self.build
        return text

    def __repr__(self) -> str:
        return f"Version({str(self)!r})"


def parse_version(text: str) -> Version:
    """Parse a dotted numeric version string.

    Accepts an optional leading ``v``, one or more numeric components, and
    optional ``-prerelease`` / ``+build`` suffixes.

    Args:
        text: Version string (e.g. "1.2.3", "2.7", "v1.0.0-rc.1").

    Returns:
        The parsed ``Version``.

    Raises:
        ParseError: If the string is not a valid version.
    """
    if not isinstance(text, str):
        raise ParseError(f"invalid version {text!r}: expected a string", text=str(text))
    m = _VERSION_RE.match(text.strip())
    if not m:
        raise ParseError(f"invalid version {text!r}", text=text)
    components = tuple(int(part) for part in m.group("core").split("."))
    pre = m.group("pre")
    return Version(
        components=components,
        prerelease=tuple(pre.split(".")) if pre else (),
        build=m.group("build") or "",
    )


ZERO = Version((0, 0, 0))


# ---------------------------------------------------------------------------
# Constraint
# ---------------------------------------------------------------------------

# One constraint atom like ">= 1.2.3", "~> 2.0" or a bare "1.0.0".
_CONSTRAINT_ATOM_RE = re.compile(r"^\s*(?P<op>~>|>=|<=|!=|==|=|>|<)?\s*(?P<ver>[^\s<>=!~]\S*)\s*$")


def _pessimistic_upper(anchor: Version) -> Version:
    """Exclusive upper bound of ``~> anchor``.

    The second-to-last specified component is incremented and everything
    after it dropped (``2.7`` -> ``3.0``, ``1.2.3`` -> ``1.3.0``). A single
    component anchor bumps that component (``1`` -> ``2.0.0``).
    """
    parts = list(anchor.components)
    if len(parts) == 1:
        return Version((parts[0] + 1, 0, 0))
    bumped = parts[: len(parts) - 1]
    bumped[-1] += 1
    return Version(tuple(bumped) + (0,) * (len(parts) - len(bumped)))


@dataclass(frozen=True)
class _Atom:
    op: str
    version: Version
    upper: Version | None = None

    def satisfied_by(self, v: Version) -> bool:
        # Pre-releases only match atoms anchored on a pre-release.
        if v.prerelease and not self.version.prerelease:
            return False
        op = self.op
        if op == "=":
            return v == self.version
        if op == "!=":
            return v != self.version
        if op == ">=":
            return v >= self.version
        if op == "<=":
            return v <= self.version
        if op == ">":
            return v > self.version
        if op == "<":
            return v < self.version
        if op == "~>":
            assert self.upper is not None
            return self.version <= v < self.upper
        raise ParseError(f"unknown operator {op!r}")  # pragma: no cover


@dataclass(frozen=True)
class Constraint:
    """A predicate over versions, built from one or more atoms (conjunction).

    Supports:
    - Exact match: ``= 1.0.0`` (``==`` and a bare version are aliases)
    - Not-equal: ``!= 1.0.0``
    - Ranges: ``>= 1.0``, ``<= 2.0``, ``> 1.0``, ``< 2.0``
    - Pessimistic: ``~> 2.7`` (``>= 2.7, < 3.0``), ``~> 1.2.3``
      (``>= 1.2.3, < 1.3.0``)
    - Compound: ``>= 1.0, < 2.0`` (every atom must hold)

    Attributes:
        raw: The constraint text as authored ("" for the default).
        atoms: Parsed atoms; all must be satisfied.
    """

    raw: str
    atoms: tuple[_Atom, ...] = field(default=(), compare=False)

    @classmethod
    def any(cls) -> Constraint:
        """The default constraint, admitting every release (``>= 0.0.0``)."""
        return cls(raw="", atoms=(_Atom(">=", ZERO),))

    @classmethod
    def parse(cls, text: str) -> Constraint:
        return parse_constraint(text)

    @property
    def is_any(self) -> bool:
        return self.raw == ""

    def satisfies(self, version: Version) -> bool:
        """Check whether *version* satisfies every atom of this constraint."""
        return all(atom.satisfied_by(version) for atom in self.atoms)

    def intersect(self, other: Constraint) -> Constraint:
        """Return the conjunction of this constraint and *other*."""
        if self.is_any:
            return other
        if other.is_any:
            return self
        return Constraint(raw=f"{self.raw}, {other.raw}", atoms=self.atoms + other.atoms)

    def __str__(self) -> str:
        return self.raw or ">= 0.0.0"

    def __repr__(self) -> str:
        return f"Constraint({str(self)!r})"


def parse_constraint(text: str | None) -> Constraint:
    """Parse a constraint expression.

    Args:
        text: Constraint text such as ``"~> 2.0"`` or ``">= 1.0, < 2.0"``.
            Empty or None yields the "any version" constraint.

    Returns:
        The parsed ``Constraint``.

    Raises:
        ParseError: On an unknown operator or malformed version.
    """
    if text is None or not text.strip():
        return Constraint.any()

    atoms: list[_Atom] = []
    for piece in text.split(","):
        if not piece.strip():
            raise ParseError(f"invalid constraint {text!r}: empty clause", text=text)
        m = _CONSTRAINT_ATOM_RE.match(piece)
        if not m:
            raise ParseError(f"invalid constraint {text!r}: cannot parse {piece.strip()!r}", text=text)
        op = m.group("op") or "="
        if op == "==":
            op = "="
        try:
            version = parse_version(m.group("ver"))
        except ParseError as exc:
            raise ParseError(f"invalid constraint {text!r}: {exc}", text=text) from exc
        upper = _pessimistic_upper(version) if op == "~>" else None
        atoms.append(_Atom(op, version, upper))
    return Constraint(raw=text.strip(), atoms=tuple(atoms))


def satisfies_all(constraints: Iterable[Constraint], version: Version) -> bool:
    """True if *version* satisfies every constraint (order-independent AND)."""
    return all(c.satisfies(version) for c in constraints)


def newest_satisfying(
    versions: Iterable[Version], constraints: Iterable[Constraint]
) -> Version | None:
    """Return the highest version satisfying all *constraints*, or None."""
    accumulated = list(constraints)
    best: Version | None = None
    for v in versions:
        if satisfies_all(accumulated, v) and (best is None or v > best):
            best = v
    return best

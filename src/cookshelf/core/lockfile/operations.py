"""Lockfile operations: deserialization, validation, and diffing.

This module extends the ``Lockfile`` class (defined in ``lockfile.py``) with
classmethods and instance methods for:

- **Deserialization:** ``from_dict``, ``from_json``, ``read`` (disk).
- **Validation:** internal consistency checks (dependencies, versions,
  install order, acyclicity).
- **Diffing:** structured comparison of two lockfiles.

They are attached to ``Lockfile`` in ``__init__.py``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from cookshelf.core.dependency.constraints import parse_version
from cookshelf.core.lockfile.models import LockedCookbook, LockfileMetadata
from cookshelf.exceptions import LockfileError, ParseError


def _from_dict(cls: type, data: dict[str, Any]) -> Any:
    """Deserialize a lockfile from a dict (parsed JSON).

    Accepts the dict format produced by ``to_dict()``. Missing optional
    fields take their defaults.

    Raises:
        LockfileError: If the structure is not a lockfile, or its revision
            is newer than this version understands.
    """
    if not isinstance(data, dict) or not isinstance(data.get("sources", {}), dict):
        raise LockfileError("lockfile must be an object with a 'sources' object")
    revision = data.get("revision", cls.REVISION)
    if not isinstance(revision, int) or revision > cls.REVISION:
        raise LockfileError(f"unsupported lockfile revision {revision!r}")

    lf = cls()
    for key, group in data.get("sources", {}).items():
        if not isinstance(group, dict):
            raise LockfileError(f"source {key!r} must be an object")
        for name, entry in (group.get("cookbooks") or {}).items():
            if not isinstance(entry, dict):
                raise LockfileError(f"cookbook {name!r} must be an object")
            source = entry.get("source") or {}
            lf._cookbooks[name] = LockedCookbook(
                name=name,
                version=entry.get("version", ""),
                source_type=source.get("type", group.get("type", "supermarket")),
                source_url=source.get("url", group.get("url", "")),
                source_path=source.get("path", ""),
                branch=source.get("branch", ""),
                tag=source.get("tag", ""),
                ref=source.get("ref", ""),
                dependencies=dict(entry.get("dependencies") or {}),
            )

    meta = data.get("metadata") or {}
    lf._metadata = LockfileMetadata(
        total_cookbooks=meta.get("total_cookbooks", len(lf._cookbooks)),
        resolution_strategy=meta.get("resolution_strategy", "greedy"),
        install_order=list(meta.get("install_order") or []),
    )
    return lf


def _from_json(cls: type, json_str: str) -> Any:
    """Deserialize from a JSON string.

    Raises:
        LockfileError: If the string is not valid JSON or not a lockfile.
    """
    try:
        data = json.loads(json_str)
    except ValueError as exc:
        raise LockfileError(f"lockfile is not valid JSON: {exc}") from exc
    return cls.from_dict(data)


def _read(cls: type, path: Path) -> Any:
    """Read a lockfile from disk.

    Raises:
        LockfileError: If the file cannot be read or parsed.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise LockfileError(f"cannot read lockfile {path}: {exc}") from exc
    return cls.from_json(text)


def _validate(self: Any) -> list[str]:
    """Validate the lockfile for internal consistency.

    Performs the following checks:

    1. **Versions:** every cookbook has a parsable version.
    2. **Dependency completeness:** every dependency is itself locked, at
       the version recorded for it.
    3. **No circular dependencies** among locked cookbooks.
    4. **Metadata consistency:** ``total_cookbooks`` matches the entries.
    5. **Install order:** when present, it lists every cookbook once with
       dependencies before dependents.

    Returns:
        List of validation error messages. Empty means the lockfile is
        valid.
    """
    errors: list[str] = []
    cookbooks: dict[str, LockedCookbook] = self._cookbooks

    # 1. Versions
    for name in sorted(cookbooks):
        try:
            parse_version(cookbooks[name].version)
        except ParseError:
            errors.append(f"Cookbook {name!r} has invalid version {cookbooks[name].version!r}")

    # 2. Dependency completeness
    for name in sorted(cookbooks):
        for dep_name, dep_version in sorted(cookbooks[name].dependencies.items()):
            dep = cookbooks.get(dep_name)
            if dep is None:
                errors.append(f"Cookbook {name!r} depends on {dep_name!r} which is not in the lockfile")
            elif dep_version and dep.version != dep_version:
                errors.append(
                    f"Cookbook {name!r} depends on {dep_name!r} {dep_version} "
                    f"but {dep.version} is locked"
                )

    # 3. Circular dependency detection
    WHITE, GRAY, BLACK = 0, 1, 2
    color: dict[str, int] = {name: WHITE for name in cookbooks}

    def _dfs(u: str) -> bool:
        color[u] = GRAY
        for dep_name in sorted(cookbooks[u].dependencies):
            if dep_name not in color:
                continue  # Already reported as missing
            if color[dep_name] == GRAY:
                errors.append(f"Circular dependency detected involving {u!r} and {dep_name!r}")
                return True
            if color[dep_name] == WHITE and _dfs(dep_name):
                return True
        color[u] = BLACK
        return False

    for name in sorted(cookbooks):
        if color[name] == WHITE:
            _dfs(name)

    # 4. Metadata consistency
    if self._metadata.total_cookbooks != len(cookbooks):
        errors.append(
            f"Metadata total_cookbooks ({self._metadata.total_cookbooks}) "
            f"does not match actual count ({len(cookbooks)})"
        )

    # 5. Install order
    order = self._metadata.install_order
    if order:
        if sorted(order) != sorted(cookbooks):
            errors.append("Install order does not list every locked cookbook exactly once")
        else:
            position = {name: i for i, name in enumerate(order)}
            for name in order:
                for dep_name in sorted(cookbooks[name].dependencies):
                    if dep_name in position and position[dep_name] > position[name]:
                        errors.append(f"Install order places {name!r} before its dependency {dep_name!r}")

    return errors


def _diff(self: Any, other: Any) -> dict[str, Any]:
    """Compare two lockfiles and return differences.

    - **added**: Cookbooks present in ``other`` but not in ``self``.
    - **removed**: Cookbooks present in ``self`` but not in ``other``.
    - **changed**: Cookbooks present in both with a different version or
      source.

    Args:
        other: The lockfile to compare against (typically the newer one).

    Returns:
        Dict with keys 'added', 'removed', 'changed'.
    """
    self_names = set(self._cookbooks)
    other_names = set(other._cookbooks)

    changes: list[dict[str, Any]] = []
    for name in sorted(self_names & other_names):
        old = self._cookbooks[name]
        new = other._cookbooks[name]
        if old.version != new.version:
            changes.append({"name": name, "field": "version", "old": old.version, "new": new.version})
        old_source = (old.source_type, old.source_key, old.branch, old.tag, old.ref)
        new_source = (new.source_type, new.source_key, new.branch, new.tag, new.ref)
        if old_source != new_source:
            changes.append({"name": name, "field": "source", "old": old.source_key, "new": new.source_key})

    return {
        "added": sorted(other_names - self_names),
        "removed": sorted(self_names - other_names),
        "changed": changes,
    }

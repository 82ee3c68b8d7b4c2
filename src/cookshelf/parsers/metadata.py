"""Readers for cookbook metadata files.

A cookbook directory declares its name, version and dependencies in either
``metadata.json`` (generated, preferred) or ``metadata.rb`` (authored, Ruby
DSL). Only the fields needed for dependency resolution are extracted.

metadata.rb Parsing
-------------------
There is no Ruby interpreter involved: the reader recognises the common
single-line forms and ignores everything else::

    name 'nginx'
    version '2.7.6'
    depends 'apt', '~> 2.2'
    depends "build-essential"

A missing ``name`` falls back to the directory name and a missing
``version`` to ``0.0.0``.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cookshelf.core.dependency.constraints import (
    ZERO,
    Constraint,
    Version,
    parse_constraint,
    parse_version,
)
from cookshelf.core.dependency.models import Cookbook, SourceLocation
from cookshelf.exceptions import InvalidMetadataError, ParseError

logger = logging.getLogger(__name__)

METADATA_JSON = "metadata.json"
METADATA_RB = "metadata.rb"

# ---------------------------------------------------------------------------
# metadata.rb patterns
# ---------------------------------------------------------------------------

# A quoted Ruby string literal, single or double quoted.
_STRING = r"""(?:"([^"]*)"|'([^']*)')"""

# ``key 'value'`` or ``key("value")`` at the start of a line.
_FIELD_PATTERN = re.compile(rf"^\s*(name|version|description|maintainer|license)\s*\(?\s*{_STRING}")

# ``depends 'name'`` with an optional ``, 'constraint'``.
_DEPENDS_PATTERN = re.compile(rf"^\s*depends\s*\(?\s*{_STRING}(?:\s*,\s*{_STRING})?")


def _literal(match: re.Match[str], first_group: int) -> str | None:
    """Return the value of the quoted literal starting at *first_group*."""
    for group in (first_group, first_group + 1):
        value = match.group(group)
        if value is not None:
            return value
    return None


@dataclass
class CookbookMetadata:
    """Resolution-relevant contents of a cookbook's metadata file.

    Attributes:
        name: Cookbook name.
        version: Declared version.
        dependencies: Dependency name -> constraint.
        description: One-line description, if declared.
        maintainer: Maintainer, if declared.
        license: License, if declared.
        path: Directory the metadata was read from.
    """

    name: str
    version: Version
    dependencies: dict[str, Constraint] = field(default_factory=dict)
    description: str = ""
    maintainer: str = ""
    license: str = ""
    path: str = ""

    def to_cookbook(self, source: SourceLocation | None = None) -> Cookbook:
        return Cookbook(
            name=self.name,
            version=self.version,
            dependencies=dict(self.dependencies),
            source=source,
            path=self.path,
        )


def _constraint(cookbook: str, dep_name: str, text: str) -> Constraint:
    try:
        return parse_constraint(text)
    except ParseError as exc:
        raise InvalidMetadataError(cookbook, f"dependency {dep_name}: {exc}") from exc


def parse_metadata_json(text: str, *, fallback_name: str = "") -> CookbookMetadata:
    """Parse the contents of a ``metadata.json`` file.

    Dependency values may be a constraint string or an object with a
    ``version`` key.

    Raises:
        InvalidMetadataError: On invalid JSON, a bad version, or a bad
            dependency constraint.
    """
    try:
        data: Any = json.loads(text)
    except ValueError as exc:
        raise InvalidMetadataError(fallback_name or METADATA_JSON, f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidMetadataError(fallback_name or METADATA_JSON, "metadata must be a JSON object")

    name = data.get("name") or fallback_name
    if not name:
        raise InvalidMetadataError(METADATA_JSON, "missing cookbook name")
    try:
        version = parse_version(str(data.get("version") or "0.0.0"))
    except ParseError as exc:
        raise InvalidMetadataError(name, f"invalid version: {exc}") from exc

    deps: dict[str, Constraint] = {}
    raw_deps = data.get("dependencies") or {}
    if not isinstance(raw_deps, dict):
        raise InvalidMetadataError(name, "'dependencies' must be an object")
    for dep_name, value in sorted(raw_deps.items()):
        if isinstance(value, dict):
            value = value.get("version", "")
        deps[dep_name] = _constraint(name, dep_name, value if isinstance(value, str) else "")

    return CookbookMetadata(
        name=name,
        version=version,
        dependencies=deps,
        description=data.get("description") or "",
        maintainer=data.get("maintainer") or "",
        license=data.get("license") or "",
    )


def parse_metadata_rb(text: str, *, fallback_name: str = "") -> CookbookMetadata:
    """Parse the resolution-relevant subset of a ``metadata.rb`` file.

    Raises:
        InvalidMetadataError: On a bad version or dependency constraint.
    """
    fields: dict[str, str] = {}
    depends: list[tuple[str, str]] = []

    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        m = _DEPENDS_PATTERN.match(stripped)
        if m:
            dep_name = _literal(m, 1) or ""
            depends.append((dep_name, _literal(m, 3) or ""))
            continue
        m = _FIELD_PATTERN.match(stripped)
        if m:
            # First declaration wins.
            fields.setdefault(m.group(1), _literal(m, 2) or "")

    name = fields.get("name") or fallback_name
    if not name:
        raise InvalidMetadataError(METADATA_RB, "missing cookbook name")

    version = ZERO
    if fields.get("version"):
        try:
            version = parse_version(fields["version"])
        except ParseError as exc:
            raise InvalidMetadataError(name, f"invalid version: {exc}") from exc

    deps = {dep_name: _constraint(name, dep_name, raw) for dep_name, raw in depends if dep_name}
    return CookbookMetadata(
        name=name,
        version=version,
        dependencies=deps,
        description=fields.get("description", ""),
        maintainer=fields.get("maintainer", ""),
        license=fields.get("license", ""),
    )


def has_metadata(directory: Path) -> bool:
    """True if *directory* looks like a cookbook."""
    return (directory / METADATA_JSON).is_file() or (directory / METADATA_RB).is_file()


def read_metadata(directory: Path | str) -> CookbookMetadata:
    """Read the metadata of the cookbook in *directory*.

    ``metadata.json`` is preferred over ``metadata.rb``.

    Raises:
        InvalidMetadataError: If neither file exists or the file is invalid.
    """
    directory = Path(directory)
    for filename, parse in ((METADATA_JSON, parse_metadata_json), (METADATA_RB, parse_metadata_rb)):
        path = directory / filename
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise InvalidMetadataError(directory.name, f"cannot read {path}: {exc}") from exc
        logger.debug("Reading cookbook metadata from %s", path)
        metadata = parse(text, fallback_name=directory.name)
        metadata.path = str(directory)
        return metadata

    raise InvalidMetadataError(directory.name, f"no {METADATA_JSON} or {METADATA_RB} found in {directory}")

"""Lockfile core class: cookbook management and serialization.

The ``Lockfile`` class is the in-memory form of a ``Berksfile.lock.json``
file. It provides:

- **Cookbook management:** add, get, count, and list cookbooks.
- **Serialization:** deterministic ``to_dict``, ``to_json``, and ``write``.
- **Metadata:** resolution strategy and install order.

Determinism guarantee: apart from ``generated_at``, ``to_json()`` output
depends only on content. Cookbooks are grouped by source, sources and
cookbooks are sorted by key, and all dictionary keys are sorted.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from cookshelf import __version__
from cookshelf.core.lockfile.models import LockedCookbook, LockfileMetadata

logger = logging.getLogger(__name__)


class Lockfile:
    """Cookbook lockfile: the exact versions a resolution selected.

    Example::

        lf = Lockfile()
        lf.add_cookbook(LockedCookbook(name="nginx", version="2.7.6",
                                       source_url="https://supermarket.chef.io"))
        lf.write(Path("Berksfile.lock.json"))
    """

    # Berkshelf lock file format revision.
    REVISION: int = 7

    def __init__(self) -> None:
        self._cookbooks: dict[str, LockedCookbook] = {}
        self._metadata = LockfileMetadata()

    # -- Cookbook management ---------------------------------------------------

    def add_cookbook(self, cookbook: LockedCookbook) -> None:
        """Add a locked cookbook, replacing any entry with the same name."""
        self._cookbooks[cookbook.name] = cookbook
        self._metadata.total_cookbooks = len(self._cookbooks)

    def get_cookbook(self, name: str) -> LockedCookbook | None:
        return self._cookbooks.get(name)

    def has_cookbook(self, name: str) -> bool:
        return name in self._cookbooks

    @property
    def cookbook_count(self) -> int:
        return len(self._cookbooks)

    @property
    def cookbook_names(self) -> list[str]:
        """Sorted list of all cookbook names in the lockfile."""
        return sorted(self._cookbooks)

    def versions(self) -> dict[str, str]:
        return {name: self._cookbooks[name].version for name in self.cookbook_names}

    # -- Serialization ---------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize the lockfile to a dict grouped by source.

        Returns:
            A dictionary suitable for JSON serialization.
        """
        sources: dict[str, Any] = {}
        for name in self.cookbook_names:
            cb = self._cookbooks[name]
            group = sources.setdefault(
                cb.source_key,
                {"type": cb.source_type, "cookbooks": {}},
            )
            if cb.source_url:
                group["url"] = cb.source_url

            entry: dict[str, Any] = {"version": cb.version}
            if cb.dependencies:
                entry["dependencies"] = dict(sorted(cb.dependencies.items()))
            source_info = {
                key: value
                for key, value in (
                    ("type", cb.source_type),
                    ("url", cb.source_url),
                    ("path", cb.source_path),
                    ("branch", cb.branch),
                    ("tag", cb.tag),
                    ("ref", cb.ref),
                )
                if value
            }
            entry["source"] = source_info
            group["cookbooks"][name] = entry

        return {
            "revision": self.REVISION,
            "generated_by": f"cookshelf {__version__}",
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "sources": dict(sorted(sources.items())),
            "metadata": {
                "total_cookbooks": self._metadata.total_cookbooks,
                "resolution_strategy": self._metadata.resolution_strategy,
                "install_order": list(self._metadata.install_order),
            },
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to a deterministic JSON string."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True) + "\n"

    def write(self, path: Path) -> None:
        """Write the lockfile to disk as JSON.

        Creates parent directories if they do not exist.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(), encoding="utf-8")
        logger.info("Wrote lockfile with %d cookbooks to %s", self.cookbook_count, path)

    # -- Metadata access -------------------------------------------------------

    @property
    def metadata(self) -> LockfileMetadata:
        return self._metadata

    @metadata.setter
    def metadata(self, value: LockfileMetadata) -> None:
        self._metadata = value

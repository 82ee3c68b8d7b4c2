"""Memo of version listings and cookbook metadata fetched from sources."""

from __future__ import annotations

import logging
import threading

from cookshelf.core.dependency.constraints import Version
from cookshelf.core.dependency.models import Cookbook

logger = logging.getLogger(__name__)


class ResolutionCache:
    """Caches available versions and per-version metadata.

    Keys include the source name, so the same cookbook served by two
    sources is cached separately. Stored lists are copied on the way in and
    out so callers cannot mutate cached state.
    """

    def __init__(self) -> None:
        self._versions: dict[str, list[Version]] = {}
        self._metadata: dict[str, Cookbook] = {}
        self._lock = threading.Lock()

    @staticmethod
    def versions_key(source_name: str, name: str) -> str:
        return f"{source_name}:{name}"

    @staticmethod
    def metadata_key(source_name: str, name: str, version: Version) -> str:
        return f"{source_name}:{name}@{version}"

    def get_versions(self, key: str) -> list[Version] | None:
        with self._lock:
            versions = self._versions.get(key)
            return list(versions) if versions is not None else None

    def set_versions(self, key: str, versions: list[Version]) -> None:
        with self._lock:
            self._versions[key] = list(versions)

    def get_metadata(self, key: str) -> Cookbook | None:
        with self._lock:
            return self._metadata.get(key)

    def set_metadata(self, key: str, cookbook: Cookbook) -> None:
        with self._lock:
            self._metadata[key] = cookbook

    def clear(self) -> None:
        with self._lock:
            logger.debug(
                "Clearing cache (%d version lists, %d metadata entries)",
                len(self._versions),
                len(self._metadata),
            )
            self._versions.clear()
            self._metadata.clear()

"""Lockfile factory: constructing lockfiles from resolution results.

``from_resolution`` is the entry point in the normal workflow::

    resolution = await DependencyResolver(sources).resolve(requirements)
    lockfile = Lockfile.from_resolution(resolution)
    lockfile.write(Path("Berksfile.lock.json"))
"""

from __future__ import annotations

from typing import Any

from cookshelf.core.dependency.resolution import Resolution
from cookshelf.core.lockfile.models import LockedCookbook
from cookshelf.exceptions import LockfileError


def _from_resolution(cls: type, resolution: Resolution) -> Any:
    """Create a lockfile from a dependency ``Resolution``.

    Args:
        resolution: The result of ``DependencyResolver.resolve()``.

    Returns:
        A new ``Lockfile`` with one entry per resolved cookbook and the
        resolution's install order.

    Raises:
        LockfileError: If the resolution has errors; a partial resolution
            is never locked.
    """
    if resolution.has_errors():
        summary = "; ".join(str(e) for e in resolution.errors)
        raise LockfileError(f"cannot create lockfile from a failed resolution: {summary}")

    lf = cls()
    for rc in resolution.all_cookbooks():
        dependencies = {name: str(version) for name, version in rc.dependencies.items() if version is not None}
        lf.add_cookbook(LockedCookbook.from_location(rc.name, str(rc.version), rc.source, dependencies))
    lf.metadata.install_order = resolution.install_order
    return lf

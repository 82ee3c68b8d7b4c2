"""Cookbook lockfile: reproducible resolutions.

The lockfile captures the exact resolved state of a Berksfile: every
cookbook at its selected version, where it came from, the versions of its
dependencies and the install order.

The package is split into focused submodules:

- ``models``: Data classes (``LockedCookbook``, ``LockfileMetadata``).
- ``lockfile``: The ``Lockfile`` class with cookbook management and
  serialization.
- ``operations``: Deserialization (``from_dict``, ``from_json``, ``read``),
  validation, and diffing.
- ``factory``: The ``from_resolution`` factory method.
- ``outdated``: ``check_outdated``, comparing locked versions with sources.

All public names are re-exported here.
"""

from cookshelf.core.lockfile.models import (
    LockedCookbook,
    LockfileMetadata,
)

from cookshelf.core.lockfile.lockfile import Lockfile
from cookshelf.core.lockfile.outdated import OutdatedCookbook, check_outdated

# Attach operations to Lockfile as methods/classmethods
from cookshelf.core.lockfile import operations as _ops
from cookshelf.core.lockfile import factory as _factory

Lockfile.from_dict = classmethod(_ops._from_dict)
Lockfile.from_json = classmethod(_ops._from_json)
Lockfile.read = classmethod(_ops._read)
Lockfile.validate = _ops._validate
Lockfile.diff = _ops._diff
Lockfile.from_resolution = classmethod(_factory._from_resolution)

DEFAULT_LOCKFILE_NAME = "Berksfile.lock.json"

__all__ = [
    "DEFAULT_LOCKFILE_NAME",
    "LockedCookbook",
    "Lockfile",
    "LockfileMetadata",
    "OutdatedCookbook",
    "check_outdated",
]

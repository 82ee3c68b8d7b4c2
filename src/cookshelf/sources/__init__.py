"""Cookbook sources: where versions and metadata come from.

Public API::

    from cookshelf.sources import CookbookSource, SourceFactory
    from cookshelf.sources.supermarket import SupermarketSource
    from cookshelf.sources.path import PathSource
    from cookshelf.sources.git import GitSource
"""

from __future__ import annotations

from cookshelf.sources.base import CookbookSource
from cookshelf.sources.factory import SourceFactory

__all__ = [
    "CookbookSource",
    "SourceFactory",
]

"""cookshelf: Dependency resolution for cookbook packages."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

PUBLIC_SUPERMARKET = "https://supermarket.chef.io"

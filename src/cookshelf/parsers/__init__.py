"""Parsers for Berksfile manifests and cookbook metadata files."""

from cookshelf.parsers.berksfile import Berksfile, CookbookDef, load_berksfile, parse_berksfile
from cookshelf.parsers.metadata import CookbookMetadata, read_metadata

__all__ = [
    "Berksfile",
    "CookbookDef",
    "CookbookMetadata",
    "load_berksfile",
    "parse_berksfile",
    "read_metadata",
]

"""Package data model and catalog loading."""

from .catalog import load_catalog, parse_catalog
from .models import Package, PackageKind, Release

__all__ = [
    "Package",
    "PackageKind",
    "Release",
    "load_catalog",
    "parse_catalog",
]

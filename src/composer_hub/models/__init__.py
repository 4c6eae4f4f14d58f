"""Pydantic models for API payloads."""

from .composer import ComposerAuthor, ComposerDist, ComposerExtra, ComposerPackageVersion
from .error import Error

__all__ = [
    "ComposerAuthor",
    "ComposerDist",
    "ComposerExtra",
    "ComposerPackageVersion",
    "Error",
]

# coding: utf-8

"""
    Composer repository document models
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Any, ClassVar, Dict, List, Optional


class ComposerAuthor(BaseModel):
    name: str
    homepage: Optional[str] = None
    __properties: ClassVar[list[str]] = ["name", "homepage"]

    model_config = {
        "populate_by_name": True,
        "protected_namespaces": (),
    }


class ComposerDist(BaseModel):
    """
    Where Composer downloads the release from, with the artifact's SHA-1.
    """  # noqa: E501

    type: str = Field(default="zip")
    url: str
    shasum: str
    __properties: ClassVar[list[str]] = ["type", "url", "shasum"]


class ComposerExtra(BaseModel):
    display_name: str = Field(alias="display-name")
    __properties: ClassVar[list[str]] = ["display-name"]

    model_config = {
        "populate_by_name": True,
        "protected_namespaces": (),
    }


class ComposerPackageVersion(BaseModel):
    """
    One version record of a package inside packages.json.
    """  # noqa: E501

    name: str = Field(description="Composer package name, vendor/slug.")
    version: str
    version_normalized: Optional[str] = None
    type: str
    description: Optional[str] = None
    homepage: Optional[str] = None
    authors: List[ComposerAuthor] = Field(default_factory=list)
    require: Dict[str, str] = Field(default_factory=dict)
    extra: Optional[ComposerExtra] = None
    dist: ComposerDist
    __properties: ClassVar[list[str]] = [
        "name",
        "version",
        "version_normalized",
        "type",
        "description",
        "homepage",
        "authors",
        "require",
        "extra",
        "dist",
    ]

    model_config = {
        "populate_by_name": True,
        "protected_namespaces": (),
    }

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

"""Load the externally resolved package list from a YAML catalog."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from composer_hub.exceptions import CatalogError
from composer_hub.packages.models import Package, PackageKind


def _version_to_str(value: Any) -> Any:
    # YAML reads unquoted versions such as 1.0 as numbers.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class CatalogRelease(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: str = Field(min_length=1)
    source_url: Optional[str] = None

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_text(cls, value: Any) -> Any:
        return _version_to_str(value)


class CatalogEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    slug: str = Field(min_length=1)
    kind: PackageKind
    name: str = ""
    author: str = ""
    author_url: str = ""
    description: str = ""
    homepage: str = ""
    directory: Optional[Path] = None
    single_file: bool = False
    installed_version: Optional[str] = None
    releases: list[CatalogRelease] = Field(default_factory=list)

    @field_validator("installed_version", mode="before")
    @classmethod
    def _installed_version_as_text(cls, value: Any) -> Any:
        return _version_to_str(value)

    def to_package(self, base_dir: Optional[Path] = None) -> Package:
        directory = self.directory
        if directory is not None:
            directory = directory.expanduser()
            if not directory.is_absolute() and base_dir is not None:
                directory = base_dir / directory
        package = Package(
            slug=self.slug,
            kind=self.kind,
            name=self.name,
            author=self.author,
            author_url=self.author_url,
            description=self.description,
            homepage=self.homepage,
            directory=directory,
            is_single_file=self.single_file,
            installed_version=self.installed_version,
        )
        return package.with_releases(
            (release.version, release.source_url) for release in self.releases
        )


class CatalogDocument(BaseModel):
    packages: list[CatalogEntry] = Field(default_factory=list)


def parse_catalog(payload: Any, *, base_dir: Optional[Path] = None) -> list[Package]:
    if payload is None:
        return []
    try:
        document = CatalogDocument.model_validate(payload)
    except ValidationError as exc:
        raise CatalogError(f"Invalid package catalog: {exc}") from exc
    try:
        return [entry.to_package(base_dir) for entry in document.packages]
    except ValueError as exc:
        raise CatalogError(f"Invalid package catalog: {exc}") from exc


def load_catalog(path: Path | str) -> list[Package]:
    """Read packages from a catalog file.

    Relative package directories resolve against the catalog's folder and
    release order in the file is kept, newest first.
    """

    catalog_path = Path(path).expanduser()
    try:
        with catalog_path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except OSError as exc:
        raise CatalogError(f"Unable to read package catalog {catalog_path}.") from exc
    except yaml.YAMLError as exc:
        raise CatalogError(f"Invalid YAML in package catalog {catalog_path}.") from exc
    return parse_catalog(payload, base_dir=catalog_path.parent.resolve())


__all__ = [
    "CatalogDocument",
    "CatalogEntry",
    "CatalogRelease",
    "load_catalog",
    "parse_catalog",
]

"""Package and release value objects."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from composer_hub.exceptions import InvalidReleaseVersion


class PackageKind(str, enum.Enum):
    """Discriminator for the package variants."""

    PLUGIN = "plugin"
    THEME = "theme"


_COMPOSER_TYPES = {
    PackageKind.PLUGIN: "wordpress-plugin",
    PackageKind.THEME: "wordpress-theme",
}


@dataclass(frozen=True)
class Package:
    """An installable plugin or theme.

    ``releases`` is ordered newest first; the first entry is the latest
    release. Use :meth:`with_releases` to attach releases, since every
    release keeps a back-reference to the package that owns it.

    For a single-file plugin ``directory`` is the folder containing the
    plugin file, which is named ``{slug}.php``.
    """

    slug: str
    kind: PackageKind
    name: str = ""
    author: str = ""
    author_url: str = ""
    description: str = ""
    homepage: str = ""
    directory: Optional[Path] = None
    is_single_file: bool = False
    installed_version: Optional[str] = None
    releases: Mapping[str, Release] = field(
        default_factory=lambda: MappingProxyType({}),
        compare=False,
        repr=False,
    )

    def __post_init__(self) -> None:
        if not self.slug or not self.slug.strip():
            raise ValueError("Package slug is required.")
        kind = PackageKind(self.kind)
        object.__setattr__(self, "kind", kind)
        if kind is PackageKind.THEME and self.is_single_file:
            raise ValueError("Themes cannot be single-file packages.")
        if self.directory is not None and not isinstance(self.directory, Path):
            object.__setattr__(self, "directory", Path(self.directory))
        if not self.name:
            object.__setattr__(self, "name", self.slug)

    def with_releases(
        self,
        releases: Iterable[Tuple[str, Optional[str]]],
    ) -> Package:
        """Return a copy of the package owning the given (version, source_url) pairs."""

        package = dataclasses.replace(self, releases=MappingProxyType({}))
        ordered: dict[str, Release] = {}
        for version, source_url in releases:
            if version in ordered:
                raise ValueError(f"Duplicate release version {version} for {self.slug}.")
            ordered[version] = Release(package=package, version=version, source_url=source_url)
        object.__setattr__(package, "releases", MappingProxyType(ordered))
        return package

    @property
    def composer_type(self) -> str:
        return _COMPOSER_TYPES[self.kind]

    @property
    def main_file(self) -> Optional[Path]:
        if self.directory is None:
            return None
        if self.is_single_file:
            return self.directory / f"{self.slug}.php"
        return self.directory

    def is_installed(self) -> bool:
        return self.directory is not None

    def has_releases(self) -> bool:
        return bool(self.releases)

    def get_release(self, version: str) -> Release:
        try:
            return self.releases[version]
        except KeyError:
            raise InvalidReleaseVersion.from_version(version, self.slug) from None

    def get_latest_release(self) -> Release:
        for release in self.releases.values():
            return release
        raise InvalidReleaseVersion.has_no_releases(self.slug)

    def get_latest_version(self) -> str:
        return self.get_latest_release().version


@dataclass(frozen=True)
class Release:
    """A specific version of a package."""

    package: Package = field(compare=False, repr=False)
    version: str
    source_url: Optional[str] = None

    @property
    def file(self) -> str:
        slug = self.package.slug
        return f"{slug}/{slug}-{self.version}.zip"

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.package.kind.value, self.package.slug, self.version)

    def __str__(self) -> str:
        return f"{self.package.slug} {self.version}"


__all__ = ["Package", "PackageKind", "Release"]

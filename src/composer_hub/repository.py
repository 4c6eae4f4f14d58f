"""Package lookup and packages.json assembly."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Optional

from composer_hub.config.settings import ComposerHubSettings
from composer_hub.exceptions import ComposerHubError
from composer_hub.packages.models import Package, PackageKind
from composer_hub.transformer import ComposerPackageTransformer

LOGGER = logging.getLogger(__name__)

PackageKey = tuple[PackageKind, str]


class PackageRepository:
    """Packages keyed by ``(kind, slug)``.

    Iteration yields plugins before themes, each in insertion order, so a
    slug shared by both kinds always resolves to the plugin.
    """

    def __init__(self, packages: Iterable[Package] = ()) -> None:
        self._packages: dict[PackageKey, Package] = {}
        for package in packages:
            self.add(package)

    def __len__(self) -> int:
        return len(self._packages)

    def __iter__(self):
        return iter(self.all())

    def add(self, package: Package) -> None:
        key = (package.kind, package.slug)
        if key in self._packages:
            raise ValueError(f"Duplicate {package.kind.value} package: {package.slug}.")
        self._packages[key] = package

    def all(self) -> list[Package]:
        plugins = [p for p in self._packages.values() if p.kind is PackageKind.PLUGIN]
        themes = [p for p in self._packages.values() if p.kind is PackageKind.THEME]
        return plugins + themes

    def get(self, kind: PackageKind | str, slug: str) -> Optional[Package]:
        return self._packages.get((PackageKind(kind), slug))

    def find_by_slug(self, slug: str) -> Optional[Package]:
        for kind in (PackageKind.PLUGIN, PackageKind.THEME):
            package = self.get(kind, slug)
            if package is not None:
                return package
        return None

    def whitelisted(
        self,
        plugins: Optional[Iterable[str]] = None,
        themes: Optional[Iterable[str]] = None,
    ) -> PackageRepository:
        """Return the packages allowed by the whitelists. ``None`` allows every slug."""

        allowed = {
            PackageKind.PLUGIN: None if plugins is None else set(plugins),
            PackageKind.THEME: None if themes is None else set(themes),
        }
        selected = []
        for package in self.all():
            slugs = allowed[package.kind]
            if slugs is None or package.slug in slugs:
                selected.append(package)
        return PackageRepository(selected)


class RepositoryIndexBuilder:
    def __init__(
        self,
        transformer: ComposerPackageTransformer,
        settings: ComposerHubSettings,
    ) -> None:
        self._transformer = transformer
        self._settings = settings

    def build(self, packages: Iterable[Package]) -> dict[str, Any]:
        """Assemble the ``{"packages": {...}}`` document.

        A release whose artifact or checksum fails is logged and left out,
        unless ``strict_index`` is set, in which case the error propagates.
        """

        index: dict[str, dict[str, Any]] = {}
        for package in packages:
            if not package.has_releases():
                continue
            name = self._transformer.package_name(package)
            if name in index:
                LOGGER.warning(
                    "Skipping %s %s; package name %s is already taken.",
                    package.kind.value,
                    package.slug,
                    name,
                )
                continue
            versions = self._transform_package(package)
            if versions:
                index[name] = versions
        return {"packages": index}

    def _transform_package(self, package: Package) -> dict[str, Any]:
        versions: dict[str, Any] = {}
        for version, release in package.releases.items():
            try:
                versions[version] = self._transformer.transform_release(release)
            except ComposerHubError as exc:
                if self._settings.strict_index:
                    raise
                LOGGER.error(
                    "Skipping release in index. package=%s version=%s error=%s",
                    package.slug,
                    version,
                    exc,
                )
        return versions

    def write_index(self, packages: Iterable[Package], path: Path | str) -> dict[str, Any]:
        document = self.build(packages)
        write_index(document, path)
        return document


def write_index(document: dict[str, Any], path: Path | str) -> Path:
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(document, handle, indent=2, ensure_ascii=False)
            handle.write("\n")
        os.replace(temp_path, target)
    finally:
        temp_path.unlink(missing_ok=True)
    LOGGER.info("Wrote repository index to %s.", target)
    return target


__all__ = [
    "PackageRepository",
    "RepositoryIndexBuilder",
    "write_index",
]

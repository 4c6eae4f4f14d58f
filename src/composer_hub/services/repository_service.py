from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Optional

from fastapi.responses import FileResponse

from composer_hub.archiver import Archiver
from composer_hub.config.settings import ComposerHubSettings, get_settings
from composer_hub.packages.catalog import load_catalog
from composer_hub.packages.models import Package, PackageKind, Release
from composer_hub.release_manager import ReleaseManager
from composer_hub.repository import PackageRepository, RepositoryIndexBuilder
from composer_hub.storage import LocalStorage, Storage
from composer_hub.transformer import ComposerPackageTransformer

LOGGER = logging.getLogger(__name__)


class RepositoryService:
    """Serves the index and artifacts for the whitelisted packages."""

    def __init__(
        self,
        *,
        settings: ComposerHubSettings,
        packages: Iterable[Package],
        storage: Storage,
        archiver: Archiver,
    ) -> None:
        self.settings = settings
        self.storage = storage
        self.archiver = archiver
        self.packages = PackageRepository(packages).whitelisted(settings.plugins, settings.themes)
        self.release_manager = ReleaseManager(archiver, storage)
        self.transformer = ComposerPackageTransformer(settings, storage, self.release_manager)
        self.index_builder = RepositoryIndexBuilder(self.transformer, settings)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ComposerHubSettings] = None,
        *,
        packages: Optional[Iterable[Package]] = None,
        storage: Optional[Storage] = None,
        archiver: Optional[Archiver] = None,
    ) -> RepositoryService:
        settings = settings or get_settings()
        if packages is None:
            if settings.catalog_path:
                packages = load_catalog(settings.catalog_path)
            else:
                LOGGER.warning("No package catalog configured; the repository is empty.")
                packages = []
        return cls(
            settings=settings,
            packages=packages,
            storage=storage or LocalStorage.from_settings(settings),
            archiver=archiver or Archiver.from_settings(settings),
        )

    def get_index(self) -> dict[str, Any]:
        return self.index_builder.build(self.packages.all())

    def write_index(self, path: Path | str) -> dict[str, Any]:
        return self.index_builder.write_index(self.packages.all(), path)

    def find_package(self, vendor: str, slug: str) -> Optional[Package]:
        if vendor != self.settings.vendor:
            return None
        return self.packages.find_by_slug(slug)

    def get_release(
        self,
        slug: str,
        version: str,
        kind: Optional[PackageKind | str] = None,
    ) -> Optional[Release]:
        if kind is None:
            package = self.packages.find_by_slug(slug)
        else:
            package = self.packages.get(kind, slug)
        if package is None:
            return None
        return package.get_release(version)

    def download(self, release: Release) -> FileResponse:
        return self.release_manager.send(release)

    def archive(self, release: Release) -> str:
        return self.release_manager.archive(release)


__all__ = ["RepositoryService"]

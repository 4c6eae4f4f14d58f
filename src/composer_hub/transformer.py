"""Turn packages into Composer repository records."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

from composer_hub.config.settings import ComposerHubSettings
from composer_hub.models.composer import (
    ComposerAuthor,
    ComposerDist,
    ComposerExtra,
    ComposerPackageVersion,
)
from composer_hub.packages.models import Package, Release
from composer_hub.release_manager import ReleaseManager
from composer_hub.storage import Storage
from composer_hub.versioning import normalize_version

LOGGER = logging.getLogger(__name__)

INSTALLERS_REQUIREMENT = {"composer/installers": "^1.0 || ^2.0"}
DIST_CHECKSUM_ALGORITHM = "sha1"


class ComposerPackageTransformer:
    def __init__(
        self,
        settings: ComposerHubSettings,
        storage: Storage,
        release_manager: Optional[ReleaseManager] = None,
    ) -> None:
        self._settings = settings
        self._storage = storage
        self._release_manager = release_manager

    @property
    def vendor(self) -> str:
        return self._settings.vendor

    def package_name(self, package: Package) -> str:
        return f"{self.vendor}/{package.slug}"

    def download_url(self, release: Release) -> str:
        slug = quote(release.package.slug, safe="")
        version = quote(release.version, safe="")
        return f"{self._settings.base_url}/dist/{self.vendor}/{slug}/{version}.zip"

    def transform(self, package: Package) -> dict[str, dict[str, Any]]:
        """Return ``{version: record}`` for every release, newest first."""

        return {
            version: self.transform_release(release)
            for version, release in package.releases.items()
        }

    def transform_release(self, release: Release) -> dict[str, Any]:
        package = release.package
        if self._release_manager is not None:
            self._release_manager.ensure_artifact(release)
        shasum = self._storage.checksum(DIST_CHECKSUM_ALGORITHM, release.file)

        authors = []
        if package.author:
            authors.append(ComposerAuthor(name=package.author, homepage=package.author_url or None))

        record = ComposerPackageVersion(
            name=self.package_name(package),
            version=release.version,
            version_normalized=self._normalize(release),
            type=package.composer_type,
            description=package.description,
            homepage=package.homepage,
            authors=authors,
            require=dict(INSTALLERS_REQUIREMENT),
            extra=ComposerExtra(display_name=package.name),
            dist=ComposerDist(url=self.download_url(release), shasum=shasum),
        )
        return record.to_dict()

    @staticmethod
    def _normalize(release: Release) -> Optional[str]:
        try:
            return normalize_version(release.version)
        except ValueError:
            LOGGER.debug("Leaving %s without a normalized version.", release)
            return None


__all__ = ["ComposerPackageTransformer", "INSTALLERS_REQUIREMENT"]

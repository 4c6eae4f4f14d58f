"""Make sure a release's artifact exists in storage before it is served."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from fastapi.responses import FileResponse

from composer_hub.archiver import Archiver
from composer_hub.exceptions import FileOperationFailed, PackageNotInstalled
from composer_hub.packages.models import Release
from composer_hub.storage import Storage

LOGGER = logging.getLogger(__name__)

ReleaseKey = tuple[str, str, str]


class ReleaseManager:
    """Builds artifacts on demand and commits them into storage.

    Builds are serialized per ``(kind, slug, version)``; requests for other
    releases never wait on each other.
    """

    def __init__(self, archiver: Archiver, storage: Storage) -> None:
        self._archiver = archiver
        self._storage = storage
        self._locks: dict[ReleaseKey, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def storage(self) -> Storage:
        return self._storage

    def _lock_for(self, release: Release) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(release.key)
            if lock is None:
                lock = threading.Lock()
                self._locks[release.key] = lock
            return lock

    def exists(self, release: Release) -> bool:
        return self._storage.exists(release.file)

    def ensure_artifact(self, release: Release) -> str:
        if self._storage.exists(release.file):
            return release.file
        with self._lock_for(release):
            if self._storage.exists(release.file):
                return release.file
            self._build(release)
        return release.file

    def archive(self, release: Release) -> str:
        """Rebuild the artifact even if storage already holds one."""

        with self._lock_for(release):
            self._build(release, replace=True)
        return release.file

    def checksum(self, algorithm: str, release: Release) -> str:
        self.ensure_artifact(release)
        return self._storage.checksum(algorithm, release.file)

    def send(self, release: Release) -> FileResponse:
        self.ensure_artifact(release)
        return self._storage.send(release.file)

    def _build(self, release: Release, *, replace: bool = False) -> None:
        package = release.package
        temp_path: Optional[Path] = None
        try:
            temp_path = self._produce(release)
            if self._storage.move(temp_path, release.file):
                LOGGER.info("Stored artifact %s.", release.file)
                return
            if not replace and self._storage.exists(release.file):
                # Another process committed the same artifact first.
                LOGGER.info("Artifact %s was committed concurrently.", release.file)
                return
            raise FileOperationFailed.unable_to_move_artifact(release)
        except Exception:
            LOGGER.exception(
                "Unable to build artifact. package=%s version=%s",
                package.slug,
                release.version,
            )
            raise
        finally:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)

    def _produce(self, release: Release) -> Path:
        package = release.package
        builds_from_source = package.is_installed() and (
            package.installed_version is None or package.installed_version == release.version
        )
        if builds_from_source:
            return self._archiver.archive_from_source(package, release.version)
        if release.source_url:
            return self._archiver.archive_from_url(release)
        raise PackageNotInstalled.unable_to_archive_from_source(package)


__all__ = ["ReleaseManager"]

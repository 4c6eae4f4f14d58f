"""Build package artifacts in a scratch directory.

Both archive methods return the absolute path of the produced zip. The
archiver never writes into storage and never keeps the file: callers move
the artifact into storage or delete it.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import shutil
import stat
import tempfile
import zipfile
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

import requests

from composer_hub.config.settings import ComposerHubSettings, get_settings
from composer_hub.exceptions import (
    FileArchiveInvalid,
    FileDownloadFailed,
    FileOperationFailed,
    PackageNotInstalled,
)
from composer_hub.packages.models import Package, Release

LOGGER = logging.getLogger(__name__)

DISTIGNORE_FILENAME = ".distignore"
DEFAULT_EXCLUDES: tuple[str, ...] = (
    ".DS_Store",
    "Thumbs.db",
    ".git",
    ".svn",
    ".hg",
    "node_modules",
    "bower_components",
)

# Fixed entry timestamp so repeated builds only differ when the sources do.
_ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)
_CHUNK_SIZE = 1024 * 1024

ExcludeFilter = Callable[[list[str], Release], list[str]]


def parse_distignore(content: str) -> list[str]:
    patterns: list[str] = []
    for line in content.splitlines():
        pattern = line.strip()
        if not pattern or pattern.startswith("#"):
            continue
        patterns.append(pattern)
    return patterns


def is_excluded(relative_path: str, patterns: Iterable[str]) -> bool:
    """Whether a path relative to the package root matches an exclude pattern."""

    parts = relative_path.split("/")
    for raw in patterns:
        anchored = raw.strip().startswith("/")
        pattern = raw.strip().strip("/")
        if not pattern:
            continue
        if relative_path == pattern or relative_path.startswith(f"{pattern}/"):
            return True
        if anchored or "/" in pattern:
            # Anchored at the package root; "*" never crosses a "/".
            segments = pattern.split("/")
            if len(segments) <= len(parts) and all(
                fnmatch.fnmatchcase(part, segment) for part, segment in zip(parts, segments)
            ):
                return True
            continue
        if any(fnmatch.fnmatchcase(part, pattern) for part in parts):
            return True
    return False


def _ensure_directory(path: Path, target: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileOperationFailed.unable_to_create_directory(target) from exc


class Archiver:
    def __init__(
        self,
        *,
        scratch_root: Path | str,
        session: Optional[requests.Session] = None,
        timeout_seconds: int = 300,
        exclude_filter: Optional[ExcludeFilter] = None,
    ) -> None:
        self._scratch_root = Path(scratch_root).expanduser().resolve()
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds
        self._exclude_filter = exclude_filter

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ComposerHubSettings] = None,
        **kwargs,
    ) -> Archiver:
        settings = settings or get_settings()
        return cls(
            scratch_root=settings.scratch_root,
            timeout_seconds=int(settings.download_timeout_seconds),
            **kwargs,
        )

    @property
    def scratch_root(self) -> Path:
        return self._scratch_root

    def get_absolute_path(self, path: str = "") -> Path:
        return self._scratch_root / path.lstrip("/")

    def archive_from_source(
        self,
        package: Package,
        version: str,
        exclude_filter: Optional[ExcludeFilter] = None,
    ) -> Path:
        """Zip the installed source of ``package`` for ``version``.

        The archive holds a top-level ``{directory name}/`` folder, or just the
        plugin file for single-file plugins.
        """

        directory = package.directory
        if directory is None or not package.is_installed():
            raise PackageNotInstalled.unable_to_archive_from_source(package)

        release = package.get_release(version)
        excludes = self.get_excluded_files(package, release, exclude_filter)

        if package.is_single_file:
            strip_root = directory
            files = [package.main_file] if package.main_file and package.main_file.is_file() else []
        else:
            strip_root = directory.parent
            files = list(self._iter_files(directory, excludes))

        filename = self.get_absolute_path(release.file)
        _ensure_directory(filename.parent, filename)
        self._write_zip(filename, files, strip_root)

        LOGGER.info("Archived %s %s from source.", package.name, version)
        return filename

    def get_excluded_files(
        self,
        package: Package,
        release: Release,
        exclude_filter: Optional[ExcludeFilter] = None,
    ) -> list[str]:
        excludes: list[str] = list(DEFAULT_EXCLUDES)
        if package.directory is not None and not package.is_single_file:
            dist_ignore_path = package.directory / DISTIGNORE_FILENAME
            if dist_ignore_path.is_file():
                try:
                    content = dist_ignore_path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as exc:
                    LOGGER.error("Unable to read %s. error=%s", dist_ignore_path, exc)
                    raise FileOperationFailed.unable_to_read_ignore_file(
                        dist_ignore_path,
                        release,
                    ) from exc
                excludes = parse_distignore(content)

        for hook in (self._exclude_filter, exclude_filter):
            if hook is not None:
                excludes = list(hook(list(excludes), release))
        return excludes

    def archive_from_url(self, release: Release) -> Path:
        """Download a prebuilt release asset and validate it as a zip archive."""

        filename = self.get_absolute_path(release.file)
        url = release.source_url
        if not url:
            LOGGER.error("Download failed. No source URL for %s.", release)
            raise FileDownloadFailed.for_file_name(filename, release)

        _ensure_directory(self._scratch_root, filename)
        fd, temp_name = tempfile.mkstemp(
            dir=self._scratch_root,
            prefix=".download-",
            suffix=".zip",
        )
        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                self._download(release, handle, filename)

            if not self._is_valid_zip(temp_path):
                LOGGER.error("File archive invalid. url=%s file=%s", url, temp_path)
                raise FileArchiveInvalid.for_file_name(filename, release)

            _ensure_directory(filename.parent, filename)
            try:
                os.replace(temp_path, filename)
            except OSError as exc:
                raise FileOperationFailed.unable_to_rename_temporary_artifact(
                    filename,
                    temp_path,
                ) from exc
        finally:
            temp_path.unlink(missing_ok=True)

        LOGGER.info("Archived %s %s from URL.", release.package.name, release.version)
        return filename

    def _download(self, release: Release, handle, filename: Path) -> None:
        url = release.source_url
        try:
            with self._session.get(url, stream=True, timeout=self._timeout_seconds) as response:
                response.raise_for_status()
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    if chunk:
                        handle.write(chunk)
        except requests.RequestException as exc:
            LOGGER.error("Download failed. url=%s error=%s", url, exc)
            raise FileDownloadFailed.for_file_name(filename, release) from exc

    @staticmethod
    def _is_valid_zip(path: Path) -> bool:
        if not zipfile.is_zipfile(path):
            return False
        try:
            with zipfile.ZipFile(path) as zip_file:
                return zip_file.testzip() is None
        except (zipfile.BadZipFile, OSError):
            return False

    @staticmethod
    def _iter_files(directory: Path, excludes: list[str]) -> Iterator[Path]:
        for root, dirnames, filenames in os.walk(directory):
            root_path = Path(root)
            relative_root = root_path.relative_to(directory).as_posix()
            prefix = "" if relative_root == "." else f"{relative_root}/"
            dirnames[:] = sorted(
                name for name in dirnames if not is_excluded(f"{prefix}{name}", excludes)
            )
            for name in sorted(filenames):
                if is_excluded(f"{prefix}{name}", excludes):
                    continue
                yield root_path / name

    @staticmethod
    def _write_zip(filename: Path, files: list[Path], strip_root: Path) -> None:
        fd, temp_name = tempfile.mkstemp(
            dir=filename.parent,
            prefix=f".{filename.name}.",
            suffix=".part",
        )
        os.close(fd)
        temp_path = Path(temp_name)
        try:
            written = 0
            with zipfile.ZipFile(temp_path, "w", compression=zipfile.ZIP_DEFLATED) as zip_file:
                for path in sorted(files):
                    arcname = path.relative_to(strip_root).as_posix()
                    info = zipfile.ZipInfo(arcname, date_time=_ZIP_DATE_TIME)
                    info.compress_type = zipfile.ZIP_DEFLATED
                    info.external_attr = (stat.S_IMODE(path.stat().st_mode) | stat.S_IFREG) << 16
                    with path.open("rb") as source, zip_file.open(info, "w") as target:
                        shutil.copyfileobj(source, target, _CHUNK_SIZE)
                    written += 1
            if written == 0:
                raise FileOperationFailed.unable_to_create_zip_file(filename)
            try:
                os.replace(temp_path, filename)
            except OSError as exc:
                raise FileOperationFailed.unable_to_create_zip_file(filename) from exc
        except OSError as exc:
            raise FileOperationFailed.unable_to_create_zip_file(filename) from exc
        finally:
            temp_path.unlink(missing_ok=True)


__all__ = [
    "Archiver",
    "DEFAULT_EXCLUDES",
    "DISTIGNORE_FILENAME",
    "ExcludeFilter",
    "is_excluded",
    "parse_distignore",
]

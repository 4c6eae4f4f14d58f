"""Typed errors raised by the archiving and distribution pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:
    from composer_hub.packages.models import Package, Release

PathLike = Union[str, Path]


def _release_context(release: Optional[Release]) -> dict[str, Optional[str]]:
    if release is None:
        return {}
    return {"package": release.package.slug, "version": release.version}


class ComposerHubError(Exception):
    """Base error for composer-hub operations."""

    def __init__(
        self,
        message: str,
        *,
        package: Optional[str] = None,
        version: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.package = package
        self.version = version


class PackageNotInstalled(ComposerHubError):
    """Raised when a package without local source files is archived from source."""

    @classmethod
    def unable_to_archive_from_source(cls, package: Package) -> PackageNotInstalled:
        return cls(
            f'Unable to archive {package.slug}; the package is not installed.',
            package=package.slug,
        )


class InvalidReleaseVersion(ComposerHubError):
    """Raised for unknown versions and for packages without releases."""

    @classmethod
    def from_version(cls, version: str, package_name: str) -> InvalidReleaseVersion:
        return cls(
            f'Invalid release version "{version}" for {package_name}.',
            package=package_name,
            version=version,
        )

    @classmethod
    def has_no_releases(cls, package_name: str) -> InvalidReleaseVersion:
        return cls(f"{package_name} does not have any releases.", package=package_name)


class FileOperationFailed(ComposerHubError):
    """Raised when a local filesystem operation fails."""

    @classmethod
    def unable_to_create_directory(cls, path: PathLike) -> FileOperationFailed:
        return cls(f"Unable to create directory for {path}.")

    @classmethod
    def unable_to_create_zip_file(cls, path: PathLike) -> FileOperationFailed:
        return cls(f"Unable to create zip file {path}.")

    @classmethod
    def unable_to_rename_temporary_artifact(
        cls,
        path: PathLike,
        temporary: PathLike,
    ) -> FileOperationFailed:
        return cls(f"Unable to rename temporary artifact {temporary} to {path}.")

    @classmethod
    def unable_to_read_ignore_file(
        cls,
        path: PathLike,
        release: Optional[Release] = None,
    ) -> FileOperationFailed:
        return cls(f"Unable to read ignore file {path}.", **_release_context(release))

    @classmethod
    def unable_to_move_artifact(cls, release: Release) -> FileOperationFailed:
        return cls(
            f"Unable to move artifact {release.file} into storage.",
            package=release.package.slug,
            version=release.version,
        )


class FileDownloadFailed(ComposerHubError):
    """Raised when a release asset cannot be fetched."""

    @classmethod
    def for_file_name(
        cls,
        filename: PathLike,
        release: Optional[Release] = None,
    ) -> FileDownloadFailed:
        return cls(f"Unable to download {filename}.", **_release_context(release))


class FileArchiveInvalid(ComposerHubError):
    """Raised when a downloaded asset is not a valid zip archive."""

    @classmethod
    def for_file_name(
        cls,
        filename: PathLike,
        release: Optional[Release] = None,
    ) -> FileArchiveInvalid:
        return cls(f"Invalid zip archive for {filename}.", **_release_context(release))


class AuthenticationFailed(ComposerHubError):
    """Raised when an API key is missing or unknown."""


class FileNotFound(ComposerHubError):
    """Raised when a storage file does not exist."""

    @classmethod
    def for_file(cls, file: str) -> FileNotFound:
        return cls(f"File not found: {file}.")


class InvalidStoragePath(ComposerHubError):
    """Raised when a relative storage path escapes the storage root."""


class CatalogError(ComposerHubError):
    """Raised when a package catalog cannot be loaded."""


__all__ = [
    "AuthenticationFailed",
    "CatalogError",
    "ComposerHubError",
    "FileArchiveInvalid",
    "FileDownloadFailed",
    "FileNotFound",
    "FileOperationFailed",
    "InvalidReleaseVersion",
    "InvalidStoragePath",
    "PackageNotInstalled",
]

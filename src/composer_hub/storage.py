"""Storage for committed package artifacts."""

from __future__ import annotations

import errno
import hashlib
import logging
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Optional

from fastapi.responses import FileResponse

from composer_hub.config.settings import ComposerHubSettings, get_settings
from composer_hub.exceptions import FileNotFound, InvalidStoragePath

LOGGER = logging.getLogger(__name__)

ZIP_MEDIA_TYPE = "application/zip"
_TEMP_PREFIX = "."
_TEMP_SUFFIX = ".tmp"
_CHUNK_SIZE = 1024 * 1024


def _hash_file(path: Path, algorithm: str) -> str:
    try:
        digest = hashlib.new(algorithm)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Unsupported checksum algorithm: {algorithm}") from exc
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _is_temp_file(name: str) -> bool:
    return name.startswith(_TEMP_PREFIX) and name.endswith(_TEMP_SUFFIX)


class Storage(ABC):
    """Interface for a relative-path keyed artifact store.

    ``move`` must be atomic: readers either see no file or the complete
    file at the destination, never a partial write.
    """

    @abstractmethod
    def checksum(self, algorithm: str, file: str) -> str:
        ...

    @abstractmethod
    def delete(self, file: str) -> bool:
        ...

    @abstractmethod
    def exists(self, file: str) -> bool:
        ...

    @abstractmethod
    def list_files(self, directory: str) -> list[str]:
        ...

    @abstractmethod
    def move(self, source: Path | str, destination: str) -> bool:
        ...

    @abstractmethod
    def send(self, file: str) -> FileResponse:
        ...


class LocalStorage(Storage):
    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser().resolve()

    @classmethod
    def from_settings(cls, settings: Optional[ComposerHubSettings] = None) -> LocalStorage:
        settings = settings or get_settings()
        return cls(settings.storage_root)

    @property
    def root(self) -> Path:
        return self._root

    def get_absolute_path(self, file: str = "") -> Path:
        relative = PurePosixPath(file.replace("\\", "/"))
        if relative.is_absolute() or ".." in relative.parts:
            raise InvalidStoragePath(f"Invalid storage path: {file}.")
        return self._root.joinpath(*relative.parts)

    def checksum(self, algorithm: str, file: str) -> str:
        path = self.get_absolute_path(file)
        if not path.is_file():
            raise FileNotFound.for_file(file)
        return _hash_file(path, algorithm)

    def delete(self, file: str) -> bool:
        path = self.get_absolute_path(file)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            LOGGER.warning("Unable to delete %s: %s", path, exc)
            return False
        return True

    def exists(self, file: str) -> bool:
        return self.get_absolute_path(file).is_file()

    def list_files(self, directory: str) -> list[str]:
        path = self.get_absolute_path(directory)
        if not path.is_dir():
            return []
        files: list[str] = []
        for entry in sorted(path.rglob("*")):
            if not entry.is_file() or _is_temp_file(entry.name):
                continue
            files.append(entry.relative_to(self._root).as_posix())
        return files

    def move(self, source: Path | str, destination: str) -> bool:
        """Move a scratch file into storage, replacing any existing file."""

        source_path = Path(source)
        target = self.get_absolute_path(destination)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                os.replace(source_path, target)
            except OSError as exc:
                if exc.errno != errno.EXDEV:
                    raise
                self._copy_into_place(source_path, target)
                source_path.unlink(missing_ok=True)
        except OSError as exc:
            LOGGER.error("Unable to move %s to %s: %s", source_path, target, exc)
            return False
        return True

    def send(self, file: str) -> FileResponse:
        path = self.get_absolute_path(file)
        if not path.is_file():
            raise FileNotFound.for_file(file)
        return FileResponse(
            path,
            media_type=ZIP_MEDIA_TYPE,
            filename=path.name,
        )

    @staticmethod
    def _copy_into_place(source: Path, target: Path) -> None:
        fd, temp_name = tempfile.mkstemp(
            dir=target.parent,
            prefix=f"{_TEMP_PREFIX}{target.name}.",
            suffix=_TEMP_SUFFIX,
        )
        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "wb") as handle, source.open("rb") as reader:
                shutil.copyfileobj(reader, handle, _CHUNK_SIZE)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, target)
        finally:
            temp_path.unlink(missing_ok=True)


__all__ = ["LocalStorage", "Storage", "ZIP_MEDIA_TYPE"]

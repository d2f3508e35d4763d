"""Local filesystem backend adapter.

Maps the storage primitives onto ``pathlib``, ``os`` and ``shutil`` inside a
root directory. Paths are absolute OS paths, so ``File.path`` can be handed to
other tools directly.

Key Features:
    - Exclusive creation (``"xb"`` opens, ``mkdir`` without ``exist_ok``)
      so a lost race surfaces as AlreadyExistsError
    - Traversal prevention with symlink resolution
    - Cross-device moves emulated by ``shutil.move`` (copy then delete)

Error Translation:
    Every native ``OSError`` passes through :meth:`LocalStorageBackend._translate`.
    ``FileExistsError`` becomes AlreadyExistsError. For anything else the
    adapter probes the relevant path again: if it is no longer the expected
    kind the error becomes MissingFileError or MissingFolderError, otherwise
    it is wrapped in BackendFault with the native error as its cause.

Example:

    >>> from portable_storage import LocalStorageBackend, FileSystem
    >>> backend = LocalStorageBackend(root="/data/app")
    >>> fs = FileSystem(backend)
    >>> file = await fs.local_storage.create_file("notes.txt")
    >>> file.path
    '/data/app/notes.txt'

"""

from __future__ import annotations

import logging
import os
import shutil
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from .interfaces import (
    AlreadyExistsError,
    BackendFault,
    ExistenceResult,
    FileAccess,
    FileStats,
    MissingFileError,
    MissingFolderError,
    StorageBackend,
    UnsupportedOperationError,
    ValidationError,
)
from .path_utils import parent_path

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .interfaces import NotFoundError

logger = logging.getLogger(__name__)

_OPEN_MODES = {
    FileAccess.READ: "rb",
    FileAccess.READ_AND_WRITE: "r+b",
}


class LocalStorageBackend(StorageBackend):
    """Backend adapter backed by a directory on the local filesystem."""

    separator = os.sep

    def __init__(
        self,
        root: str | Path | None = None,
        *,
        create_root: bool = True,
    ) -> None:
        """Initialise the backend rooted at the given filesystem path."""
        base = Path(root or Path.cwd()).expanduser()
        self._root = base.resolve(strict=False)
        if create_root:
            self._root.mkdir(parents=True, exist_ok=True)
        elif not self._root.is_dir():
            raise MissingFolderError(str(self._root))
        logger.debug("Local storage rooted at %s", self._root)

    @property
    def root(self) -> Path:
        """Absolute path used as the backend root."""
        return self._root

    @property
    def root_path(self) -> str:
        return str(self._root)

    def owns(self, path: str) -> bool:
        if not os.path.isabs(path):
            return False
        try:
            self._resolve(path)
        except ValidationError:
            return False
        return True

    def normalize(self, path: str) -> str:
        return os.fspath(self._resolve(path))

    def same_entry(self, first: str, second: str) -> bool:
        a = self._resolve(first)
        b = self._resolve(second)
        if a == b:
            return True
        # Case-only respelling on case-insensitive filesystems.
        if a.parent != b.parent or a.name.casefold() != b.name.casefold():
            return False
        try:
            return os.path.samefile(a, b)
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise BackendFault(
                "Could not compare paths", path=second, cause=exc
            ) from exc

    def probe(self, path: str) -> ExistenceResult:
        target = self._resolve(path)
        try:
            if target.is_file():
                return ExistenceResult.FILE_EXISTS
            if target.is_dir():
                return ExistenceResult.FOLDER_EXISTS
        except OSError as exc:
            raise BackendFault(
                "Could not inspect path", path=path, cause=exc
            ) from exc
        return ExistenceResult.NOT_FOUND

    def create_file(self, path: str) -> None:
        target = self._resolve(path)
        with self._translate(path, check=self._parent(path), expect=ExistenceResult.FOLDER_EXISTS):
            with target.open("xb"):
                pass

    def create_directory(self, path: str) -> None:
        target = self._resolve(path)
        with self._translate(path, check=self._parent(path), expect=ExistenceResult.FOLDER_EXISTS):
            target.mkdir()

    def delete_file(self, path: str) -> None:
        target = self._resolve(path)
        with self._translate(path, expect=ExistenceResult.FILE_EXISTS):
            target.unlink()

    def delete_directory(self, path: str) -> None:
        target = self._resolve(path)
        if target == self._root:
            raise UnsupportedOperationError.cannot_delete_root(path)
        with self._translate(path, expect=ExistenceResult.FOLDER_EXISTS):
            shutil.rmtree(target)

    def list_files(self, path: str) -> list[str]:
        target = self._resolve(path)
        with self._translate(path, expect=ExistenceResult.FOLDER_EXISTS):
            with os.scandir(target) as entries:
                return [entry.name for entry in entries if entry.is_file()]

    def list_directories(self, path: str) -> list[str]:
        target = self._resolve(path)
        with self._translate(path, expect=ExistenceResult.FOLDER_EXISTS):
            with os.scandir(target) as entries:
                return [entry.name for entry in entries if entry.is_dir()]

    def move_file(self, source: str, destination: str) -> None:
        src = self._resolve(source)
        dst = self._resolve(destination)
        # os.rename silently overwrites on POSIX.
        if os.path.lexists(dst) and not self.same_entry(source, destination):
            raise AlreadyExistsError(destination)
        with self._translate(source, expect=ExistenceResult.FILE_EXISTS):
            shutil.move(os.fspath(src), os.fspath(dst))

    def copy_file(self, source: str, destination: str) -> None:
        src = self._resolve(source)
        dst = self._resolve(destination)
        with self._translate(
            destination,
            check=self._parent(destination),
            expect=ExistenceResult.FOLDER_EXISTS,
        ):
            with self._translate(source, expect=ExistenceResult.FILE_EXISTS):
                reader = src.open("rb")
            with reader, dst.open("xb") as writer:
                shutil.copyfileobj(reader, writer)
            shutil.copystat(src, dst)

    def open(self, path: str, access: FileAccess) -> BinaryIO:
        target = self._resolve(path)
        with self._translate(path, expect=ExistenceResult.FILE_EXISTS):
            return target.open(_OPEN_MODES[access])

    def stats(self, path: str) -> FileStats:
        target = self._resolve(path)
        with self._translate(path, expect=ExistenceResult.FILE_EXISTS):
            if not target.is_file():
                raise MissingFileError(path)
            stat_result = target.stat()

        created = getattr(stat_result, "st_birthtime", stat_result.st_ctime)
        return FileStats(
            name=target.name,
            extension=target.suffix,
            length=stat_result.st_size,
            created_at=_timestamp_to_datetime(created),
            modified_at=_timestamp_to_datetime(stat_result.st_mtime),
            accessed_at=_timestamp_to_datetime(stat_result.st_atime),
        )

    @contextmanager
    def _translate(
        self,
        path: str,
        *,
        expect: ExistenceResult,
        check: str | None = None,
    ) -> Iterator[None]:
        """Map native ``OSError``s raised inside the block onto storage errors.

        Args:
            path: Path the operation targets, used for AlreadyExistsError and
                BackendFault.
            expect: Kind ``check`` must have for the failure to be a genuine
                backend fault rather than a missing entry.
            check: Path to probe again after a failure. Defaults to ``path``.

        """
        try:
            yield
        except FileExistsError as exc:
            raise AlreadyExistsError(path) from exc
        except OSError as exc:
            target = path if check is None else check
            if self.probe(target) is not expect:
                missing: type[NotFoundError] = (
                    MissingFolderError
                    if expect is ExistenceResult.FOLDER_EXISTS
                    else MissingFileError
                )
                raise missing(target) from exc
            raise BackendFault(
                exc.strerror or str(exc), path=path, cause=exc
            ) from exc

    def _parent(self, path: str) -> str:
        return parent_path(os.fspath(self._resolve(path)), self.separator)

    def _resolve(self, path: str) -> Path:
        """Validate path stays within the root directory with symlink resolution.

        Relative paths are taken relative to the root. The candidate is
        resolved (following symlinks and ``..``) and must still lie inside the
        root afterwards.

        Raises:
            ValidationError: If the path escapes the root.

        """
        candidate = (self._root / Path(path)).resolve(strict=False)
        try:
            candidate.relative_to(self._root)
        except ValueError as exc:
            raise ValidationError.path_outside_root(path) from exc
        return candidate


def _timestamp_to_datetime(timestamp: float) -> datetime:
    """Convert a POSIX timestamp to an aware datetime in UTC."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)

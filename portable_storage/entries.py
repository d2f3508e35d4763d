"""File and folder handles.

Handles are lightweight: they hold a backend reference, a path and a name,
and never cache content. Every operation is a coroutine that dispatches the
backend's blocking primitives with ``asyncio.to_thread()`` so an event loop
is never blocked, and every operation accepts an optional ``cancel_event``
checked before storage is touched.

Path identity:
    ``path`` is an opaque identifier, unique within a storage root. For every
    non-root handle ``path == combine(parent_path, name)``; the name is always
    derived from the path (trailing separators stripped), never stored
    independently. Root folders have an empty name and cannot be deleted.

Example:

    >>> from portable_storage import CollisionPolicy, FileSystem, MemoryStorageBackend
    >>> fs = FileSystem(MemoryStorageBackend())
    >>> docs = await fs.local_storage.create_folder(
    ...     "docs", CollisionPolicy.OPEN_IF_EXISTS
    ... )
    >>> report = await docs.create_file(
    ...     "report.txt", CollisionPolicy.GENERATE_UNIQUE_NAME
    ... )
    >>> await report.write_all_text("hello")
    >>> await report.rename("final.txt")
    >>> report.path
    'docs/final.txt'

"""

from __future__ import annotations

import asyncio
import functools
import io
from typing import TYPE_CHECKING, BinaryIO

from .collision import CollisionResolver
from .interfaces import (
    CollisionPolicy,
    ExistenceResult,
    FileAccess,
    MissingFileError,
    MissingFolderError,
    UnsupportedOperationError,
)
from .path_utils import leaf_name, parent_path, strip_trailing_separator
from .validation import (
    raise_if_cancelled,
    validate_access,
    validate_not_empty,
    validate_policy,
    validate_relocation_policy,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .interfaces import CancellationSignal, FileStats, StorageBackend


class Entry:
    """Common identity shared by files and folders."""

    def __init__(
        self,
        backend: StorageBackend,
        path: str,
        *,
        name: str | None = None,
    ) -> None:
        self._backend = backend
        self._path = strip_trailing_separator(path, backend.separator)
        self._name = leaf_name(self._path, backend.separator) if name is None else name

    @property
    def name(self) -> str:
        """Leaf name of the entry."""
        return self._name

    @property
    def path(self) -> str:
        """Identifier of the entry, unique within its storage root."""
        return self._path

    @property
    def parent_path(self) -> str:
        """Path of the folder containing the entry."""
        return parent_path(self._path, self._backend.separator)

    @property
    def backend(self) -> StorageBackend:
        """Backend adapter the entry lives in."""
        return self._backend

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r}, path={self._path!r})"

    async def _probe(self, path: str) -> ExistenceResult:
        return await asyncio.to_thread(self._backend.probe, path)

    async def _require_folder(self, path: str) -> None:
        if await self._probe(path) is not ExistenceResult.FOLDER_EXISTS:
            raise MissingFolderError(path)

    async def _require_file(self, path: str) -> None:
        if await self._probe(path) is not ExistenceResult.FILE_EXISTS:
            raise MissingFileError(path)


class Folder(Entry):
    """A folder inside a storage root."""

    def __init__(
        self,
        backend: StorageBackend,
        path: str,
        *,
        can_delete: bool = True,
        name: str | None = None,
    ) -> None:
        super().__init__(backend, path, name=name)
        self._can_delete = can_delete

    @classmethod
    def root(cls, backend: StorageBackend) -> Folder:
        """Return the non-deletable root folder of ``backend``."""
        return cls(backend, backend.root_path, can_delete=False, name="")

    @property
    def can_delete(self) -> bool:
        """False for storage roots."""
        return self._can_delete

    def child_path(self, name: str) -> str:
        """Return the path an entry called ``name`` would have in this folder."""
        return self._backend.combine(self._path, name)

    async def create_file(
        self,
        desired_name: str,
        option: CollisionPolicy = CollisionPolicy.FAIL_IF_EXISTS,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> File:
        """Create a file in this folder.

        Args:
            desired_name: Name of the file to create.
            option: Behaviour if an entry with that name already exists.
            cancel_event: Optional cancellation signal.

        Returns:
            The created (or, under OPEN_IF_EXISTS, existing) file.

        """
        validate_not_empty(desired_name, "desired_name")
        policy = validate_policy(option)
        raise_if_cancelled(cancel_event)
        await self._require_folder(self._path)

        resolution = await CollisionResolver(self._backend).resolve(
            self._path,
            desired_name,
            policy,
            is_file=True,
            commit=self._backend.create_file,
            cancel_event=cancel_event,
        )
        return File(self._backend, resolution.path)

    async def get_file(
        self,
        name: str,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> File:
        """Return the file called ``name``, raising MissingFileError if absent."""
        validate_not_empty(name, "name")
        raise_if_cancelled(cancel_event)
        await self._require_folder(self._path)

        path = self.child_path(name)
        await self._require_file(path)
        return File(self._backend, path)

    async def list_files(
        self,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> list[File]:
        """Return a snapshot of the files directly inside this folder."""
        raise_if_cancelled(cancel_event)
        await self._require_folder(self._path)
        names = await asyncio.to_thread(self._backend.list_files, self._path)
        return [File(self._backend, self.child_path(name)) for name in names]

    async def create_folder(
        self,
        desired_name: str,
        option: CollisionPolicy = CollisionPolicy.FAIL_IF_EXISTS,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> Folder:
        """Create a subfolder in this folder.

        Args:
            desired_name: Name of the folder to create.
            option: Behaviour if an entry with that name already exists.
            cancel_event: Optional cancellation signal.

        Returns:
            The created (or, under OPEN_IF_EXISTS, existing) folder.

        """
        validate_not_empty(desired_name, "desired_name")
        policy = validate_policy(option)
        raise_if_cancelled(cancel_event)
        await self._require_folder(self._path)

        resolution = await CollisionResolver(self._backend).resolve(
            self._path,
            desired_name,
            policy,
            is_file=False,
            commit=self._backend.create_directory,
            cancel_event=cancel_event,
        )
        return Folder(self._backend, resolution.path)

    async def get_folder(
        self,
        name: str,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> Folder:
        """Return the subfolder called ``name``, raising MissingFolderError if absent."""
        validate_not_empty(name, "name")
        raise_if_cancelled(cancel_event)
        await self._require_folder(self._path)

        path = self.child_path(name)
        await self._require_folder(path)
        return Folder(self._backend, path)

    async def list_folders(
        self,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> list[Folder]:
        """Return a snapshot of the subfolders directly inside this folder."""
        raise_if_cancelled(cancel_event)
        await self._require_folder(self._path)
        names = await asyncio.to_thread(self._backend.list_directories, self._path)
        return [Folder(self._backend, self.child_path(name)) for name in names]

    async def check_exists(
        self,
        name: str,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> ExistenceResult:
        """Classify what, if anything, exists under ``name`` in this folder."""
        validate_not_empty(name, "name")
        raise_if_cancelled(cancel_event)
        return await self._probe(self.child_path(name))

    async def delete(
        self,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> None:
        """Delete this folder and everything inside it."""
        if not self._can_delete:
            raise UnsupportedOperationError.cannot_delete_root(self._path)
        raise_if_cancelled(cancel_event)
        await self._require_folder(self._path)
        await asyncio.to_thread(self._backend.delete_directory, self._path)


class File(Entry):
    """A file inside a storage root.

    Rename and move update the handle in place: the same object reports the
    new ``name`` and ``path`` afterwards.
    """

    async def open(
        self,
        access: FileAccess = FileAccess.READ,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> BinaryIO:
        """Open the file and return a binary stream the caller must close.

        READ_AND_WRITE opens in place without truncating.
        """
        access = validate_access(access)
        raise_if_cancelled(cancel_event)
        return await asyncio.to_thread(self._backend.open, self._path, access)

    async def delete(
        self,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> None:
        """Delete the file."""
        raise_if_cancelled(cancel_event)
        await self._require_file(self._path)
        await asyncio.to_thread(self._backend.delete_file, self._path)

    async def rename(
        self,
        new_name: str,
        option: CollisionPolicy = CollisionPolicy.FAIL_IF_EXISTS,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> None:
        """Rename the file without changing its folder."""
        validate_not_empty(new_name, "new_name")
        await self.move(
            self._backend.combine(self.parent_path, new_name),
            option,
            cancel_event=cancel_event,
        )

    async def move(
        self,
        new_path: str,
        option: CollisionPolicy = CollisionPolicy.FAIL_IF_EXISTS,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> None:
        """Move the file to ``new_path``, resolving name collisions there.

        ``new_path`` is normalized by the backend first, so the handle keeps
        the same kind of identifier as every other handle in its root. A
        destination that is this file under another spelling (a case-only
        rename on a case-insensitive backend) is renamed directly whatever
        the policy.

        Raises:
            ValidationError: ``new_path`` is empty or outside the root, or
                ``option`` is OPEN_IF_EXISTS.
            MissingFileError: This file no longer exists.
            MissingFolderError: The destination folder does not exist.

        """
        validate_not_empty(new_path, "new_path")
        policy = validate_relocation_policy(option, "move")
        raise_if_cancelled(cancel_event)

        folder_path, name = await self._split_destination(new_path)
        destination = self._backend.combine(folder_path, name)
        await self._require_file(self._path)
        await self._require_folder(folder_path)

        if await asyncio.to_thread(self._backend.same_entry, destination, self._path):
            if destination == self._path:
                if policy is CollisionPolicy.REPLACE_EXISTING:
                    return
            else:
                await asyncio.to_thread(
                    self._backend.move_file, self._path, destination
                )
                self._path = destination
                self._name = name
                return

        resolution = await CollisionResolver(self._backend).resolve(
            folder_path,
            name,
            policy,
            is_file=True,
            commit=functools.partial(self._backend.move_file, self._path),
            cancel_event=cancel_event,
            source=self._path,
        )
        self._path = resolution.path
        self._name = resolution.name

    async def copy(
        self,
        new_path: str,
        option: CollisionPolicy = CollisionPolicy.FAIL_IF_EXISTS,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> File:
        """Copy the file to ``new_path`` and return a handle to the copy.

        A destination naming this file itself is taken: REPLACE_EXISTING
        returns this file unchanged, the other policies resolve as usual.
        """
        validate_not_empty(new_path, "new_path")
        policy = validate_relocation_policy(option, "copy")
        raise_if_cancelled(cancel_event)

        folder_path, name = await self._split_destination(new_path)
        destination = self._backend.combine(folder_path, name)
        await self._require_file(self._path)
        await self._require_folder(folder_path)

        if policy is CollisionPolicy.REPLACE_EXISTING and await asyncio.to_thread(
            self._backend.same_entry, destination, self._path
        ):
            return File(self._backend, self._path)

        resolution = await CollisionResolver(self._backend).resolve(
            folder_path,
            name,
            policy,
            is_file=True,
            commit=functools.partial(self._backend.copy_file, self._path),
            cancel_event=cancel_event,
            source=self._path,
        )
        return File(self._backend, resolution.path)

    async def stats(
        self,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> FileStats:
        """Return size and timestamps for the file."""
        raise_if_cancelled(cancel_event)
        return await asyncio.to_thread(self._backend.stats, self._path)

    async def read_all_text(
        self,
        *,
        encoding: str = "utf-8",
        cancel_event: CancellationSignal | None = None,
    ) -> str:
        """Read the whole file as text."""
        raise_if_cancelled(cancel_event)
        return await asyncio.to_thread(self._read_text, encoding)

    async def write_all_text(
        self,
        contents: str,
        *,
        encoding: str = "utf-8",
        cancel_event: CancellationSignal | None = None,
    ) -> None:
        """Replace the file's contents with ``contents``."""
        raise_if_cancelled(cancel_event)
        await asyncio.to_thread(self._write_text, contents, encoding, False)

    async def append_all_text(
        self,
        contents: str,
        *,
        encoding: str = "utf-8",
        cancel_event: CancellationSignal | None = None,
    ) -> None:
        """Append ``contents`` to the end of the file."""
        raise_if_cancelled(cancel_event)
        await asyncio.to_thread(self._write_text, contents, encoding, True)

    async def append_all_lines(
        self,
        lines: Iterable[str],
        *,
        encoding: str = "utf-8",
        cancel_event: CancellationSignal | None = None,
    ) -> None:
        """Append each of ``lines`` followed by a newline."""
        raise_if_cancelled(cancel_event)
        payload = "".join(f"{line}\n" for line in lines)
        await asyncio.to_thread(self._write_text, payload, encoding, True)

    async def _split_destination(self, new_path: str) -> tuple[str, str]:
        separator = self._backend.separator
        destination = await asyncio.to_thread(self._backend.normalize, new_path)
        name = leaf_name(destination, separator)
        validate_not_empty(name, "new_path")
        return parent_path(destination, separator), name

    def _read_text(self, encoding: str) -> str:
        with self._backend.open(self._path, FileAccess.READ) as stream:
            return stream.read().decode(encoding)

    def _write_text(self, contents: str, encoding: str, append: bool) -> None:
        payload = contents.encode(encoding)
        with self._backend.open(self._path, FileAccess.READ_AND_WRITE) as stream:
            if append:
                stream.seek(0, io.SEEK_END)
            else:
                stream.truncate(0)
            stream.write(payload)

"""In-memory backend adapter reached through node handles.

The store is a tree of node objects. There is no path syscall: every
primitive walks child handles from the root node, one name at a time, the way
platform-managed containers only hand out objects through navigation calls.
Paths are opaque identifiers rebuilt from names with ``/``; they are never
used to look anything up directly.

Key Features:
    - Optional case-insensitive matching that preserves stored names
    - Streams opened for read-write publish their bytes on close
    - Native ``KeyError``/``FileExistsError`` signals translated after
      probing the relevant path again

Example:

    >>> backend = MemoryStorageBackend(root_path="memory", case_sensitive=False)
    >>> backend.create_directory("memory/docs")
    >>> backend.create_file("memory/docs/Readme.md")
    >>> backend.probe("memory/DOCS/README.MD")
    <ExistenceResult.FILE_EXISTS: 'file_exists'>

"""

from __future__ import annotations

import io
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
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
from .path_utils import leaf_name, parent_path, split_extension, strip_trailing_separator

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .interfaces import NotFoundError

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


class _Node:
    """A file or directory object in the in-memory tree."""

    def __init__(self, name: str, *, is_dir: bool, case_sensitive: bool) -> None:
        self.name = name
        self.is_dir = is_dir
        self.content = b""
        self.created_at = _now()
        self.modified_at = self.created_at
        self.accessed_at = self.created_at
        self._case_sensitive = case_sensitive
        self._children: dict[str, _Node] = {}

    def _key(self, name: str) -> str:
        return name if self._case_sensitive else name.casefold()

    def child(self, name: str) -> _Node:
        """Return the child called ``name``; raises KeyError if absent."""
        if not self.is_dir:
            raise NotADirectoryError(self.name)
        return self._children[self._key(name)]

    def children(self) -> list[_Node]:
        if not self.is_dir:
            raise NotADirectoryError(self.name)
        return list(self._children.values())

    def attach(self, node: _Node) -> None:
        if not self.is_dir:
            raise NotADirectoryError(self.name)
        key = self._key(node.name)
        if key in self._children:
            raise FileExistsError(node.name)
        self._children[key] = node
        self.modified_at = _now()

    def detach(self, name: str) -> _Node:
        node = self._children.pop(self._key(name))
        self.modified_at = _now()
        return node


class _WriteBackStream(io.BytesIO):
    """Read-write stream that stores its buffer in the node when closed."""

    def __init__(self, node: _Node, lock: threading.RLock) -> None:
        super().__init__(node.content)
        self._node = node
        self._lock = lock

    def close(self) -> None:
        if not self.closed:
            with self._lock:
                self._node.content = self.getvalue()
                self._node.modified_at = _now()
        super().close()


class MemoryStorageBackend(StorageBackend):
    """Backend adapter holding a volatile tree of nodes."""

    separator = "/"

    def __init__(self, *, root_path: str = "", case_sensitive: bool = True) -> None:
        """Initialise an empty store.

        Args:
            root_path: Identifier of the root folder. Entry paths start with it.
            case_sensitive: Whether names differing only in case are distinct.

        """
        self._root_path = strip_trailing_separator(root_path, self.separator)
        self._case_sensitive = case_sensitive
        self._root = _Node("", is_dir=True, case_sensitive=case_sensitive)
        # Keeps the node tree consistent across worker threads; callers still
        # race between probing and acting.
        self._lock = threading.RLock()

    @property
    def root_path(self) -> str:
        return self._root_path

    @property
    def case_sensitive(self) -> bool:
        return self._case_sensitive

    def owns(self, path: str) -> bool:
        try:
            self._segments(path)
        except ValidationError:
            return False
        return True

    def normalize(self, path: str) -> str:
        return self.combine(self._root_path, *self._segments(path))

    def same_entry(self, first: str, second: str) -> bool:
        try:
            a = self._segments(first)
            b = self._segments(second)
        except ValidationError:
            return False
        return [self._fold(s) for s in a] == [self._fold(s) for s in b]

    def probe(self, path: str) -> ExistenceResult:
        with self._lock:
            try:
                node = self._navigate(path)
            except (KeyError, NotADirectoryError):
                return ExistenceResult.NOT_FOUND
        return ExistenceResult.FOLDER_EXISTS if node.is_dir else ExistenceResult.FILE_EXISTS

    def create_file(self, path: str) -> None:
        self._create(path, is_dir=False)

    def create_directory(self, path: str) -> None:
        self._create(path, is_dir=True)

    def delete_file(self, path: str) -> None:
        with self._lock, self._translate(path, expect=ExistenceResult.FILE_EXISTS):
            parent = self._navigate(self._parent(path))
            node = parent.child(leaf_name(path, self.separator))
            if node.is_dir:
                raise IsADirectoryError(path)
            parent.detach(node.name)

    def delete_directory(self, path: str) -> None:
        if not self._segments(path):
            raise UnsupportedOperationError.cannot_delete_root(path)
        with self._lock, self._translate(path, expect=ExistenceResult.FOLDER_EXISTS):
            parent = self._navigate(self._parent(path))
            node = parent.child(leaf_name(path, self.separator))
            if not node.is_dir:
                raise NotADirectoryError(path)
            parent.detach(node.name)

    def list_files(self, path: str) -> list[str]:
        with self._lock, self._translate(path, expect=ExistenceResult.FOLDER_EXISTS):
            return [node.name for node in self._navigate(path).children() if not node.is_dir]

    def list_directories(self, path: str) -> list[str]:
        with self._lock, self._translate(path, expect=ExistenceResult.FOLDER_EXISTS):
            return [node.name for node in self._navigate(path).children() if node.is_dir]

    def move_file(self, source: str, destination: str) -> None:
        with self._lock:
            node = self._file_node(source)
            with self._translate(
                destination,
                check=self._parent(destination),
                expect=ExistenceResult.FOLDER_EXISTS,
            ):
                target_parent = self._navigate(self._parent(destination))
                source_parent = self._navigate(self._parent(source))
                renamed = _Node(
                    leaf_name(destination, self.separator),
                    is_dir=False,
                    case_sensitive=self._case_sensitive,
                )
                renamed.content = node.content
                renamed.created_at = node.created_at
                renamed.modified_at = node.modified_at
                if self.same_entry(source, destination):
                    # Same node under another spelling: re-key it in place.
                    source_parent.detach(node.name)
                    target_parent.attach(renamed)
                    return
                target_parent.attach(renamed)
                source_parent.detach(node.name)

    def copy_file(self, source: str, destination: str) -> None:
        with self._lock:
            node = self._file_node(source)
            with self._translate(
                destination,
                check=self._parent(destination),
                expect=ExistenceResult.FOLDER_EXISTS,
            ):
                target_parent = self._navigate(self._parent(destination))
                duplicate = _Node(
                    leaf_name(destination, self.separator),
                    is_dir=False,
                    case_sensitive=self._case_sensitive,
                )
                duplicate.content = node.content
                target_parent.attach(duplicate)

    def open(self, path: str, access: FileAccess) -> BinaryIO:
        with self._lock:
            node = self._file_node(path)
            node.accessed_at = _now()
            if access is FileAccess.READ:
                return io.BytesIO(node.content)
            return _WriteBackStream(node, self._lock)

    def stats(self, path: str) -> FileStats:
        with self._lock:
            node = self._file_node(path)
            return FileStats(
                name=node.name,
                extension=split_extension(node.name)[1],
                length=len(node.content),
                created_at=node.created_at,
                modified_at=node.modified_at,
                accessed_at=node.accessed_at,
            )

    def _create(self, path: str, *, is_dir: bool) -> None:
        with self._lock, self._translate(
            path,
            check=self._parent(path),
            expect=ExistenceResult.FOLDER_EXISTS,
        ):
            parent = self._navigate(self._parent(path))
            parent.attach(
                _Node(
                    leaf_name(path, self.separator),
                    is_dir=is_dir,
                    case_sensitive=self._case_sensitive,
                )
            )

    def _file_node(self, path: str) -> _Node:
        with self._translate(path, expect=ExistenceResult.FILE_EXISTS):
            node = self._navigate(path)
            if node.is_dir:
                raise IsADirectoryError(path)
            return node

    @contextmanager
    def _translate(
        self,
        path: str,
        *,
        expect: ExistenceResult,
        check: str | None = None,
    ) -> Iterator[None]:
        """Map native signals raised while walking nodes onto storage errors."""
        try:
            yield
        except FileExistsError as exc:
            raise AlreadyExistsError(path) from exc
        except (KeyError, OSError) as exc:
            target = path if check is None else check
            if self.probe(target) is not expect:
                missing: type[NotFoundError] = (
                    MissingFolderError
                    if expect is ExistenceResult.FOLDER_EXISTS
                    else MissingFileError
                )
                raise missing(target) from exc
            raise BackendFault(
                f"In-memory operation failed: {exc!r}", path=path, cause=exc
            ) from exc

    def _navigate(self, path: str) -> _Node:
        node = self._root
        for segment in self._segments(path):
            node = node.child(segment)
        return node

    def _fold(self, name: str) -> str:
        return name if self._case_sensitive else name.casefold()

    def _parent(self, path: str) -> str:
        return parent_path(path, self.separator)

    def _segments(self, path: str) -> list[str]:
        """Return the names leading from the root node to ``path``.

        Raises:
            ValidationError: If the path is not under this store's root or
                contains a ``..`` segment.

        """
        path = strip_trailing_separator(path, self.separator)
        relative = path
        if self._root_path:
            if path == self._root_path:
                return []
            prefix = self._root_path + self.separator
            if not path.startswith(prefix):
                raise ValidationError.path_outside_root(path)
            relative = path[len(prefix):]
        segments = [segment for segment in relative.split(self.separator) if segment]
        if any(segment == ".." for segment in segments):
            raise ValidationError.path_outside_root(path)
        return segments

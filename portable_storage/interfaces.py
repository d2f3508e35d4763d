"""Core interfaces, enums and the error taxonomy shared by every storage backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, BinaryIO, Protocol

from .path_utils import combine, strip_trailing_separator

if TYPE_CHECKING:
    from datetime import datetime


class StorageError(RuntimeError):
    """Base exception for storage operations."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
    ) -> None:
        """Initialise the base error with an optional path context."""
        detail = message if path is None else ": ".join((message, path))
        super().__init__(detail)
        self.message = message
        self.path = path


class NotFoundError(StorageError):
    """Raised when an expected file or folder is missing."""

    def __init__(self, path: str, *, kind: str = "Entry") -> None:
        """Create a not-found error for the provided path."""
        super().__init__(f"{kind} does not exist", path=path)


class MissingFileError(NotFoundError):
    """Raised when a file targeted by an operation does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(path, kind="File")


class MissingFolderError(NotFoundError):
    """Raised when a folder targeted by an operation does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(path, kind="Folder")


class AlreadyExistsError(StorageError):
    """Raised when a name is taken and the collision policy forbids reuse."""

    def __init__(self, path: str, *, reason: str | None = None) -> None:
        """Create an already-exists error with an optional reason."""
        super().__init__(reason or "Entry already exists", path=path)


class ValidationError(StorageError, ValueError):
    """Raised when an argument is rejected before any storage is touched."""

    @classmethod
    def empty_argument(cls, argument: str) -> ValidationError:
        """Return an error for a missing or empty required string."""
        return cls(f"Argument '{argument}' cannot be empty")

    @classmethod
    def unrecognized_policy(cls, policy: Any) -> ValidationError:
        """Return an error for a value outside the CollisionPolicy enum."""
        return cls(f"Unrecognized collision policy: {policy!r}")

    @classmethod
    def unrecognized_access(cls, access: Any) -> ValidationError:
        """Return an error for a value outside the FileAccess enum."""
        return cls(f"Unrecognized file access: {access!r}")

    @classmethod
    def path_outside_root(cls, path: str) -> ValidationError:
        """Return an error for a path that escapes the storage root."""
        return cls("Path escapes storage root", path=path)

    @classmethod
    def policy_not_allowed(cls, policy: CollisionPolicy, operation: str) -> ValidationError:
        """Return an error for a policy that is only legal when creating."""
        return cls(f"{policy.name} is not a valid policy for {operation}")


class UnsupportedOperationError(StorageError):
    """Raised when an operation has no meaning for the targeted entry."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message, path=path)

    @classmethod
    def cannot_delete_root(cls, path: str) -> UnsupportedOperationError:
        """Return an error for an attempt to delete a storage root."""
        return cls("Cannot delete root storage folder", path=path)


class BackendFault(StorageError):
    """Wraps a native backend error that no other kind describes."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, path=path)
        self.cause = cause


class OperationCancelledError(StorageError):
    """Raised when an operation observes its cancellation signal."""

    def __init__(self) -> None:
        super().__init__("Operation was cancelled")


class CollisionPolicy(Enum):
    """Behaviour when the target name of a create/rename/move is taken."""

    GENERATE_UNIQUE_NAME = "generate_unique_name"
    REPLACE_EXISTING = "replace_existing"
    FAIL_IF_EXISTS = "fail_if_exists"
    # Only legal when creating.
    OPEN_IF_EXISTS = "open_if_exists"


class ExistenceResult(Enum):
    """Classification of a name probe against a folder."""

    NOT_FOUND = "not_found"
    FILE_EXISTS = "file_exists"
    FOLDER_EXISTS = "folder_exists"


class FileAccess(Enum):
    """Whether a file is opened read-only or read-write (in place)."""

    READ = "read"
    READ_AND_WRITE = "read_and_write"


class CancellationSignal(Protocol):
    """Anything exposing ``is_set()``, e.g. ``asyncio.Event``."""

    def is_set(self) -> bool: ...


@dataclass(frozen=True)
class FileStats:
    """Snapshot of metadata for a stored file."""

    name: str
    extension: str
    length: int
    created_at: datetime | None
    modified_at: datetime | None
    accessed_at: datetime | None

    def as_dict(self) -> dict:
        """Return a JSON-serialisable representation."""
        return {
            "name": self.name,
            "extension": self.extension,
            "length": self.length,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "modified_at": self.modified_at.isoformat()
            if self.modified_at
            else None,
            "accessed_at": self.accessed_at.isoformat()
            if self.accessed_at
            else None,
        }


class StorageBackend(ABC):
    """Native storage primitives a backend adapter must provide.

    Paths handed to these methods are opaque identifiers produced by
    :meth:`combine` from :attr:`root_path`; adapters must not assume callers
    understand them beyond that. Primitives are synchronous and may block;
    the entry layer dispatches them to worker threads.

    Adapters are the only layer allowed to catch native exceptions. Every
    native error must surface as one of the :class:`StorageError` kinds.
    """

    separator: str = "/"

    @property
    @abstractmethod
    def root_path(self) -> str:
        """Identifier of the hierarchy root."""

    def combine(self, *segments: str) -> str:
        """Join path segments with this backend's separator."""
        return combine(*segments, separator=self.separator)

    def normalize(self, path: str) -> str:
        """Return the canonical identifier for a caller-supplied ``path``.

        Handles built from the result carry the same identifier as handles
        reached through listing or creation.

        Raises:
            ValidationError: If ``path`` lies outside this backend's hierarchy.

        """
        return strip_trailing_separator(path, self.separator)

    def same_entry(self, first: str, second: str) -> bool:
        """Return True if both paths name one entry under this backend's matching rules."""
        return self.normalize(first) == self.normalize(second)

    @abstractmethod
    def owns(self, path: str) -> bool:
        """Return True if ``path`` lies within this backend's hierarchy."""

    @abstractmethod
    def probe(self, path: str) -> ExistenceResult:
        """Classify ``path`` without raising for absent entries."""

    @abstractmethod
    def create_file(self, path: str) -> None:
        """Create an empty file, raising AlreadyExistsError if taken."""

    @abstractmethod
    def create_directory(self, path: str) -> None:
        """Create a directory, raising AlreadyExistsError if taken."""

    @abstractmethod
    def delete_file(self, path: str) -> None:
        """Remove a file."""

    @abstractmethod
    def delete_directory(self, path: str) -> None:
        """Remove a directory and everything below it."""

    @abstractmethod
    def list_files(self, path: str) -> list[str]:
        """Return the names of files directly inside ``path``."""

    @abstractmethod
    def list_directories(self, path: str) -> list[str]:
        """Return the names of directories directly inside ``path``."""

    @abstractmethod
    def move_file(self, source: str, destination: str) -> None:
        """Move a file to a free destination path.

        A destination that is the same entry as ``source`` (see
        :meth:`same_entry`) re-spells the entry instead of failing.
        """

    @abstractmethod
    def copy_file(self, source: str, destination: str) -> None:
        """Copy a file to a free destination path."""

    @abstractmethod
    def open(self, path: str, access: FileAccess) -> BinaryIO:
        """Open a binary stream positioned at the start of the file."""

    @abstractmethod
    def stats(self, path: str) -> FileStats:
        """Return metadata for a file."""

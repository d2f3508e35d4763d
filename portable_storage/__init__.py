"""Portable file storage over heterogeneous storage backends.

This package gives calling code one asynchronous interface for creating,
reading, writing, renaming, moving, copying, enumerating and deleting files
and folders, whatever native storage sits underneath.

Core Components:
    - Folder / File: lightweight handles identified by path
    - CollisionPolicy: what happens when a target name is already taken
    - StorageBackend: primitives each backend adapter implements
    - LocalStorageBackend: directory on the local filesystem
    - MemoryStorageBackend: in-memory tree reached through node handles
    - FileSystem: local and roaming roots plus path lookups

Quick Start:

    >>> import asyncio
    >>> from portable_storage import CollisionPolicy, filesystem
    >>>
    >>> async def main():
    ...     root = filesystem.current().local_storage
    ...     logs = await root.create_folder("logs", CollisionPolicy.OPEN_IF_EXISTS)
    ...     log = await logs.create_file(
    ...         "run.log", CollisionPolicy.GENERATE_UNIQUE_NAME
    ...     )
    ...     await log.write_all_text("started")
    ...     return log.name  # 'run.log', then 'run (2).log', ...
    >>>
    >>> asyncio.run(main())

Exception Handling:

    >>> from portable_storage import NotFoundError
    >>> try:
    ...     await root.get_file("missing.txt")
    ... except NotFoundError:
    ...     print("File not found")

"""

from .collision import CollisionResolver, Resolution
from .entries import Entry, File, Folder
from .factory import register_backend_factory, resolve_backend
from .filesystem import FileSystem
from .interfaces import (
    AlreadyExistsError,
    BackendFault,
    CancellationSignal,
    CollisionPolicy,
    ExistenceResult,
    FileAccess,
    FileStats,
    MissingFileError,
    MissingFolderError,
    NotFoundError,
    OperationCancelledError,
    StorageBackend,
    StorageError,
    UnsupportedOperationError,
    ValidationError,
)
from .local import LocalStorageBackend
from .memory import MemoryStorageBackend

__all__ = [
    "AlreadyExistsError",
    "BackendFault",
    "CancellationSignal",
    "CollisionPolicy",
    "CollisionResolver",
    "Entry",
    "ExistenceResult",
    "File",
    "FileAccess",
    "FileStats",
    "FileSystem",
    "Folder",
    "LocalStorageBackend",
    "MemoryStorageBackend",
    "MissingFileError",
    "MissingFolderError",
    "NotFoundError",
    "OperationCancelledError",
    "Resolution",
    "StorageBackend",
    "StorageError",
    "UnsupportedOperationError",
    "ValidationError",
    "register_backend_factory",
    "resolve_backend",
]

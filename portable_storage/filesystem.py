"""Storage roots and the process-wide file system accessor.

A :class:`FileSystem` bundles the local storage root with an optional roaming
root and resolves stored paths back into handles. It is an ordinary object
that can be built directly (tests, embedded use) or obtained through
:func:`current`, which builds one instance per process on first use with the
configured platform selector.

Configuration:
    The default platform selector reads these environment variables:

    - ``PORTABLE_STORAGE_LOCAL_URI``: backend URI for local storage
    - ``PORTABLE_STORAGE_ROAMING_URI``: backend URI for roaming storage
    - ``PORTABLE_STORAGE_APP_NAME``: directory name for platform defaults

    Without URIs, local storage lives in the platform's per-user data
    directory. Roaming storage defaults to ``%APPDATA%`` on Windows and is
    absent elsewhere.

Example:

    >>> from portable_storage import filesystem
    >>> fs = filesystem.current()
    >>> settings = await fs.local_storage.create_file(
    ...     "settings.json", CollisionPolicy.OPEN_IF_EXISTS
    ... )
    >>> same = await fs.get_file_from_path(settings.path)

"""

from __future__ import annotations

import asyncio
import logging
import os
import platform
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from .entries import File, Folder
from .factory import resolve_backend
from .interfaces import ExistenceResult
from .local import LocalStorageBackend
from .path_utils import strip_trailing_separator
from .validation import raise_if_cancelled, validate_not_empty

if TYPE_CHECKING:
    from .interfaces import CancellationSignal, StorageBackend

logger = logging.getLogger(__name__)

LOCAL_URI_ENV = "PORTABLE_STORAGE_LOCAL_URI"
ROAMING_URI_ENV = "PORTABLE_STORAGE_ROAMING_URI"
APP_NAME_ENV = "PORTABLE_STORAGE_APP_NAME"
DEFAULT_APP_NAME = "portable_storage"


class FileSystem:
    """Access to the storage roots of one application context."""

    def __init__(
        self,
        local: StorageBackend,
        roaming: StorageBackend | None = None,
    ) -> None:
        self._local = local
        self._roaming = roaming

    @property
    def local_storage(self) -> Folder:
        """Root folder of storage local to this device."""
        return Folder.root(self._local)

    @property
    def roaming_storage(self) -> Folder | None:
        """Root folder of storage synced across devices, if the platform has one."""
        if self._roaming is None:
            return None
        return Folder.root(self._roaming)

    @property
    def backends(self) -> list[StorageBackend]:
        """Backends searched by the path lookups, local first."""
        if self._roaming is None:
            return [self._local]
        return [self._local, self._roaming]

    async def get_file_from_path(
        self,
        path: str,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> File | None:
        """Return the file at ``path``, or None if no file exists there.

        Args:
            path: A path as reported by ``File.path``.
            cancel_event: Optional cancellation signal.

        """
        validate_not_empty(path, "path")
        raise_if_cancelled(cancel_event)
        for backend in self.backends:
            if not backend.owns(path):
                continue
            existing = await asyncio.to_thread(backend.probe, path)
            if existing is ExistenceResult.FILE_EXISTS:
                return File(backend, path)
        return None

    async def get_folder_from_path(
        self,
        path: str,
        *,
        cancel_event: CancellationSignal | None = None,
    ) -> Folder | None:
        """Return the folder at ``path``, or None if no folder exists there.

        A storage root resolved this way is still not deletable.
        """
        validate_not_empty(path, "path")
        raise_if_cancelled(cancel_event)
        for backend in self.backends:
            if not backend.owns(path):
                continue
            existing = await asyncio.to_thread(backend.probe, path)
            if existing is ExistenceResult.FOLDER_EXISTS:
                if strip_trailing_separator(path, backend.separator) == backend.root_path:
                    return Folder.root(backend)
                return Folder(backend, path)
        return None


PlatformSelector = Callable[[], FileSystem]


def default_local_root(app_name: str) -> Path:
    """Return the per-user data directory for ``app_name`` on this platform."""
    system = platform.system()
    if system == "Windows":
        base = os.environ.get("LOCALAPPDATA", "")
        if base:
            return Path(base) / app_name
        return Path.home() / "AppData" / "Local" / app_name
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / app_name
    xdg_data = os.environ.get("XDG_DATA_HOME", "")
    if xdg_data:
        return Path(xdg_data) / app_name
    return Path.home() / ".local" / "share" / app_name


def default_roaming_root(app_name: str) -> Path | None:
    """Return the synced data directory, or None where none exists."""
    if platform.system() != "Windows":
        return None
    base = os.environ.get("APPDATA", "")
    if not base:
        return None
    return Path(base) / app_name


def default_platform_selector() -> FileSystem:
    """Build the FileSystem for this platform from the environment."""
    app_name = os.environ.get(APP_NAME_ENV) or DEFAULT_APP_NAME

    local_uri = os.environ.get(LOCAL_URI_ENV)
    if local_uri:
        local = resolve_backend(local_uri)
    else:
        local = LocalStorageBackend(root=default_local_root(app_name))

    roaming_uri = os.environ.get(ROAMING_URI_ENV)
    roaming: StorageBackend | None = None
    if roaming_uri:
        roaming = resolve_backend(roaming_uri)
    else:
        roaming_root = default_roaming_root(app_name)
        if roaming_root is not None:
            roaming = LocalStorageBackend(root=roaming_root)

    roaming_path = roaming.root_path if roaming is not None else None
    logger.info("Storage roots: local=%r roaming=%r", local.root_path, roaming_path)
    return FileSystem(local, roaming)


_lock = threading.Lock()
_selector: PlatformSelector = default_platform_selector
_current: FileSystem | None = None


def current() -> FileSystem:
    """Return the process-wide FileSystem, building it on first use."""
    global _current
    if _current is None:
        with _lock:
            if _current is None:
                _current = _selector()
    return _current


def configure(selector: PlatformSelector) -> None:
    """Choose how the process-wide FileSystem is built.

    Raises:
        RuntimeError: If :func:`current` has already built the instance.

    """
    global _selector
    with _lock:
        if _current is not None:
            msg = "File system already initialised; call reset() first"
            raise RuntimeError(msg)
        _selector = selector


def reset() -> None:
    """Drop the process-wide FileSystem and restore the default selector."""
    global _current, _selector
    with _lock:
        _current = None
        _selector = default_platform_selector

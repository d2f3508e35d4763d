"""Exception translation for standard Python compatibility.

Code written against the built-in file API expects ``OSError`` subclasses.
These helpers re-raise storage errors as the closest built-in exception while
keeping the original as ``__cause__``.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import TYPE_CHECKING, TypeVar

from portable_storage.interfaces import (
    AlreadyExistsError,
    NotFoundError,
    StorageError,
    UnsupportedOperationError,
    ValidationError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator

T = TypeVar("T")


def translate_storage_exception(exc: StorageError) -> Exception:
    """Convert a StorageError to a standard Python exception.

    Maps:
    - NotFoundError → FileNotFoundError
    - AlreadyExistsError → FileExistsError
    - UnsupportedOperationError → PermissionError
    - ValidationError → ValueError
    - StorageError → OSError

    Args:
        exc: The StorageError to translate.

    Returns:
        A standard Python exception carrying the original message.

    """
    message = str(exc)

    if isinstance(exc, NotFoundError):
        return FileNotFoundError(message)

    if isinstance(exc, AlreadyExistsError):
        return FileExistsError(message)

    if isinstance(exc, UnsupportedOperationError):
        return PermissionError(message)

    if isinstance(exc, ValidationError):
        return ValueError(message)

    return OSError(message)


@contextmanager
def translate_exceptions() -> Iterator[None]:
    """Context manager for exception translation.

    Example:
        ```python
        with translate_exceptions():
            await folder.get_file("missing.txt")  # Raises FileNotFoundError
        ```

    Raises:
        OSError: Any StorageError wrapped as the matching built-in exception.

    """
    try:
        yield
    except StorageError as exc:
        raise translate_storage_exception(exc) from exc


def translate_coroutine(
    func: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """Decorator applying :func:`translate_exceptions` to a coroutine function.

    Example:
        ```python
        @translate_coroutine
        async def load_settings(folder):
            file = await folder.get_file("settings.json")
            return await file.read_all_text()
        ```

    """

    @functools.wraps(func)
    async def wrapper(*args: object, **kwargs: object) -> T:
        with translate_exceptions():
            return await func(*args, **kwargs)

    return wrapper

"""Backend factory for URI-based backend resolution and instantiation.

Storage roots are configured as URI strings so they can live in environment
variables or configuration files. Custom schemes can be registered.

Supported URI Schemes:
    - file:///absolute/path - LocalStorageBackend rooted at the path
    - memory://label - MemoryStorageBackend whose root path is ``label``

Query Parameters:
    - file: ``create_root`` (default ``true``)
    - memory: ``case_sensitive`` (default ``true``)

Example:
    >>> from portable_storage.factory import resolve_backend
    >>> backend = resolve_backend("file:///data/app?create_root=false")
    >>> scratch = resolve_backend("memory://scratch?case_sensitive=false")

"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable
from urllib.parse import parse_qs, urlparse
from urllib.request import url2pathname

if TYPE_CHECKING:
    from typing import TypeAlias

    from .interfaces import StorageBackend

    BackendFactoryFunc: TypeAlias = Callable[[str, dict[str, str]], StorageBackend]

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _bool_param(params: dict[str, str], key: str, default: bool) -> bool:
    """Read a boolean query parameter, rejecting unrecognised spellings."""
    if key not in params:
        return default
    value = params[key].strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    msg = f"Invalid boolean for '{key}': '{params[key]}'"
    raise ValueError(msg)


class BackendFactory:
    """Factory for creating backends from URI strings."""

    def __init__(self) -> None:
        """Initialize the factory with built-in URI scheme handlers."""
        self._factories: dict[str, BackendFactoryFunc] = {
            "file": self._create_file_backend,
            "memory": self._create_memory_backend,
        }

    def parse_uri(self, uri: str) -> tuple[str, str, dict[str, str]]:
        """Parse a URI into scheme, location, and query parameters.

        Args:
            uri: URI string to parse

        Returns:
            Tuple of (scheme, location, params) where params maps each query
            parameter to its first value

        Raises:
            ValueError: If URI format is invalid

        """
        parsed = urlparse(uri)

        if not parsed.scheme:
            msg = f"Invalid URI: missing scheme in '{uri}'"
            raise ValueError(msg)

        if parsed.scheme == "file":
            # file:///abs/path has no netloc; file://rel/path keeps it
            location = url2pathname(parsed.netloc + parsed.path)
        else:
            location = f"{parsed.netloc}{parsed.path}"

        params: dict[str, str] = {}
        if parsed.query:
            parsed_params = parse_qs(parsed.query)
            params = {k: v[0] for k, v in parsed_params.items()}

        return parsed.scheme, location, params

    def resolve(self, uri: str) -> StorageBackend:
        """Create a backend instance from a URI string.

        Raises:
            ValueError: If the URI is malformed or its scheme is unsupported

        """
        scheme, location, params = self.parse_uri(uri)

        if scheme not in self._factories:
            supported = ", ".join(sorted(self._factories.keys()))
            msg = (
                f"Unsupported URI scheme: '{scheme}'. "
                f"Supported schemes: {supported}"
            )
            raise ValueError(msg)

        logger.debug("Resolving %s backend for '%s'", scheme, location)
        factory_func = self._factories[scheme]
        return factory_func(location, params)

    def register(
        self,
        scheme: str,
        factory_func: BackendFactoryFunc,
    ) -> None:
        """Register a custom backend factory for a URI scheme.

        Args:
            scheme: URI scheme to register (e.g., "s3", "isostore")
            factory_func: Callable that takes (location, params) and returns a
                StorageBackend

        """
        if not callable(factory_func):
            msg = "factory_func must be callable"
            raise TypeError(msg)
        self._factories[scheme] = factory_func

    def _create_file_backend(
        self,
        location: str,
        params: dict[str, str],
    ) -> StorageBackend:
        from .local import LocalStorageBackend

        if not location:
            msg = "Invalid URI: file backend requires a path"
            raise ValueError(msg)
        create_root = _bool_param(params, "create_root", True)
        return LocalStorageBackend(root=location, create_root=create_root)

    def _create_memory_backend(
        self,
        location: str,
        params: dict[str, str],
    ) -> StorageBackend:
        from .memory import MemoryStorageBackend

        case_sensitive = _bool_param(params, "case_sensitive", True)
        return MemoryStorageBackend(root_path=location, case_sensitive=case_sensitive)


# Global default factory instance
_default_factory = BackendFactory()


def resolve_backend(uri: str) -> StorageBackend:
    """Resolve a backend from a URI using the default factory.

    Example:
        >>> backend = resolve_backend("file:///data/app")
        >>> backend = resolve_backend("memory://")

    """
    return _default_factory.resolve(uri)


def register_backend_factory(
    scheme: str,
    factory_func: BackendFactoryFunc,
) -> None:
    """Register a custom backend factory on the default factory.

    Example:
        >>> def sandbox_factory(location: str, params: dict) -> StorageBackend:
        ...     return SandboxBackend(container=location, **params)
        >>> register_backend_factory("sandbox", sandbox_factory)

    """
    _default_factory.register(scheme, factory_func)

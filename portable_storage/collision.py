"""Name collision resolution shared by every backend.

A create, rename, move or copy names a target inside a parent folder. When
the name is taken, the :class:`CollisionPolicy` decides whether to fail,
reuse the existing entry, replace it, or pick a numbered alternative such as
``report (2).txt``.

The resolver owns no I/O of its own. It probes and removes entries through the
backend primitives and performs the final step through a ``commit`` callable
supplied by the caller (create an empty file, create a directory, move or copy
a file). Nothing is locked between the probe and the commit: when another
actor takes the name first, the adapter reports ``AlreadyExistsError`` and the
loop probes again. Concurrent callers may therefore end up with different but
individually valid names.

Example:

    >>> resolver = CollisionResolver(backend)
    >>> resolution = await resolver.resolve(
    ...     "docs",
    ...     "report.txt",
    ...     CollisionPolicy.GENERATE_UNIQUE_NAME,
    ...     is_file=True,
    ...     commit=backend.create_file,
    ... )
    >>> resolution.name
    'report (2).txt'

"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from .interfaces import (
    AlreadyExistsError,
    CollisionPolicy,
    ExistenceResult,
    NotFoundError,
    ValidationError,
)
from .path_utils import numbered_name
from .validation import raise_if_cancelled

if TYPE_CHECKING:
    from .interfaces import CancellationSignal, StorageBackend

logger = logging.getLogger(__name__)

FIRST_GENERATED_NUMBER = 2


@dataclass(frozen=True)
class Resolution:
    """Outcome of a collision resolution."""

    name: str
    path: str
    # False when OPEN_IF_EXISTS returned an entry that was already there.
    created: bool


class CollisionResolver:
    """Pick the name a create/rename/move/copy actually uses."""

    def __init__(self, backend: StorageBackend) -> None:
        self._backend = backend

    async def resolve(
        self,
        parent_path: str,
        desired_name: str,
        policy: CollisionPolicy,
        *,
        is_file: bool,
        commit: Callable[[str], None],
        cancel_event: CancellationSignal | None = None,
        source: str | None = None,
    ) -> Resolution:
        """Resolve ``desired_name`` inside ``parent_path`` and commit it.

        Args:
            parent_path: Path of the folder receiving the entry.
            desired_name: Leaf name requested by the caller.
            policy: Behaviour when the name is taken.
            is_file: Whether the committed entry is a file. Controls numbering
                (files keep their extension last) and which existing kind
                OPEN_IF_EXISTS accepts.
            commit: Blocking callable that materialises the entry at a free
                path. Must raise AlreadyExistsError if the path is taken.
            cancel_event: Optional signal checked before every probe.
            source: Path of the entry a move or copy relocates. It is never
                removed to make room under REPLACE_EXISTING.

        Returns:
            Resolution naming the entry that now exists.

        Raises:
            AlreadyExistsError: Name taken under FAIL_IF_EXISTS, or taken by
                the other entry kind under OPEN_IF_EXISTS, or taken by
                ``source`` itself under REPLACE_EXISTING.
            ValidationError: ``policy`` is not a CollisionPolicy.
            OperationCancelledError: ``cancel_event`` was set.

        """
        if not isinstance(policy, CollisionPolicy):
            raise ValidationError.unrecognized_policy(policy)

        wanted = ExistenceResult.FILE_EXISTS if is_file else ExistenceResult.FOLDER_EXISTS
        name = desired_name
        number = FIRST_GENERATED_NUMBER - 1

        while True:
            raise_if_cancelled(cancel_event)
            path = self._backend.combine(parent_path, name)
            existing = await asyncio.to_thread(self._backend.probe, path)

            if existing is ExistenceResult.NOT_FOUND:
                try:
                    await asyncio.to_thread(commit, path)
                except AlreadyExistsError:
                    if policy is CollisionPolicy.FAIL_IF_EXISTS:
                        raise
                    logger.debug("Lost creation race for %s, probing again", path)
                    continue
                return Resolution(name=name, path=path, created=True)

            if policy is CollisionPolicy.FAIL_IF_EXISTS:
                raise AlreadyExistsError(path)

            if policy is CollisionPolicy.OPEN_IF_EXISTS:
                if existing is not wanted:
                    kind = "folder" if is_file else "file"
                    raise AlreadyExistsError(path, reason=f"Name is taken by a {kind}")
                return Resolution(name=name, path=path, created=False)

            if policy is CollisionPolicy.REPLACE_EXISTING:
                if source is not None and await asyncio.to_thread(
                    self._backend.same_entry, path, source
                ):
                    raise AlreadyExistsError(
                        path, reason="Target is the entry being relocated"
                    )
                logger.debug("Replacing existing entry at %s", path)
                try:
                    await asyncio.to_thread(self._remove, path, existing)
                except NotFoundError:
                    logger.debug("%s disappeared before it could be replaced", path)
                continue

            if policy is CollisionPolicy.GENERATE_UNIQUE_NAME:
                number += 1
                name = numbered_name(desired_name, number, is_file=is_file)
                logger.debug("%s is taken, trying %s", path, name)
                continue

            raise ValidationError.unrecognized_policy(policy)

    def _remove(self, path: str, existing: ExistenceResult) -> None:
        if existing is ExistenceResult.FOLDER_EXISTS:
            self._backend.delete_directory(path)
        else:
            self._backend.delete_file(path)

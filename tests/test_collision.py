"""Tests covering the collision resolver against live backends."""

from __future__ import annotations

import asyncio
import functools
import logging

import pytest

from portable_storage import (
    AlreadyExistsError,
    CollisionPolicy,
    CollisionResolver,
    ExistenceResult,
    MemoryStorageBackend,
    OperationCancelledError,
    ValidationError,
)
from tests.fakes import CountdownSignal, RacingBackend


@pytest.fixture
def backend() -> MemoryStorageBackend:
    """Provide an empty in-memory backend with an empty root path."""
    return MemoryStorageBackend()


async def _create_file(
    backend: MemoryStorageBackend,
    name: str,
    policy: CollisionPolicy,
    **kwargs: object,
):
    return await CollisionResolver(backend).resolve(
        "",
        name,
        policy,
        is_file=True,
        commit=backend.create_file,
        **kwargs,  # type: ignore[arg-type]
    )


@pytest.mark.asyncio
async def test_free_name_is_used_directly(backend: MemoryStorageBackend) -> None:
    """A free name is committed as requested."""
    resolution = await _create_file(backend, "foo.txt", CollisionPolicy.FAIL_IF_EXISTS)

    assert resolution.name == "foo.txt"
    assert resolution.path == "foo.txt"
    assert resolution.created
    assert backend.probe("foo.txt") is ExistenceResult.FILE_EXISTS


@pytest.mark.asyncio
async def test_generate_unique_name_numbers_from_two(
    backend: MemoryStorageBackend,
) -> None:
    """Repeated creation yields foo.txt, foo (2).txt, foo (3).txt."""
    names = []
    for _ in range(3):
        resolution = await _create_file(
            backend, "foo.txt", CollisionPolicy.GENERATE_UNIQUE_NAME
        )
        names.append(resolution.name)

    assert names == ["foo.txt", "foo (2).txt", "foo (3).txt"]
    assert sorted(backend.list_files("")) == sorted(names)


@pytest.mark.asyncio
async def test_generate_unique_name_for_folders(backend: MemoryStorageBackend) -> None:
    """Folder names are numbered as a whole, ignoring dots."""
    resolver = CollisionResolver(backend)
    for _ in range(2):
        resolution = await resolver.resolve(
            "",
            "data.v1",
            CollisionPolicy.GENERATE_UNIQUE_NAME,
            is_file=False,
            commit=backend.create_directory,
        )

    assert resolution.name == "data.v1 (2)"
    assert backend.probe("data.v1 (2)") is ExistenceResult.FOLDER_EXISTS


@pytest.mark.asyncio
async def test_generate_unique_name_skips_other_kinds(
    backend: MemoryStorageBackend,
) -> None:
    """A folder occupying the name also forces a numbered file name."""
    backend.create_directory("report.txt")

    resolution = await _create_file(
        backend, "report.txt", CollisionPolicy.GENERATE_UNIQUE_NAME
    )

    assert resolution.name == "report (2).txt"


@pytest.mark.asyncio
async def test_fail_if_exists(backend: MemoryStorageBackend) -> None:
    """FAIL_IF_EXISTS refuses a taken name."""
    backend.create_file("foo.txt")

    with pytest.raises(AlreadyExistsError):
        await _create_file(backend, "foo.txt", CollisionPolicy.FAIL_IF_EXISTS)


@pytest.mark.asyncio
async def test_open_if_exists_returns_existing(backend: MemoryStorageBackend) -> None:
    """OPEN_IF_EXISTS reports the existing entry without creating anything."""
    backend.create_file("foo.txt")

    resolution = await _create_file(backend, "foo.txt", CollisionPolicy.OPEN_IF_EXISTS)

    assert resolution.path == "foo.txt"
    assert not resolution.created
    assert backend.list_files("") == ["foo.txt"]


@pytest.mark.asyncio
async def test_open_if_exists_rejects_other_kind(backend: MemoryStorageBackend) -> None:
    """A folder cannot be opened as a file."""
    backend.create_directory("foo.txt")

    with pytest.raises(AlreadyExistsError):
        await _create_file(backend, "foo.txt", CollisionPolicy.OPEN_IF_EXISTS)


@pytest.mark.asyncio
async def test_replace_existing_folder_with_file(backend: MemoryStorageBackend) -> None:
    """REPLACE_EXISTING removes a folder recursively before creating a file."""
    backend.create_directory("target")
    backend.create_file("target/inner.txt")

    resolution = await _create_file(backend, "target", CollisionPolicy.REPLACE_EXISTING)

    assert resolution.created
    assert backend.probe("target") is ExistenceResult.FILE_EXISTS


@pytest.mark.asyncio
async def test_lost_race_moves_on_to_next_name() -> None:
    """A name claimed between probe and create is skipped, not reported."""
    backend = RacingBackend({"foo.txt"})

    resolution = await _create_file(
        backend, "foo.txt", CollisionPolicy.GENERATE_UNIQUE_NAME
    )

    assert backend.stolen == ["foo.txt"]
    assert resolution.name == "foo (2).txt"
    assert backend.probe("foo.txt") is ExistenceResult.FILE_EXISTS
    assert backend.probe("foo (2).txt") is ExistenceResult.FILE_EXISTS


@pytest.mark.asyncio
async def test_lost_race_fails_under_fail_if_exists() -> None:
    """FAIL_IF_EXISTS surfaces a lost race as AlreadyExistsError."""
    backend = RacingBackend({"foo.txt"})

    with pytest.raises(AlreadyExistsError):
        await _create_file(backend, "foo.txt", CollisionPolicy.FAIL_IF_EXISTS)


@pytest.mark.asyncio
async def test_lost_race_opens_winner_under_open_if_exists() -> None:
    """OPEN_IF_EXISTS hands back the entry the other actor created."""
    backend = RacingBackend({"foo.txt"})

    resolution = await _create_file(backend, "foo.txt", CollisionPolicy.OPEN_IF_EXISTS)

    assert resolution.path == "foo.txt"
    assert not resolution.created


@pytest.mark.asyncio
async def test_cancelled_before_first_probe(backend: MemoryStorageBackend) -> None:
    """A set signal stops the resolver before touching storage."""
    event = asyncio.Event()
    event.set()

    with pytest.raises(OperationCancelledError):
        await _create_file(
            backend, "foo.txt", CollisionPolicy.FAIL_IF_EXISTS, cancel_event=event
        )

    assert backend.list_files("") == []


@pytest.mark.asyncio
async def test_cancelled_inside_retry_loop(backend: MemoryStorageBackend) -> None:
    """The signal is checked again on every numbering attempt."""
    backend.create_file("foo.txt")
    signal = CountdownSignal(allowed=1)

    with pytest.raises(OperationCancelledError):
        await _create_file(
            backend,
            "foo.txt",
            CollisionPolicy.GENERATE_UNIQUE_NAME,
            cancel_event=signal,
        )

    assert signal.checks == 2
    assert backend.list_files("") == ["foo.txt"]


@pytest.mark.asyncio
async def test_unrecognized_policy_rejected(backend: MemoryStorageBackend) -> None:
    """Values outside the enum are a validation error."""
    with pytest.raises(ValidationError):
        await _create_file(backend, "foo.txt", "replace")  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_replace_never_removes_the_source() -> None:
    """An existing entry that is the relocated file itself is kept."""
    backend = MemoryStorageBackend(case_sensitive=False)
    backend.create_file("a.txt")

    with pytest.raises(AlreadyExistsError):
        await CollisionResolver(backend).resolve(
            "",
            "A.txt",
            CollisionPolicy.REPLACE_EXISTING,
            is_file=True,
            commit=functools.partial(backend.move_file, "a.txt"),
            source="a.txt",
        )

    assert backend.list_files("") == ["a.txt"]


@pytest.mark.asyncio
async def test_retries_are_logged_lazily(
    backend: MemoryStorageBackend,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Log records carry a constant message and separate arguments."""
    backend.create_file("foo.txt")

    with caplog.at_level(logging.DEBUG, logger="portable_storage.collision"):
        await _create_file(backend, "foo.txt", CollisionPolicy.GENERATE_UNIQUE_NAME)

    records = [r for r in caplog.records if r.name == "portable_storage.collision"]
    assert records
    assert records[0].msg == "%s is taken, trying %s"
    assert records[0].args == ("foo.txt", "foo (2).txt")
    assert records[0].getMessage() == "foo.txt is taken, trying foo (2).txt"

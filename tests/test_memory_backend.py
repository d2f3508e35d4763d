"""Tests specific to the in-memory backend adapter."""

from __future__ import annotations

import pytest

from portable_storage import (
    AlreadyExistsError,
    CollisionPolicy,
    ExistenceResult,
    FileAccess,
    Folder,
    MemoryStorageBackend,
    MissingFileError,
    MissingFolderError,
    UnsupportedOperationError,
    ValidationError,
)


@pytest.fixture
def backend() -> MemoryStorageBackend:
    """Provide a case-sensitive store rooted at ``memory``."""
    return MemoryStorageBackend(root_path="memory")


class TestPaths:
    """Root path handling and navigation."""

    def test_owns(self, backend: MemoryStorageBackend) -> None:
        """Only paths under the root path belong to the store."""
        assert backend.owns("memory")
        assert backend.owns("memory/a/b.txt")
        assert not backend.owns("memoryx/a.txt")
        assert not backend.owns("other/a.txt")
        assert not backend.owns("memory/../a.txt")

    def test_empty_root_path(self) -> None:
        """With an empty root path, entry paths are bare names."""
        backend = MemoryStorageBackend()
        backend.create_file("a.txt")

        assert backend.owns("a.txt")
        assert backend.list_files("") == ["a.txt"]

    def test_parent_traversal_rejected(self, backend: MemoryStorageBackend) -> None:
        """``..`` segments never reach outside the store."""
        with pytest.raises(ValidationError):
            backend.create_file("memory/../escape.txt")

    def test_navigating_through_a_file(self, backend: MemoryStorageBackend) -> None:
        """A file has no children."""
        backend.create_file("memory/a.txt")

        assert backend.probe("memory/a.txt/b.txt") is ExistenceResult.NOT_FOUND
        with pytest.raises(MissingFolderError):
            backend.create_file("memory/a.txt/b.txt")

    def test_normalize(self, backend: MemoryStorageBackend) -> None:
        """Redundant separators are dropped; foreign paths are rejected."""
        assert backend.normalize("memory//docs/a.txt/") == "memory/docs/a.txt"
        assert backend.normalize("memory") == "memory"
        with pytest.raises(ValidationError):
            backend.normalize("docs/a.txt")

    @pytest.mark.asyncio
    async def test_move_identifier_is_canonical(
        self,
        backend: MemoryStorageBackend,
    ) -> None:
        """A moved handle carries the same path as a listed one."""
        root = Folder.root(backend)
        sub = await root.create_folder("sub")
        file = await root.create_file("a.txt")

        await file.move("memory//sub/b.txt")

        assert file.path == sub.child_path("b.txt")
        assert [f.path for f in await sub.list_files()] == [file.path]

    def test_delete_root_rejected(self, backend: MemoryStorageBackend) -> None:
        """The root node cannot be deleted."""
        with pytest.raises(UnsupportedOperationError):
            backend.delete_directory("memory")


class TestCaseSensitivity:
    """Name matching modes."""

    def test_case_sensitive_names_are_distinct(
        self,
        backend: MemoryStorageBackend,
    ) -> None:
        """Names differing in case coexist by default."""
        backend.create_file("memory/Readme.md")
        backend.create_file("memory/README.md")

        assert sorted(backend.list_files("memory")) == ["README.md", "Readme.md"]

    def test_case_insensitive_matching(self) -> None:
        """Insensitive stores match any case but keep the stored name."""
        backend = MemoryStorageBackend(root_path="memory", case_sensitive=False)
        backend.create_directory("memory/Docs")
        backend.create_file("memory/Docs/Readme.md")

        assert backend.probe("memory/DOCS/README.MD") is ExistenceResult.FILE_EXISTS
        assert backend.list_files("memory/docs") == ["Readme.md"]
        with pytest.raises(AlreadyExistsError):
            backend.create_file("memory/docs/README.md")

    @pytest.mark.asyncio
    async def test_case_insensitive_collision_numbering(self) -> None:
        """Differently cased names still collide."""
        root = Folder.root(MemoryStorageBackend(case_sensitive=False))
        await root.create_file("Report.txt")

        file = await root.create_file(
            "REPORT.txt", CollisionPolicy.GENERATE_UNIQUE_NAME
        )

        assert file.name == "REPORT (2).txt"

    def test_same_entry_follows_matching_rules(self) -> None:
        """Spellings name one entry only where matching ignores case."""
        insensitive = MemoryStorageBackend(root_path="memory", case_sensitive=False)
        sensitive = MemoryStorageBackend(root_path="memory")

        assert insensitive.same_entry("memory/Docs/a.txt", "memory/docs/A.TXT")
        assert not sensitive.same_entry("memory/Docs/a.txt", "memory/docs/A.TXT")
        assert sensitive.same_entry("memory/docs/a.txt", "memory/docs/a.txt/")
        assert not insensitive.same_entry("memory/a.txt", "other/a.txt")

    def test_move_file_respells_in_place(self) -> None:
        """Moving a node onto another spelling of itself re-keys it."""
        backend = MemoryStorageBackend(root_path="memory", case_sensitive=False)
        backend.create_file("memory/a.txt")

        backend.move_file("memory/a.txt", "memory/A.txt")

        assert backend.list_files("memory") == ["A.txt"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "policy",
        [
            CollisionPolicy.FAIL_IF_EXISTS,
            CollisionPolicy.GENERATE_UNIQUE_NAME,
            CollisionPolicy.REPLACE_EXISTING,
        ],
    )
    async def test_case_only_rename(self, policy: CollisionPolicy) -> None:
        """Changing only the case of a name keeps the file and its content."""
        root = Folder.root(MemoryStorageBackend(root_path="memory", case_sensitive=False))
        file = await root.create_file("a.txt")
        await file.write_all_text("precious")

        await file.rename("A.txt", policy)

        assert file.name == "A.txt"
        assert file.path == "memory/A.txt"
        assert [f.name for f in await root.list_files()] == ["A.txt"]
        assert await file.read_all_text() == "precious"

    @pytest.mark.asyncio
    async def test_case_only_copy_with_replace_keeps_file(self) -> None:
        """Copying a file onto another spelling of itself is a no-op."""
        root = Folder.root(MemoryStorageBackend(root_path="memory", case_sensitive=False))
        file = await root.create_file("a.txt")
        await file.write_all_text("precious")

        copy = await file.copy("memory/A.txt", CollisionPolicy.REPLACE_EXISTING)

        assert copy.path == file.path
        assert [f.name for f in await root.list_files()] == ["a.txt"]
        assert await file.read_all_text() == "precious"

    @pytest.mark.asyncio
    async def test_case_only_copy_fail_if_exists(self) -> None:
        """The source occupies every spelling of its name."""
        root = Folder.root(MemoryStorageBackend(root_path="memory", case_sensitive=False))
        file = await root.create_file("a.txt")

        with pytest.raises(AlreadyExistsError):
            await file.copy("memory/A.txt", CollisionPolicy.FAIL_IF_EXISTS)

        assert [f.name for f in await root.list_files()] == ["a.txt"]


class TestStreams:
    """Read and read-write streams."""

    def test_write_back_on_close(self, backend: MemoryStorageBackend) -> None:
        """Bytes become visible when the stream is closed."""
        backend.create_file("memory/a.bin")

        stream = backend.open("memory/a.bin", FileAccess.READ_AND_WRITE)
        stream.write(b"data")
        stream.close()

        with backend.open("memory/a.bin", FileAccess.READ) as reader:
            assert reader.read() == b"data"
        assert backend.stats("memory/a.bin").length == 4

    def test_read_stream_is_a_snapshot(self, backend: MemoryStorageBackend) -> None:
        """Writing through a read stream never changes the stored file."""
        backend.create_file("memory/a.bin")

        with backend.open("memory/a.bin", FileAccess.READ) as reader:
            reader.write(b"ignored")

        assert backend.stats("memory/a.bin").length == 0

    def test_open_directory(self, backend: MemoryStorageBackend) -> None:
        """Directories cannot be opened."""
        backend.create_directory("memory/docs")

        with pytest.raises(MissingFileError):
            backend.open("memory/docs", FileAccess.READ)


class TestRelocation:
    """Moving and copying nodes."""

    def test_move_preserves_content(self, backend: MemoryStorageBackend) -> None:
        """A moved file keeps its bytes and creation time."""
        backend.create_directory("memory/dst")
        backend.create_file("memory/a.txt")
        with backend.open("memory/a.txt", FileAccess.READ_AND_WRITE) as stream:
            stream.write(b"payload")
        created = backend.stats("memory/a.txt").created_at

        backend.move_file("memory/a.txt", "memory/dst/b.txt")

        assert backend.probe("memory/a.txt") is ExistenceResult.NOT_FOUND
        stats = backend.stats("memory/dst/b.txt")
        assert stats.name == "b.txt"
        assert stats.length == len(b"payload")
        assert stats.created_at == created

    def test_move_onto_existing(self, backend: MemoryStorageBackend) -> None:
        """A taken destination is refused and the source stays put."""
        backend.create_file("memory/a.txt")
        backend.create_file("memory/b.txt")

        with pytest.raises(AlreadyExistsError):
            backend.move_file("memory/a.txt", "memory/b.txt")
        assert backend.probe("memory/a.txt") is ExistenceResult.FILE_EXISTS

    def test_move_missing_source(self, backend: MemoryStorageBackend) -> None:
        """Moving a missing file is a not-found error."""
        with pytest.raises(MissingFileError):
            backend.move_file("memory/a.txt", "memory/b.txt")

    def test_copy_is_independent(self, backend: MemoryStorageBackend) -> None:
        """Changing the original does not change the copy."""
        backend.create_file("memory/a.txt")
        backend.copy_file("memory/a.txt", "memory/b.txt")
        with backend.open("memory/a.txt", FileAccess.READ_AND_WRITE) as stream:
            stream.write(b"new")

        assert backend.stats("memory/b.txt").length == 0

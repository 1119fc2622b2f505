"""Tests for the Copy/Move Executor."""

import pytest

from smbconnector.copy_move import CopyMoveExecutor, FileCopyMode
from smbconnector.exceptions import (
    FileAlreadyExistsError,
    IllegalPathError,
    OperationError,
)


class TestCopy:
    """COPY keeps the source."""

    def test_copy_file_into_directory(self, fs, server):
        server.put("/share/in/a.txt", "data")
        server.makedirs("/share/archive")

        target = fs.copy_or_move("in/a.txt", "archive", FileCopyMode.COPY)

        assert target == "archive/a.txt"
        assert server.files["/share/archive/a.txt"] == b"data"
        assert server.files["/share/in/a.txt"] == b"data"

    def test_copy_with_rename(self, fs, server):
        server.put("/share/in/a.txt", "data")

        target = fs.copy_or_move("in/a.txt", "archive", rename_to="a-2026.txt")

        assert target == "archive/a-2026.txt"
        assert "/share/archive/a-2026.txt" in server.files

    def test_copy_creates_target_directory(self, fs, server):
        server.put("/share/in/a.txt", "data")

        fs.copy_or_move("in/a.txt", "archive/2026/01")

        assert "/share/archive/2026/01/a.txt" in server.files

    def test_missing_target_directory_without_creation(self, fs, server):
        server.put("/share/in/a.txt", "data")

        with pytest.raises(OperationError, match="does not exist"):
            fs.copy_or_move("in/a.txt", "archive", create_parent_directories=False)

    def test_target_directory_is_a_file(self, fs, server):
        server.put("/share/in/a.txt", "data")
        server.put("/share/archive", "not a directory")

        with pytest.raises(OperationError, match="not a directory"):
            fs.copy_or_move("in/a.txt", "archive")

    def test_existing_target_without_overwrite(self, fs, server):
        server.put("/share/in/a.txt", "new")
        server.put("/share/archive/a.txt", "old")

        with pytest.raises(FileAlreadyExistsError, match="already exists"):
            fs.copy_or_move("in/a.txt", "archive")

        assert server.files["/share/archive/a.txt"] == b"old"

    def test_existing_target_with_overwrite(self, fs, server):
        server.put("/share/in/a.txt", "new")
        server.put("/share/archive/a.txt", "old")

        fs.copy_or_move("in/a.txt", "archive", overwrite=True)

        assert server.files["/share/archive/a.txt"] == b"new"
        assert server.children("/share/archive") == ["/share/archive/a.txt"]

    def test_failed_overwrite_keeps_existing_target(self, fs, server):
        server.put("/share/in/a.txt", "new")
        server.put("/share/archive/a.txt", "old")
        server.copy_failures["/share/in/a.txt"] = OSError("disk full")

        with pytest.raises(OperationError, match="disk full"):
            fs.copy_or_move("in/a.txt", "archive", overwrite=True)

        assert server.files["/share/archive/a.txt"] == b"old"
        assert server.children("/share/archive") == ["/share/archive/a.txt"]

    def test_failed_directory_overwrite_keeps_existing_target(self, fs, server):
        server.put("/share/in/batch/a.txt", "a")
        server.put("/share/in/batch/b.txt", "b")
        server.put("/share/archive/batch/old.txt", "old")
        server.copy_failures["/share/in/batch/b.txt"] = PermissionError("access denied")

        with pytest.raises(OperationError):
            fs.copy_or_move("in/batch", "archive", overwrite=True)

        assert server.children("/share/archive") == ["/share/archive/batch"]
        assert server.children("/share/archive/batch") == ["/share/archive/batch/old.txt"]

    def test_overwrite_directory(self, fs, server):
        server.put("/share/in/batch/a.txt", "a")
        server.put("/share/archive/batch/old.txt", "old")

        fs.copy_or_move("in/batch", "archive", overwrite=True)

        assert server.children("/share/archive/batch") == ["/share/archive/batch/a.txt"]

    def test_missing_source(self, fs):
        with pytest.raises(OperationError, match="Source path 'in/missing.txt' does not exist"):
            fs.copy_or_move("in/missing.txt", "archive")

    def test_copy_directory_recursively(self, fs, server):
        server.put("/share/in/batch/a.txt", "a")
        server.put("/share/in/batch/nested/b.txt", "b")

        target = fs.copy_or_move("in/batch", "archive")

        assert target == "archive/batch"
        assert server.files["/share/archive/batch/a.txt"] == b"a"
        assert server.files["/share/archive/batch/nested/b.txt"] == b"b"
        assert "/share/in/batch/a.txt" in server.files

    def test_copy_onto_itself(self, fs, server):
        server.put("/share/in/a.txt", "a")
        with pytest.raises(IllegalPathError, match="onto itself"):
            fs.copy_or_move("in/a.txt", "in")

    def test_copy_directory_into_itself(self, fs, server):
        server.put("/share/in/batch/a.txt", "a")
        with pytest.raises(IllegalPathError, match="into itself"):
            fs.copy_or_move("in/batch", "in/batch/sub")

    def test_mode_accepts_strings(self, fs, server):
        server.put("/share/in/a.txt", "a")
        CopyMoveExecutor(fs).execute("in/a.txt", "archive", "copy")
        assert "/share/in/a.txt" in server.files

    def test_unknown_mode(self, fs):
        with pytest.raises(OperationError, match="Unknown copy mode"):
            CopyMoveExecutor(fs).execute("in/a.txt", "archive", "teleport")


class TestMove:
    """MOVE deletes the source only after the copy succeeded."""

    def test_move_file(self, fs, server):
        server.put("/share/in/a.txt", "data")

        target = fs.copy_or_move("in/a.txt", "archive", FileCopyMode.MOVE)

        assert target == "archive/a.txt"
        assert server.files["/share/archive/a.txt"] == b"data"
        assert not server.exists("/share/in/a.txt")

    def test_move_directory(self, fs, server):
        server.put("/share/in/batch/a.txt", "a")

        fs.copy_or_move("in/batch", "archive", FileCopyMode.MOVE)

        assert server.files["/share/archive/batch/a.txt"] == b"a"
        assert not server.exists("/share/in/batch")

    def test_failed_copy_keeps_source(self, fs, server):
        server.put("/share/in/a.txt", "data")
        server.copy_failures["/share/in/a.txt"] = PermissionError("access denied")

        with pytest.raises(OperationError, match="access denied"):
            fs.copy_or_move("in/a.txt", "archive", FileCopyMode.MOVE)

        assert server.files["/share/in/a.txt"] == b"data"
        assert not server.exists("/share/archive/a.txt")

    def test_failed_directory_copy_removes_partial_target(self, fs, server):
        server.put("/share/in/batch/a.txt", "a")
        server.put("/share/in/batch/b.txt", "b")
        server.copy_failures["/share/in/batch/b.txt"] = PermissionError("access denied")

        with pytest.raises(OperationError):
            fs.copy_or_move("in/batch", "archive", FileCopyMode.MOVE)

        assert not server.exists("/share/archive/batch")
        assert server.files["/share/in/batch/a.txt"] == b"a"
        assert server.files["/share/in/batch/b.txt"] == b"b"

    def test_existing_target_keeps_source(self, fs, server):
        server.put("/share/in/a.txt", "new")
        server.put("/share/archive/a.txt", "old")

        with pytest.raises(FileAlreadyExistsError):
            fs.copy_or_move("in/a.txt", "archive", FileCopyMode.MOVE)

        assert server.exists("/share/in/a.txt")

    def test_failed_source_delete_reports_the_copy(self, fs, server):
        server.put("/share/in/a.txt", "data")
        server.delete_failures["/share/in/a.txt"] = PermissionError("file in use")

        with pytest.raises(OperationError, match="could not delete the source"):
            fs.copy_or_move("in/a.txt", "archive", FileCopyMode.MOVE)

        assert server.files["/share/archive/a.txt"] == b"data"
        assert server.exists("/share/in/a.txt")

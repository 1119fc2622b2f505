"""Copy and move of files and directory trees within a share.

A move is a copy followed by deleting the source. The source is deleted only
after the copy completed; a failed copy leaves the source untouched and
removes whatever part of the target it had created.

Overwriting copies to a hidden staging name next to the target first. The
old target is deleted only after that copy is complete, then the staged
copy is renamed into place, so a failed copy leaves the old target intact.

Public API:
    FileCopyMode: COPY or MOVE
    CopyMoveExecutor: Runs a copy/move through a filesystem connection
"""

import logging
import uuid
from enum import Enum
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from smbconnector.exceptions import (
    FileAlreadyExistsError,
    IllegalPathError,
    OperationError,
    SmbConnectorError,
)
from smbconnector.models import FileAttributes

if TYPE_CHECKING:
    from smbconnector.filesystem import SmbFileSystemConnection

logger = logging.getLogger(__name__)


class FileCopyMode(str, Enum):
    """What happens to the source once it is copied."""

    COPY = "COPY"
    MOVE = "MOVE"

    @classmethod
    def parse(cls, value: "str | FileCopyMode") -> "FileCopyMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise OperationError(f"Unknown copy mode: {value}") from None


class CopyMoveExecutor:
    """Copy or move paths for one filesystem connection."""

    def __init__(self, connection: "SmbFileSystemConnection"):
        self.connection = connection

    def execute(
        self,
        source: str,
        target_directory: str,
        mode: FileCopyMode = FileCopyMode.COPY,
        overwrite: bool = False,
        create_parent_directories: bool = True,
        rename_to: str | None = None,
    ) -> str:
        """Copy or move ``source`` into ``target_directory``.

        Args:
            source: File or directory to copy
            target_directory: Directory receiving the copy
            mode: COPY keeps the source; MOVE deletes it after the copy
            overwrite: Replace an existing target
            create_parent_directories: Create a missing target directory
            rename_to: Name of the copy (default: the source's name)

        Returns:
            Share-root-relative path of the copy

        Raises:
            OperationError: Source missing, target directory missing, or the
                copy/delete failed
            FileAlreadyExistsError: Target exists and overwrite is False
            IllegalPathError: Directory copied into itself
        """
        mode = FileCopyMode.parse(mode)
        conn = self.connection
        resolver = conn.resolver

        source_path = resolver.resolve(source)
        target_dir = resolver.resolve(target_directory)
        name = rename_to or PurePosixPath(source_path).name
        target_path = resolver.join(target_dir, name)

        if target_path == source_path:
            raise IllegalPathError(
                f"Cannot {mode.value.lower()} '{source}' onto itself", path=source
            )
        if PurePosixPath(source_path) in PurePosixPath(target_path).parents:
            raise IllegalPathError(
                f"Cannot {mode.value.lower()} directory '{source}' into itself", path=source
            )

        with conn.locks.lock_all([source_path, target_path]):
            source_attrs = conn.stat_resolved(source_path)
            if source_attrs is None:
                raise OperationError(f"Source path '{source}' does not exist", path=source)

            dir_attrs = conn.stat_resolved(target_dir)
            if dir_attrs is None:
                if not create_parent_directories:
                    raise OperationError(
                        f"Target directory '{target_directory}' does not exist",
                        path=target_directory,
                    )
                conn.ensure_directory(target_dir)
            elif not dir_attrs.is_directory:
                raise OperationError(
                    f"Target '{target_directory}' is not a directory", path=target_directory
                )

            replace = conn.stat_resolved(target_path) is not None
            if replace and not overwrite:
                raise FileAlreadyExistsError(
                    f"Cannot {mode.value.lower()} '{source}': "
                    f"'{resolver.relativize(target_path)}' already exists",
                    path=target_path,
                )

            # An existing target is only removed once its replacement is complete
            copy_path = self._staging_path(target_path) if replace else target_path
            try:
                self._copy(source_path, source_attrs, copy_path)
                if replace:
                    with conn.guard("delete", target_path):
                        conn.client.delete(target_path)
            except SmbConnectorError:
                self._discard_partial(copy_path)
                raise
            if replace:
                self._move_into_place(copy_path, target_path)

            if mode is FileCopyMode.MOVE:
                try:
                    with conn.guard("delete", source):
                        conn.client.delete(source_path)
                except OperationError as e:
                    raise OperationError(
                        f"Copied '{source}' to '{resolver.relativize(target_path)}' "
                        f"but could not delete the source: {e}",
                        path=source,
                    ) from e

        logger.debug(f"{mode.value} {source_path} -> {target_path}")
        return resolver.relativize(target_path)

    def _copy(self, source_path: str, attrs: FileAttributes, target_path: str) -> None:
        conn = self.connection
        if not attrs.is_directory:
            with conn.guard("copy", source_path):
                conn.client.copy(source_path, target_path)
            return

        with conn.guard("create directory", target_path):
            conn.client.mkdir(target_path)
        with conn.guard("list", source_path):
            children = conn.client.list(source_path)
        for child in children:
            child_target = str(PurePosixPath(target_path) / PurePosixPath(child.path).name)
            self._copy(child.path, child, child_target)

    @staticmethod
    def _staging_path(target_path: str) -> str:
        target = PurePosixPath(target_path)
        return str(target.parent / f".{target.name}.{uuid.uuid4().hex[:8]}.partial")

    def _move_into_place(self, copy_path: str, target_path: str) -> None:
        conn = self.connection
        try:
            with conn.guard("rename", copy_path):
                conn.client.rename(copy_path, PurePosixPath(target_path).name)
        except OperationError as e:
            relative = conn.resolver.relativize(copy_path)
            raise OperationError(
                f"Replaced '{conn.resolver.relativize(target_path)}' but could not rename "
                f"the new copy into place, it was left at '{relative}': {e}",
                path=target_path,
            ) from e

    def _discard_partial(self, target_path: str) -> None:
        conn = self.connection
        try:
            if conn.stat_resolved(target_path) is not None:
                with conn.guard("delete", target_path):
                    conn.client.delete(target_path)
        except SmbConnectorError as e:
            logger.warning(f"Could not remove partial copy {target_path}: {e}")


__all__ = ["CopyMoveExecutor", "FileCopyMode"]

"""Filesystem Connection - authenticated, path-resolving file operations.

Philosophy:
- One facade for on-demand operations and the directory listener
- Paths resolved against the share root before reaching the client
- Same-path operations serialize through the path lock provider
- Client errors become typed connector errors

Public API (the "studs"):
    SmbFileSystemConnection: list / read / write / delete / rename /
        copy_or_move / create_directory / exists / get_attributes
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from smbconnector.copy_move import CopyMoveExecutor, FileCopyMode
from smbconnector.exceptions import (
    FileAlreadyExistsError,
    OperationError,
    SmbConnectionError,
)
from smbconnector.log_sanitizer import LogSanitizer
from smbconnector.models import FileAttributes, ValidationResult
from smbconnector.path_locks import LockFactory, PathLockFactory
from smbconnector.path_resolver import PathResolver

if TYPE_CHECKING:
    from smbconnector.session.session_manager import Session, SessionManager

logger = logging.getLogger(__name__)


class SmbFileSystemConnection:
    """File operations over one checked-out session.

    Example:
        >>> with pool.connection() as fs:
        ...     fs.write("in/hello.txt", b"hi")
        ...     fs.copy_or_move("in/hello.txt", "archive", FileCopyMode.MOVE)
    """

    def __init__(
        self,
        session: "Session",
        lock_factory: LockFactory | None = None,
        session_manager: "SessionManager | None" = None,
    ):
        """Initialize connection.

        Args:
            session: Checked-out session (exclusive to this connection)
            lock_factory: Path lock provider shared by every connection of the
                connector (default: a private PathLockFactory)
            session_manager: Manager used for validation (default: probe the
                client directly)
        """
        self.session = session
        self.client = session.client
        self.locks = lock_factory or PathLockFactory()
        self.session_manager = session_manager
        self.resolver = PathResolver(session.config.share_root)
        self.copy_move_executor = CopyMoveExecutor(self)

    # ------------------------------------------------------------------
    # Error translation
    # ------------------------------------------------------------------

    @contextmanager
    def guard(self, operation: str, path: str) -> Generator[None, None, None]:
        """Translate client errors raised inside the block.

        Raises:
            SmbConnectionError: Transport lost (builtin ConnectionError)
            FileAlreadyExistsError: Target exists
            OperationError: Any other OSError
        """
        secrets = (self.session.config.password,)
        try:
            yield
        except ConnectionError as e:
            config = self.session.config
            raise SmbConnectionError(
                f"{operation} '{path}' failed: {LogSanitizer.create_safe_error_message(e, secrets)}",
                host=config.host,
                domain=config.domain,
                username=config.username,
                share_root=config.share_root,
                log_level=config.log_level.value,
            ) from e
        except FileExistsError as e:
            raise FileAlreadyExistsError(f"Cannot {operation} '{path}': already exists", path=path) from e
        except FileNotFoundError as e:
            raise OperationError(f"Cannot {operation} '{path}': no such file or directory", path=path) from e
        except OSError as e:
            message = LogSanitizer.create_safe_error_message(e, secrets)
            raise OperationError(f"Cannot {operation} '{path}': {message}", path=path) from e

    # ------------------------------------------------------------------
    # Unlocked helpers (callers hold the relevant locks)
    # ------------------------------------------------------------------

    def stat_resolved(self, resolved: str) -> FileAttributes | None:
        """Attributes of a resolved path, or None when it does not exist."""
        with self.guard("stat", resolved):
            try:
                attrs = self.client.stat(resolved)
            except FileNotFoundError:
                return None
        return self._relative(attrs)

    def ensure_directory(self, resolved: str) -> None:
        """Create ``resolved`` and its parents when missing."""
        existing = self.stat_resolved(resolved)
        if existing is not None:
            if not existing.is_directory:
                raise OperationError(f"'{resolved}' exists and is not a directory", path=resolved)
            return
        with self.guard("create directory", resolved):
            self.client.mkdir(resolved)

    def _relative(self, attrs: FileAttributes) -> FileAttributes:
        return FileAttributes(
            path=self.resolver.relativize(attrs.path),
            size=attrs.size,
            last_modified=attrs.last_modified,
            is_regular_file=attrs.is_regular_file,
            is_directory=attrs.is_directory,
            is_symlink=attrs.is_symlink,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def list(self, directory: str = ".", recursive: bool = False) -> list[FileAttributes]:
        """List a directory.

        Args:
            directory: Directory path (relative to the share root)
            recursive: Descend into sub-directories (symlinks are not followed)

        Returns:
            Entries with share-root-relative paths

        Raises:
            OperationError: Directory missing or not a directory
        """
        resolved = self.resolver.resolve(directory)
        attrs = self.stat_resolved(resolved)
        if attrs is None:
            raise OperationError(f"Directory '{directory}' does not exist", path=directory)
        if not attrs.is_directory:
            raise OperationError(f"Path '{directory}' is not a directory", path=directory)

        results: list[FileAttributes] = []
        pending = [resolved]
        while pending:
            current = pending.pop(0)
            with self.guard("list", current):
                entries = self.client.list(current)
            for entry in entries:
                results.append(self._relative(entry))
                if recursive and entry.is_directory and not entry.is_symlink:
                    pending.append(entry.path)
        return results

    def read(self, path: str) -> bytes:
        """Read a file's content."""
        resolved = self.resolver.resolve(path)
        with self.locks.lock(resolved):
            with self.guard("read", path):
                return self.client.read(resolved)

    def write(
        self,
        path: str,
        content: bytes | str,
        overwrite: bool = True,
        create_parent_directories: bool = True,
    ) -> None:
        """Write a file.

        Raises:
            FileAlreadyExistsError: File exists and overwrite is False
            OperationError: Parent directory missing and not auto-created
        """
        if isinstance(content, str):
            content = content.encode("utf-8")
        resolved = self.resolver.resolve(path)
        parent = str(PurePosixPath(resolved).parent)

        with self.locks.lock(resolved):
            existing = self.stat_resolved(resolved)
            if existing is not None:
                if existing.is_directory:
                    raise OperationError(f"Cannot write '{path}': it is a directory", path=path)
                if not overwrite:
                    raise FileAlreadyExistsError(
                        f"Cannot write '{path}': file already exists", path=path
                    )

            if self.stat_resolved(parent) is None:
                if not create_parent_directories:
                    raise OperationError(
                        f"Cannot write '{path}': parent directory does not exist", path=path
                    )
                self.ensure_directory(parent)

            with self.guard("write", path):
                self.client.write(resolved, content)
        logger.debug(f"Wrote {len(content)} bytes to {resolved}")

    def delete(self, path: str) -> None:
        """Delete a file or directory (recursively)."""
        resolved = self.resolver.resolve(path)
        if resolved == str(self.resolver.root):
            raise OperationError("Refusing to delete the share root", path=path)
        with self.locks.lock(resolved):
            if self.stat_resolved(resolved) is None:
                raise OperationError(f"Cannot delete '{path}': it does not exist", path=path)
            with self.guard("delete", path):
                self.client.delete(resolved)
        logger.debug(f"Deleted {resolved}")

    def rename(self, path: str, new_name: str, overwrite: bool = False) -> None:
        """Rename a file or directory within its parent directory.

        Raises:
            FileAlreadyExistsError: Target name taken and overwrite is False
        """
        resolved = self.resolver.resolve(path)
        target = self.resolver.join(str(PurePosixPath(resolved).parent), new_name)

        with self.locks.lock_all([resolved, target]):
            if self.stat_resolved(resolved) is None:
                raise OperationError(f"Cannot rename '{path}': it does not exist", path=path)
            if self.stat_resolved(target) is not None:
                if not overwrite:
                    raise FileAlreadyExistsError(
                        f"Cannot rename '{path}' to '{new_name}': target already exists",
                        path=path,
                    )
                with self.guard("delete", target):
                    self.client.delete(target)
            with self.guard("rename", path):
                self.client.rename(resolved, new_name)
        logger.debug(f"Renamed {resolved} to {new_name}")

    def copy_or_move(
        self,
        source: str,
        target_directory: str,
        mode: FileCopyMode = FileCopyMode.COPY,
        overwrite: bool = False,
        create_parent_directories: bool = True,
        rename_to: str | None = None,
    ) -> str:
        """Copy or move ``source`` into ``target_directory``.

        Returns:
            Share-root-relative path of the new copy
        """
        return self.copy_move_executor.execute(
            source,
            target_directory,
            mode,
            overwrite=overwrite,
            create_parent_directories=create_parent_directories,
            rename_to=rename_to,
        )

    def create_directory(self, path: str) -> None:
        """Create a directory (and missing parents).

        Raises:
            FileAlreadyExistsError: Path already exists
        """
        resolved = self.resolver.resolve(path)
        with self.locks.lock(resolved):
            if self.stat_resolved(resolved) is not None:
                raise FileAlreadyExistsError(f"'{path}' already exists", path=path)
            with self.guard("create directory", path):
                self.client.mkdir(resolved)

    def exists(self, path: str) -> bool:
        return self.stat_resolved(self.resolver.resolve(path)) is not None

    def get_attributes(self, path: str) -> FileAttributes:
        """Attributes of ``path``.

        Raises:
            OperationError: Path does not exist
        """
        attrs = self.stat_resolved(self.resolver.resolve(path))
        if attrs is None:
            raise OperationError(f"'{path}' does not exist", path=path)
        return attrs

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def validate_connection(self) -> ValidationResult:
        """Validate the underlying session (never raises)."""
        if self.session_manager is not None:
            return self.session_manager.validate(self.session)

        try:
            if self.client.is_alive():
                return ValidationResult.success()
            return ValidationResult.failure("SMB session is not alive")
        except Exception as e:
            return ValidationResult.failure(f"Liveness probe failed: {e}", cause=e)

    def disconnect(self) -> None:
        if self.session_manager is not None:
            self.session_manager.disconnect(self.session)
        else:
            self.session.closed = True
            self.client.disconnect()


__all__ = ["SmbFileSystemConnection"]

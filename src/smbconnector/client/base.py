"""Remote session client protocol.

The connector never speaks the wire protocol itself. It drives one of these
clients per session. Paths passed to a client are always resolved absolute
share paths of the form ``/<share>/<dir>/<file>``.

Error contract for implementations:
- per-file failures raise ``OSError`` subclasses (``FileNotFoundError``,
  ``FileExistsError``, ``PermissionError``, ...)
- a lost or unusable transport raises the builtin ``ConnectionError``
"""

from typing import Protocol, runtime_checkable

from smbconnector.models import FileAttributes


@runtime_checkable
class RemoteSessionClient(Protocol):
    """Primitives against one remote share."""

    def login(self, domain: str | None, username: str | None, password: str | None) -> None:
        """Authenticate. Raises on failure."""
        ...

    def list(self, path: str) -> list[FileAttributes]:
        """List direct children of ``path``; returned paths are absolute share paths."""
        ...

    def read(self, path: str) -> bytes: ...

    def write(self, path: str, content: bytes) -> None: ...

    def copy(self, source: str, target: str) -> None:
        """Copy one regular file server-side."""
        ...

    def delete(self, path: str) -> None:
        """Delete a file, or a directory with its contents."""
        ...

    def rename(self, path: str, new_name: str) -> None:
        """Rename ``path`` within its parent directory."""
        ...

    def mkdir(self, path: str) -> None:
        """Create a directory and any missing parents."""
        ...

    def stat(self, path: str) -> FileAttributes:
        """Attributes of ``path``. Raises FileNotFoundError when absent."""
        ...

    def is_alive(self) -> bool: ...

    def disconnect(self) -> None: ...


__all__ = ["RemoteSessionClient"]

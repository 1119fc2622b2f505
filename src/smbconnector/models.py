"""Data models shared by the connection, sessions, matcher and listener."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath


@dataclass(frozen=True)
class FileAttributes:
    """Metadata of one entry on the share.

    Attributes:
        path: Share-root-relative POSIX path
        size: Size in bytes (None when the server did not report it)
        last_modified: Last write time (None when unknown)
        is_regular_file: Entry is a regular file
        is_directory: Entry is a directory
        is_symlink: Entry is a symbolic link / reparse point
    """

    path: str
    size: int | None = None
    last_modified: datetime | None = None
    is_regular_file: bool = True
    is_directory: bool = False
    is_symlink: bool = False

    @property
    def name(self) -> str:
        """Final path component."""
        return PurePosixPath(self.path).name

    @property
    def identity(self) -> tuple[str, datetime | None, int | None]:
        """Identity used for duplicate suppression: path + last-modified + size."""
        return (self.path, self.last_modified, self.size)


class ProcessingOutcome(str, Enum):
    """Result of handing a file to the downstream consumer."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class ListenerMessage:
    """What the directory listener hands to its consumer."""

    attributes: FileAttributes
    payload: bytes

    def text(self, encoding: str = "utf-8") -> str:
        """Decode the payload."""
        return self.payload.decode(encoding)


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a session."""

    valid: bool
    message: str = ""
    cause: BaseException | None = None

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def failure(cls, message: str, cause: BaseException | None = None) -> "ValidationResult":
        return cls(valid=False, message=message, cause=cause)


__all__ = ["FileAttributes", "ListenerMessage", "ProcessingOutcome", "ValidationResult"]

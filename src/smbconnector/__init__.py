"""smbconnector - pooled SMB sessions, file operations and directory listening

Philosophy:
- Ruthless simplicity
- Brick architecture (self-contained modules)
- Passwords are never logged or echoed in errors
- At-least-once delivery for listened directories

The connector exposes file operations on an SMB share relative to a share
root, copy/move between directories, and a polling directory listener that
survives transient outages without redelivering already processed files.
"""

__version__ = "0.1.0"

from smbconnector.config import (  # noqa: E402
    ConfigManager,
    ConnectionConfig,
    ListenerConfig,
    LogLevel,
    PoolConfig,
)
from smbconnector.copy_move import CopyMoveExecutor, FileCopyMode  # noqa: E402
from smbconnector.exceptions import (  # noqa: E402
    ConfigurationError,
    OperationError,
    PostActionError,
    SmbConnectionError,
    SmbConnectorError,
)
from smbconnector.filesystem import SmbFileSystemConnection  # noqa: E402
from smbconnector.listener import DirectoryListener, ListenerState, WatermarkStore  # noqa: E402
from smbconnector.matcher import FileMatcher, MatcherCriteria, MatchPolicy  # noqa: E402
from smbconnector.models import FileAttributes, ListenerMessage, ProcessingOutcome  # noqa: E402
from smbconnector.post_action import PostActionConfig, PostActionExecutor  # noqa: E402
from smbconnector.session import SessionManager, SessionPool  # noqa: E402

__all__ = [
    "ConfigManager",
    "ConfigurationError",
    "ConnectionConfig",
    "CopyMoveExecutor",
    "DirectoryListener",
    "FileAttributes",
    "FileCopyMode",
    "FileMatcher",
    "ListenerConfig",
    "ListenerMessage",
    "ListenerState",
    "LogLevel",
    "MatchPolicy",
    "MatcherCriteria",
    "OperationError",
    "PoolConfig",
    "PostActionConfig",
    "PostActionError",
    "PostActionExecutor",
    "ProcessingOutcome",
    "SessionManager",
    "SessionPool",
    "SmbConnectionError",
    "SmbConnectorError",
    "SmbFileSystemConnection",
    "WatermarkStore",
    "__version__",
]

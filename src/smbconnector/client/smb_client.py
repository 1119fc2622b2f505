"""SMB client backed by the smbprotocol distribution.

Each client owns a private connection cache, so every pooled session holds
its own TCP connection and SMB session. Closing one client never tears down
another client's connection.

Security:
- Passwords are handed to smbprotocol only; never logged
- Domain accounts are sent as DOMAIN\\user
"""

import logging
import stat as stat_module
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any

import smbclient
import smbclient.path
import smbclient.shutil
from smbprotocol.exceptions import SMBException

from smbconnector.config import LogLevel
from smbconnector.logging_config import apply_client_log_level
from smbconnector.models import FileAttributes

logger = logging.getLogger(__name__)

DEFAULT_PORT = 445


class SmbProtocolClient:
    """RemoteSessionClient implementation over ``smbclient``.

    Example:
        >>> client = SmbClientFactory().create_instance("fs01", "share", LogLevel.WARN)
        >>> client.login("CORP", "svc", "secret")
        >>> client.list("/share/incoming")
    """

    def __init__(
        self,
        host: str,
        share_root: str | None = None,
        port: int = DEFAULT_PORT,
        connection_timeout: int = 60,
    ):
        self.host = host
        self.share_root = share_root
        self.port = port
        self.connection_timeout = connection_timeout
        self._connection_cache: dict[str, Any] = {}
        self._session: Any = None

    def _kwargs(self) -> dict[str, Any]:
        return {"port": self.port, "connection_cache": self._connection_cache}

    def _unc(self, path: str) -> str:
        """Convert ``/share/dir/file`` into ``\\\\host\\share\\dir\\file``."""
        parts = PurePosixPath(path).parts[1:]
        if not parts:
            raise FileNotFoundError(f"Path does not name a share: {path}")
        return "\\\\" + self.host + "\\" + "\\".join(parts)

    def _to_attributes(self, path: str, st: Any) -> FileAttributes:
        mode = st.st_mode
        return FileAttributes(
            path=path,
            size=st.st_size,
            last_modified=datetime.fromtimestamp(st.st_mtime),
            is_regular_file=stat_module.S_ISREG(mode),
            is_directory=stat_module.S_ISDIR(mode),
            is_symlink=stat_module.S_ISLNK(mode),
        )

    def _call(self, description: str, func, *args, **kwargs):
        """Invoke an smbclient function, translating transport failures.

        OSErrors (including smbprotocol's SMBOSError) pass through unchanged;
        any other protocol failure means the session is unusable.
        """
        try:
            return func(*args, **kwargs)
        except OSError:
            raise
        except SMBException as e:
            raise ConnectionError(f"SMB {description} failed: {e}") from e

    def login(self, domain: str | None, username: str | None, password: str | None) -> None:
        """Register an authenticated SMB session with the server."""
        account = f"{domain}\\{username}" if domain and username else username
        try:
            self._session = smbclient.register_session(
                self.host,
                username=account,
                password=password,
                port=self.port,
                connection_timeout=self.connection_timeout,
                connection_cache=self._connection_cache,
            )
        except (OSError, SMBException, ValueError) as e:
            # ValueError is raised by smbprotocol for rejected negotiation settings
            raise ConnectionError(f"SMB login failed: {e}") from e
        logger.debug(f"SMB session registered with {self.host}:{self.port}")

    def list(self, path: str) -> list[FileAttributes]:
        base = PurePosixPath(path)

        def _scan():
            # scandir is lazy; errors surface while iterating
            return [
                (entry.name, entry.stat())
                for entry in smbclient.scandir(self._unc(path), **self._kwargs())
            ]

        return [
            self._to_attributes(str(base / name), st) for name, st in self._call("list", _scan)
        ]

    def read(self, path: str) -> bytes:
        def _read():
            with smbclient.open_file(self._unc(path), mode="rb", **self._kwargs()) as f:
                return f.read()

        return self._call("read", _read)

    def write(self, path: str, content: bytes) -> None:
        def _write():
            with smbclient.open_file(self._unc(path), mode="wb", **self._kwargs()) as f:
                f.write(content)

        self._call("write", _write)

    def copy(self, source: str, target: str) -> None:
        self._call(
            "copy", smbclient.shutil.copyfile, self._unc(source), self._unc(target), **self._kwargs()
        )

    def delete(self, path: str) -> None:
        unc = self._unc(path)
        if self._call("stat", smbclient.path.isdir, unc, **self._kwargs()):
            self._call("delete", smbclient.shutil.rmtree, unc, **self._kwargs())
        else:
            self._call("delete", smbclient.remove, unc, **self._kwargs())

    def rename(self, path: str, new_name: str) -> None:
        target = str(PurePosixPath(path).parent / new_name)
        self._call("rename", smbclient.rename, self._unc(path), self._unc(target), **self._kwargs())

    def mkdir(self, path: str) -> None:
        self._call("mkdir", smbclient.makedirs, self._unc(path), exist_ok=True, **self._kwargs())

    def stat(self, path: str) -> FileAttributes:
        st = self._call("stat", smbclient.lstat, self._unc(path), **self._kwargs())
        return self._to_attributes(path, st)

    def is_alive(self) -> bool:
        """Probe the session with an SMB ECHO request."""
        if self._session is None:
            return False
        try:
            self._session.connection.echo(
                sid=self._session.session_id, timeout=self.connection_timeout
            )
            return True
        except Exception as e:
            logger.debug(f"SMB liveness probe to {self.host} failed: {e}")
            return False

    def disconnect(self) -> None:
        """Close the session and its connection."""
        self._session = None
        smbclient.reset_connection_cache(fail_on_error=False, connection_cache=self._connection_cache)


class SmbClientFactory:
    """Creates SMB clients; tests swap in a factory producing fakes."""

    def create_instance(
        self,
        host: str,
        share_root: str | None,
        log_level: LogLevel,
        port: int = DEFAULT_PORT,
        connection_timeout: int = 60,
    ) -> SmbProtocolClient:
        apply_client_log_level(log_level)
        return SmbProtocolClient(
            host, share_root=share_root, port=port, connection_timeout=connection_timeout
        )


__all__ = ["SmbClientFactory", "SmbProtocolClient"]

"""Mock SMB server and client for testing.

The server keeps files, directories and modification times in dictionaries.
It can be stopped and started: clients logged in before a restart are dead
afterwards (their ``is_alive`` probe fails and every call raises the builtin
ConnectionError), exactly like sessions to a real server that went away.
"""

import threading
from datetime import datetime, timedelta
from pathlib import PurePosixPath

from smbconnector.models import FileAttributes

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0)

PASSWORD = "s3cr3t-Pa55w0rd"  # noqa: S105 - test fixture, not a real credential


class FakeSmbServer:
    """Shares, files and directories held in memory."""

    def __init__(self, host: str = "fileserver", shares: tuple[str, ...] = ("share",)):
        self.host = host
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = set()
        self.symlinks: set[str] = set()
        self.mtimes: dict[str, datetime] = {}
        self.users: dict[str, str] = {}
        self.running = True
        self.generation = 0
        self.read_failures: dict[str, OSError] = {}
        self.copy_failures: dict[str, OSError] = {}
        self.delete_failures: dict[str, OSError] = {}
        self.logins = 0
        self.lock = threading.RLock()
        self._ticks = 0
        for share in shares:
            self.dirs.add(f"/{share}")

    # Test helpers -------------------------------------------------------

    def now(self) -> datetime:
        with self.lock:
            self._ticks += 1
            return BASE_TIME + timedelta(seconds=self._ticks)

    def makedirs(self, path: str) -> None:
        with self.lock:
            current = PurePosixPath(path)
            for parent in [*reversed(current.parents[:-1]), current]:
                key = str(parent)
                if key not in self.dirs:
                    self.dirs.add(key)
                    self.mtimes[key] = self.now()

    def put(self, path: str, content: bytes | str, mtime: datetime | None = None) -> None:
        if isinstance(content, str):
            content = content.encode("utf-8")
        with self.lock:
            self.makedirs(str(PurePosixPath(path).parent))
            self.files[path] = content
            self.mtimes[path] = mtime or self.now()

    def stop(self) -> None:
        self.running = False

    def start(self) -> None:
        with self.lock:
            self.generation += 1
            self.running = True

    def reprovision(self) -> None:
        """Replace the server with an empty one (shares kept)."""
        with self.lock:
            shares = {d for d in self.dirs if PurePosixPath(d).parent == PurePosixPath("/")}
            self.files.clear()
            self.symlinks.clear()
            self.mtimes.clear()
            self.dirs = shares
        self.start()

    def exists(self, path: str) -> bool:
        return path in self.files or path in self.dirs

    def children(self, path: str) -> list[str]:
        with self.lock:
            entries = [p for p in (*self.files, *self.dirs) if str(PurePosixPath(p).parent) == path]
            return sorted(p for p in entries if p != path)

    def descendants(self, path: str) -> list[str]:
        prefix = path.rstrip("/") + "/"
        with self.lock:
            return [p for p in (*self.files, *self.dirs) if p.startswith(prefix)]

    def attributes(self, path: str) -> FileAttributes:
        with self.lock:
            if path in self.dirs:
                return FileAttributes(
                    path=path,
                    size=0,
                    last_modified=self.mtimes.get(path, BASE_TIME),
                    is_regular_file=False,
                    is_directory=True,
                    is_symlink=path in self.symlinks,
                )
            if path in self.files:
                return FileAttributes(
                    path=path,
                    size=len(self.files[path]),
                    last_modified=self.mtimes[path],
                    is_regular_file=path not in self.symlinks,
                    is_symlink=path in self.symlinks,
                )
        raise FileNotFoundError(f"No such file or directory: '{path}'")


class FakeSmbClient:
    """RemoteSessionClient backed by a FakeSmbServer."""

    def __init__(self, server: FakeSmbServer, host: str, share_root: str | None = None):
        self.server = server
        self.host = host
        self.share_root = share_root
        self.generation: int | None = None
        self.disconnected = False
        self.calls: list[str] = []

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if not self.is_alive():
            raise ConnectionError(f"Connection to {self.host} was reset during {operation}")

    def login(self, domain, username, password) -> None:
        if not self.server.running:
            raise ConnectionRefusedError(f"Connection refused by {self.host}:445")
        expected = self.server.users.get(username)
        if self.server.users and expected != password:
            raise PermissionError(f"STATUS_LOGON_FAILURE for {domain}\\{username} using {password}")
        self.server.logins += 1
        self.generation = self.server.generation

    def list(self, path: str) -> list[FileAttributes]:
        self._check("list")
        server = self.server
        if path in server.files:
            raise NotADirectoryError(f"Not a directory: '{path}'")
        if path not in server.dirs:
            raise FileNotFoundError(f"No such directory: '{path}'")
        return [server.attributes(child) for child in server.children(path)]

    def read(self, path: str) -> bytes:
        self._check("read")
        server = self.server
        failure = server.read_failures.pop(path, None)
        if failure is not None:
            raise failure
        if path in server.dirs:
            raise IsADirectoryError(f"Is a directory: '{path}'")
        if path not in server.files:
            raise FileNotFoundError(f"No such file: '{path}'")
        return server.files[path]

    def write(self, path: str, content: bytes) -> None:
        self._check("write")
        server = self.server
        if str(PurePosixPath(path).parent) not in server.dirs:
            raise FileNotFoundError(f"Parent directory of '{path}' does not exist")
        with server.lock:
            server.files[path] = bytes(content)
            server.mtimes[path] = server.now()

    def copy(self, source: str, target: str) -> None:
        self._check("copy")
        server = self.server
        failure = server.copy_failures.pop(source, None)
        if failure is not None:
            raise failure
        if source not in server.files:
            raise FileNotFoundError(f"No such file: '{source}'")
        if str(PurePosixPath(target).parent) not in server.dirs:
            raise FileNotFoundError(f"Parent directory of '{target}' does not exist")
        with server.lock:
            server.files[target] = server.files[source]
            server.mtimes[target] = server.now()

    def delete(self, path: str) -> None:
        self._check("delete")
        server = self.server
        failure = server.delete_failures.pop(path, None)
        if failure is not None:
            raise failure
        with server.lock:
            if path in server.files:
                del server.files[path]
            elif path in server.dirs:
                for child in server.descendants(path):
                    server.files.pop(child, None)
                    server.dirs.discard(child)
                server.dirs.discard(path)
            else:
                raise FileNotFoundError(f"No such file or directory: '{path}'")
            server.mtimes.pop(path, None)

    def rename(self, path: str, new_name: str) -> None:
        self._check("rename")
        server = self.server
        target = str(PurePosixPath(path).parent / new_name)
        with server.lock:
            if not server.exists(path):
                raise FileNotFoundError(f"No such file or directory: '{path}'")
            if server.exists(target):
                raise FileExistsError(f"File exists: '{target}'")
            for old in [path, *server.descendants(path)]:
                new = target + old[len(path) :]
                if old in server.files:
                    server.files[new] = server.files.pop(old)
                else:
                    server.dirs.discard(old)
                    server.dirs.add(new)
                if old in server.mtimes:
                    server.mtimes[new] = server.mtimes.pop(old)

    def mkdir(self, path: str) -> None:
        self._check("mkdir")
        server = self.server
        for parent in [path, *map(str, PurePosixPath(path).parents)]:
            if parent in server.files:
                raise FileExistsError(f"File exists: '{parent}'")
        server.makedirs(path)

    def stat(self, path: str) -> FileAttributes:
        self._check("stat")
        return self.server.attributes(path)

    def is_alive(self) -> bool:
        return (
            not self.disconnected
            and self.server.running
            and self.generation == self.server.generation
        )

    def disconnect(self) -> None:
        self.disconnected = True


class FakeClientFactory:
    """SmbClientFactory replacement handing out FakeSmbClients."""

    def __init__(self, server: FakeSmbServer):
        self.server = server
        self.clients: list[FakeSmbClient] = []
        self.requests: list[dict] = []

    def create_instance(self, host, share_root, log_level, port=445, connection_timeout=60):
        self.requests.append(
            {
                "host": host,
                "share_root": share_root,
                "log_level": log_level,
                "port": port,
                "connection_timeout": connection_timeout,
            }
        )
        client = FakeSmbClient(self.server, host, share_root=share_root)
        self.clients.append(client)
        return client

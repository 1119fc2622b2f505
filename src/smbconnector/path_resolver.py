"""Share path parsing and resolution.

Every path handed to a remote client is absolute within the share:
``/<share_root>/<relative path>``. Relative paths are joined to the share
root; absolute paths already under the root are kept; any other absolute
path is taken as share-root-relative.
"""

from pathlib import PurePosixPath

from smbconnector.exceptions import IllegalPathError


class PathResolver:
    """Resolve user paths against a share root.

    Example:
        >>> resolver = PathResolver("data/in")
        >>> resolver.resolve("batch/a.csv")
        '/data/in/batch/a.csv'
        >>> resolver.resolve("/data/in/batch/a.csv")
        '/data/in/batch/a.csv'
        >>> resolver.relativize("/data/in/batch/a.csv")
        'batch/a.csv'
    """

    def __init__(self, share_root: str | None = None):
        root = (share_root or "").replace("\\", "/").strip("/")
        self.root = self._normalize(PurePosixPath("/") / root)

    @staticmethod
    def _normalize(path: PurePosixPath) -> PurePosixPath:
        parts: list[str] = []
        for part in path.parts[1:]:
            if part in ("", "."):
                continue
            if part == "..":
                if not parts:
                    raise IllegalPathError(f"Path escapes the share: {path}", path=str(path))
                parts.pop()
                continue
            parts.append(part)
        return PurePosixPath("/", *parts)

    def resolve(self, path: str) -> str:
        """Resolve ``path`` to an absolute share path.

        Raises:
            IllegalPathError: Path is empty, contains null bytes or escapes
                the share root
        """
        if path is None or not str(path).strip():
            raise IllegalPathError("Path cannot be empty", path=path)
        if "\x00" in path:
            raise IllegalPathError("Path contains null bytes", path=path)

        candidate = PurePosixPath(path.replace("\\", "/"))
        if candidate.is_absolute():
            normalized = self._normalize(candidate)
            if normalized == self.root or self.root in normalized.parents:
                return str(normalized)
            candidate = PurePosixPath(".", *candidate.parts[1:])

        resolved = self._normalize(self.root / candidate)
        if resolved != self.root and self.root not in resolved.parents:
            raise IllegalPathError(f"Path escapes the share root: {path}", path=path)
        return str(resolved)

    def relativize(self, resolved: str) -> str:
        """Map an absolute share path back to a share-root-relative one."""
        path = PurePosixPath(resolved)
        if path == self.root:
            return "."
        try:
            return str(path.relative_to(self.root))
        except ValueError:
            return str(path)

    def join(self, directory: str, name: str) -> str:
        """Resolve ``name`` inside ``directory``."""
        if "/" in name or "\\" in name or name in ("", ".", ".."):
            raise IllegalPathError(f"Invalid file name: '{name}'", path=name)
        return str(PurePosixPath(self.resolve(directory)) / name)


__all__ = ["PathResolver"]

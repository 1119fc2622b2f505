"""Watermark store - identities of files the listener already delivered.

An identity is ``(path, last_modified, size)``. A file whose content changes
gets a new identity and is delivered again; an unchanged file is delivered
once per listener instance, across any number of outages. The store only
grows: identities are never removed while the listener runs.
"""

import threading
from collections.abc import Iterable, Iterator
from datetime import datetime

Identity = tuple[str, datetime | None, int | None]


class WatermarkStore:
    """Thread-safe set of delivered identities.

    A store can be shared by several listeners on the same directory so that
    a replacement listener does not redeliver what its predecessor handled.
    """

    def __init__(self, identities: Iterable[Identity] = ()):
        self._lock = threading.Lock()
        self._identities: set[Identity] = set(identities)

    def __contains__(self, identity: Identity) -> bool:
        with self._lock:
            return identity in self._identities

    def __len__(self) -> int:
        with self._lock:
            return len(self._identities)

    def __iter__(self) -> Iterator[Identity]:
        with self._lock:
            return iter(list(self._identities))

    def add(self, identity: Identity) -> None:
        with self._lock:
            self._identities.add(identity)


__all__ = ["Identity", "WatermarkStore"]

from collections import OrderedDict
from dataclasses import dataclass
import threading
from typing import Any, Iterator

from loguru import logger

from chartops.chart import ReleaseIdentity


@dataclass(frozen=True)
class ManifestCacheEntry:
    """
    A rendered manifest for a release, plus whatever metadata the render step chose to store with it.
    """

    release: ReleaseIdentity
    body: str
    metadata: Any = None


class ManifestCache:
    """
    An in-memory store of rendered manifests keyed by release identity. It avoids rendering the same release over and
    over again within the lifetime of a process.

    The cache is safe to share between threads. All access goes through a single lock, and entries are immutable, so
    a `get()` always observes a complete entry from a prior `set()`.

    Create one instance at process start and pass it into every `Config`.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        """
        Args:
            max_entries: If set, the least recently used entries are evicted once the cache holds more than this
                number of releases.
        """

        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")

        self._lock = threading.Lock()
        self._entries: OrderedDict[ReleaseIdentity, ManifestCacheEntry] = OrderedDict()
        self._max_entries = max_entries

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(entries={len(self)}, max_entries={self._max_entries})"

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, release: ReleaseIdentity) -> bool:
        with self._lock:
            return release in self._entries

    def __iter__(self) -> Iterator[ReleaseIdentity]:
        with self._lock:
            return iter(list(self._entries))

    def set(self, release: ReleaseIdentity, metadata: Any, body: str) -> None:
        """
        Store or overwrite the manifest for *release*.
        """

        entry = ManifestCacheEntry(release, body, metadata)
        with self._lock:
            self._entries[release] = entry
            self._entries.move_to_end(release)
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("Evicted manifest of release '{}' from the cache", evicted)

    def get(self, release: ReleaseIdentity) -> ManifestCacheEntry | None:
        """
        Return the cached entry for *release*, or `None` if nothing is cached for it. A miss is not an error; callers
        render from scratch or, on uninstall, assume there is nothing to remove.
        """

        with self._lock:
            entry = self._entries.get(release)
            if entry is not None:
                self._entries.move_to_end(release)
            return entry

    def delete(self, release: ReleaseIdentity) -> None:
        """
        Remove the entry for *release*, if any.
        """

        with self._lock:
            self._entries.pop(release, None)

from dataclasses import dataclass
from typing import Dict, Optional

from exportmap.exports import ExportMap, ModuleKey
from exportmap.helpers import file_mtime
from exportmap.logger import logger


@dataclass(frozen=True)
class CacheEntry:
    map: ExportMap
    mtime: int  # whole seconds
    fingerprint: str


class ExportMapCache:
    """
    Export maps keyed by (absolute path, settings fingerprint).

    An entry stays valid while the file's modification time, compared at
    whole-second resolution, is unchanged. A file rewritten within the same
    second as the build that cached it is not detected.

    The cache is owned by whoever orchestrates an analysis run and is passed
    to `ExportMapLoader`; entries live until they are replaced by a rebuild
    of the same key or the cache is cleared.
    """

    def __init__(self) -> None:
        self._entries: Dict[ModuleKey, CacheEntry] = {}

    def lookup(self, path: str, fingerprint: str) -> Optional[CacheEntry]:
        return self._entries.get((path, fingerprint))

    def is_valid(self, entry: CacheEntry) -> bool:
        current = file_mtime(entry.map.path)
        if current is None:
            return False
        return current == entry.mtime

    def store(self, path: str, fingerprint: str, export_map: ExportMap) -> CacheEntry:
        mtime = export_map.mtime
        if mtime is None:
            mtime = file_mtime(path) or 0
        entry = CacheEntry(map=export_map, mtime=mtime, fingerprint=fingerprint)
        self._entries[(path, fingerprint)] = entry
        logger.debug("Export map cached", path=path, names=export_map.size)
        return entry

    def invalidate(self, path: str) -> None:
        """Drop every entry for *path*, whatever settings it was built with."""
        for key in [k for k in self._entries if k[0] == path]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

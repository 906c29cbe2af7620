"""Session-scoped cache of fetched repository star histories."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from starhistory.models.chart import RepoCacheEntry


class RepoRecordCache:
    """Copy-on-write map of `owner/name` to cached history.

    Writes never mutate a mapping that was handed out: each `put` swaps in a new
    dict, so a `snapshot()` stays stable while later fetches land.
    """

    def __init__(self, entries: Optional[Mapping[str, RepoCacheEntry]] = None) -> None:
        self._entries: dict[str, RepoCacheEntry] = dict(entries or {})
        self._version = 0

    def get(self, repo_id: str) -> Optional[RepoCacheEntry]:
        return self._entries.get(repo_id)

    def has(self, repo_id: str) -> bool:
        return repo_id in self._entries

    def put(self, repo_id: str, entry: RepoCacheEntry) -> None:
        updated = dict(self._entries)
        updated[repo_id] = entry
        self._entries = updated
        self._version += 1

    def put_many(self, entries: Mapping[str, RepoCacheEntry]) -> None:
        """Store several entries as a single transition."""
        if not entries:
            return
        updated = dict(self._entries)
        updated.update(entries)
        self._entries = updated
        self._version += 1

    def snapshot(self) -> Mapping[str, RepoCacheEntry]:
        return MappingProxyType(self._entries)

    @property
    def version(self) -> int:
        return self._version

    def __contains__(self, repo_id: object) -> bool:
        return repo_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._entries))

"""In-memory score store (process lifetime only)."""

from __future__ import annotations

from contextlib import contextmanager

from leaderboard.entry import ScoreEntry, ordered


class MemoryStore:
    def __init__(self):
        self._entries: dict[str, ScoreEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @contextmanager
    def batch(self):
        # Dict mutations cannot fail halfway; nothing to buffer.
        yield self

    def get(self, identity: str) -> ScoreEntry | None:
        return self._entries.get(identity)

    def upsert(self, entry: ScoreEntry) -> None:
        self._entries[entry.identity] = entry

    def all(self) -> list[ScoreEntry]:
        return list(self._entries.values())

    def enforce_capacity(self, max_size: int) -> list[ScoreEntry]:
        if len(self._entries) <= max_size:
            return []
        ranked = ordered(self._entries.values())
        evicted = ranked[max_size:]
        for e in evicted:
            del self._entries[e.identity]
        return evicted

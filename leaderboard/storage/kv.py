"""Score store over a plain key/value backend.

The whole leaderboard lives under one key as a JSON list, so any backend with
`get(key) -> str | None` and `set(key, value)` can stand in (sqlite, redis, a
hosted KV service). Every operation is a read-modify-write of that key; inside
`batch()` the list is loaded once and written once on a clean exit.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager

from leaderboard.entry import ScoreEntry, ordered
from leaderboard.protocol import InternalError

logger = logging.getLogger(__name__)


class DictBackend:
    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class KeyValueStore:
    def __init__(self, backend, key: str = "leaderboard"):
        self.backend = backend
        self.key = key
        self._pending: dict[str, ScoreEntry] | None = None
        self._dirty = False

    @contextmanager
    def batch(self):
        if self._pending is not None:
            # Nested: the outer batch owns the write.
            yield self
            return
        self._pending = self._read()
        self._dirty = False
        try:
            yield self
            if self._dirty:
                self._write(self._pending.values())
        finally:
            self._pending = None
            self._dirty = False

    def _read(self) -> dict[str, ScoreEntry]:
        raw = self.backend.get(self.key)
        if not raw:
            return {}
        try:
            rows = json.loads(raw)
            entries = [ScoreEntry.from_dict(r) for r in rows]
        except (ValueError, TypeError, KeyError) as e:
            logger.error("corrupt leaderboard value under %r: %s", self.key, e)
            raise InternalError(f"corrupt leaderboard data: {e}")
        return {e.identity: e for e in entries}

    def _write(self, entries) -> None:
        self.backend.set(self.key, json.dumps([e.to_dict() for e in entries], separators=(",", ":")))

    def _load(self) -> dict[str, ScoreEntry]:
        if self._pending is not None:
            return self._pending
        return self._read()

    def _save(self, entries: dict[str, ScoreEntry]) -> None:
        if self._pending is not None:
            self._pending = entries
            self._dirty = True
            return
        self._write(entries.values())

    def __len__(self) -> int:
        return len(self._load())

    def get(self, identity: str) -> ScoreEntry | None:
        return self._load().get(identity)

    def upsert(self, entry: ScoreEntry) -> None:
        entries = dict(self._load())
        entries[entry.identity] = entry
        self._save(entries)

    def all(self) -> list[ScoreEntry]:
        return list(self._load().values())

    def enforce_capacity(self, max_size: int) -> list[ScoreEntry]:
        entries = self._load()
        if len(entries) <= max_size:
            return []
        ranked = ordered(entries.values())
        self._save({e.identity: e for e in ranked[:max_size]})
        return ranked[max_size:]

"""Submit / rank / top-K over an injected score store."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from leaderboard.entry import (
    ScoreEntry,
    derive_display_name,
    normalize_identity,
    ordered,
)
from leaderboard.protocol import InternalError, LeaderboardError, Submission, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class RankedEntry:
    entry: ScoreEntry
    rank: int

    def public(self) -> dict[str, Any]:
        return {**self.entry.public(), "rank": self.rank}


@dataclass
class SubmitResult:
    accepted: bool
    entry: ScoreEntry
    rank: int | None
    totalPlayers: int

    def public(self) -> dict[str, Any]:
        return {
            "accepted": self.accepted,
            "entry": self.entry.public(),
            "rank": self.rank,
            "totalPlayers": self.totalPlayers,
        }


class RankingService:
    """Leaderboard logic; storage-agnostic.

    Any object with get/upsert/all/enforce_capacity/batch/__len__ works as
    `store`.
    A single lock makes each submit (lookup, compare, upsert, evict, rank)
    atomic with respect to every other submit and read.
    """

    def __init__(
        self,
        store,
        capacity: int = 100,
        clock: Callable[[], float] = time.time,
        game_version: str = "1.0.0",
    ):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.store = store
        self.capacity = int(capacity)
        self.clock = clock
        self.game_version = game_version
        self._lock = threading.Lock()

    def submit(self, identity: Any, score: Any, display_name: Any = None) -> SubmitResult:
        sub = Submission.parse({"identity": identity, "displayName": display_name, "score": score})
        return self.submit_parsed(sub)

    def submit_parsed(self, sub: Submission) -> SubmitResult:
        key = normalize_identity(sub.identity)

        with self._lock:
            # Stamped under the lock so submittedAt follows acceptance order.
            candidate = ScoreEntry(
                identity=key,
                displayName=sub.displayName or derive_display_name(sub.identity),
                score=sub.score,
                submittedAt=self.clock(),
                gameVersion=self.game_version,
            )
            try:
                # Upsert + eviction land together or not at all.
                with self.store.batch():
                    existing = self.store.get(key)
                    if existing is not None and candidate.score <= existing.score:
                        logger.debug("no-op submit for %s: %d <= %d", key, candidate.score, existing.score)
                        accepted = False
                        evicted = []
                    else:
                        self.store.upsert(candidate)
                        accepted = True
                        evicted = self.store.enforce_capacity(self.capacity)
                if evicted:
                    logger.info("evicted %d entries below capacity %d", len(evicted), self.capacity)

                ranked = ordered(self.store.all())
            except LeaderboardError:
                raise
            except Exception as e:
                logger.exception("store failure during submit")
                raise InternalError(str(e)) from e

        rank = None
        current = None
        for i, e in enumerate(ranked):
            if e.identity == key:
                rank = i + 1
                current = e
                break

        if current is None:
            # Dropped straight back out by eviction.
            logger.info("submission for %s did not make the top %d", key, self.capacity)
            return SubmitResult(accepted=False, entry=candidate, rank=None, totalPlayers=len(ranked))

        if accepted:
            logger.info("accepted score %d for %s (rank %d/%d)", current.score, key, rank, len(ranked))
        return SubmitResult(accepted=accepted, entry=current, rank=rank, totalPlayers=len(ranked))

    def get_top(self, k: int = 10) -> list[RankedEntry]:
        if isinstance(k, bool) or not isinstance(k, int):
            raise ValidationError("limit must be an integer")
        if k < 0:
            raise ValidationError("limit must be >= 0")
        with self._lock:
            try:
                entries = self.store.all()
            except LeaderboardError:
                raise
            except Exception as e:
                logger.exception("store failure during get_top")
                raise InternalError(str(e)) from e
        return [RankedEntry(entry=e, rank=i + 1) for i, e in enumerate(ordered(entries)[:k])]

    def rank_of(self, identity: str) -> int | None:
        key = normalize_identity(identity)
        with self._lock:
            ranked = ordered(self.store.all())
        for i, e in enumerate(ranked):
            if e.identity == key:
                return i + 1
        return None

    def total_players(self) -> int:
        with self._lock:
            return len(self.store)

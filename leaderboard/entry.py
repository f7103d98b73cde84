"""Score entries + identity helpers."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any

MAX_SCORE = 1_000_000
MAX_DISPLAY_NAME = 32


@dataclass
class ScoreEntry:
    identity: str
    displayName: str
    score: int
    submittedAt: float
    gameVersion: str = "1.0.0"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScoreEntry":
        return cls(
            identity=str(data["identity"]),
            displayName=str(data["displayName"]),
            score=int(data["score"]),
            submittedAt=float(data["submittedAt"]),
            gameVersion=str(data.get("gameVersion", "1.0.0")),
        )

    def public(self) -> dict[str, Any]:
        out = self.to_dict()
        out["submittedAt"] = iso_timestamp(self.submittedAt)
        return out


def iso_timestamp(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def normalize_identity(identity: str) -> str:
    return identity.strip().casefold()


def derive_display_name(identity: str) -> str:
    """Short `0x1234...abcd` label for an identity with no display name.

    Cosmetic only: matching always goes through normalize_identity().
    """
    identity = identity.strip()
    if len(identity) <= 10:
        return identity
    return f"{identity[:6]}...{identity[-4:]}"


def clean_display_name(name: Any) -> str | None:
    if not isinstance(name, str):
        return None
    name = name.strip()
    if not name:
        return None
    return name[:MAX_DISPLAY_NAME]


def sort_key(entry: ScoreEntry) -> tuple[int, float, str]:
    # Highest score first; on ties the earlier submission ranks higher.
    return (-entry.score, entry.submittedAt, entry.identity)


def ordered(entries) -> list[ScoreEntry]:
    return sorted(entries, key=sort_key)

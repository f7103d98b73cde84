"""Request schemas + validation.

Wire format (POST /scores):
  {"identity": "0xabc...", "displayName": "optional", "score": 1234}

The original client field names `address` / `username` are accepted too.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from leaderboard.entry import MAX_SCORE, clean_display_name


class LeaderboardError(Exception):
    status = 400

    def __init__(self, message: str, headers: dict[str, str] | None = None):
        super().__init__(message)
        self.message = message
        self.headers = headers or {}


class ValidationError(LeaderboardError):
    status = 400


class UnsupportedOperation(LeaderboardError):
    status = 400


class MethodNotAllowed(UnsupportedOperation):
    status = 405

    def __init__(self, message: str, allowed=("GET", "POST", "OPTIONS")):
        super().__init__(message, headers={"Allow": ", ".join(allowed)})
        self.allowed = tuple(allowed)


class InternalError(LeaderboardError):
    status = 500


def _score(v: Any) -> int:
    # bool is an int subclass; a JSON `true` is not a score.
    if isinstance(v, bool) or v is None:
        raise ValidationError("score must be a number")
    if isinstance(v, int):
        num: float = v
    elif isinstance(v, float):
        num = v
    elif isinstance(v, str):
        try:
            num = float(v.strip())
        except ValueError:
            raise ValidationError("score must be a number")
    else:
        raise ValidationError("score must be a number")

    if isinstance(num, float) and not math.isfinite(num):
        raise ValidationError("score must be finite")
    if num < 0 or num > MAX_SCORE:
        raise ValidationError(f"score must be between 0 and {MAX_SCORE}")
    return int(math.floor(num))


def _identity(v: Any) -> str:
    if not isinstance(v, str) or not v.strip():
        raise ValidationError("identity required")
    return v.strip()


@dataclass
class Submission:
    identity: str
    displayName: str | None
    score: int

    @classmethod
    def parse(cls, data: Any) -> "Submission":
        if not isinstance(data, dict):
            raise ValidationError("body must be object")
        identity = data.get("identity")
        if identity is None:
            identity = data.get("address")
        name = data.get("displayName")
        if name is None:
            name = data.get("username")
        return cls(
            identity=_identity(identity),
            displayName=clean_display_name(name),
            score=_score(data.get("score")),
        )


def parse_limit(v: Any, *, default: int, cap: int) -> int:
    if v is None or v == "":
        return default
    if isinstance(v, bool):
        raise ValidationError("limit must be an integer")
    try:
        limit = int(v)
    except (TypeError, ValueError):
        raise ValidationError("limit must be an integer")
    if limit < 0:
        raise ValidationError("limit must be >= 0")
    return min(limit, cap)

"""Server settings, overridable from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass
class LeaderboardConfig:
    # Versions
    server_version: str = "0.1.0"
    game_version: str = "1.0.0"

    # Network
    host: str = "0.0.0.0"
    port: int = 8080
    cors_allow_all: bool = True
    cors_allowed_origins: list[str] = field(default_factory=list)

    # Ranking
    capacity: int = 100
    default_limit: int = 10

    # Persistence: "memory" or "sqlite"
    storage: str = "memory"
    sqlite_path: str = "leaderboard.sqlite3"

    # Simulated wallet/chain submission delay
    chain_delay_sec: float = 2.0

    # Diagnostics
    debug: bool = False
    log_level: str = "INFO"

    @staticmethod
    def _parse_bool(v: str | None, default: bool) -> bool:
        if v is None:
            return default
        return v.strip().lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _parse_int(v: str | None, default: int, minimum: int = 0) -> int:
        if v is None:
            return default
        try:
            n = int(v)
        except ValueError:
            return default
        return n if n >= minimum else default

    @staticmethod
    def _parse_float(v: str | None, default: float) -> float:
        if v is None:
            return default
        try:
            n = float(v)
        except ValueError:
            return default
        return n if n >= 0 else default

    @classmethod
    def from_env(cls) -> "LeaderboardConfig":
        cfg = cls()
        cfg.host = os.environ.get("LB_HOST", cfg.host)
        cfg.port = cls._parse_int(os.environ.get("LB_PORT"), cfg.port, minimum=1)
        cfg.capacity = cls._parse_int(os.environ.get("LB_CAPACITY"), cfg.capacity, minimum=1)
        cfg.default_limit = cls._parse_int(os.environ.get("LB_DEFAULT_LIMIT"), cfg.default_limit)
        cfg.cors_allow_all = cls._parse_bool(os.environ.get("LB_CORS_ALLOW_ALL"), cfg.cors_allow_all)
        origins = os.environ.get("LB_CORS_ORIGINS")
        if origins:
            cfg.cors_allowed_origins = [o.strip() for o in origins.split(",") if o.strip()]
        storage = os.environ.get("LB_STORAGE", cfg.storage).strip().lower()
        if storage in ("memory", "sqlite"):
            cfg.storage = storage
        cfg.sqlite_path = os.environ.get("LB_SQLITE_PATH", cfg.sqlite_path)
        cfg.debug = cls._parse_bool(os.environ.get("LB_DEBUG"), cfg.debug)
        cfg.log_level = os.environ.get("LB_LOG_LEVEL", cfg.log_level).upper()
        cfg.game_version = os.environ.get("LB_GAME_VERSION", cfg.game_version)
        cfg.chain_delay_sec = cls._parse_float(os.environ.get("LB_CHAIN_DELAY_SEC"), cfg.chain_delay_sec)
        return cfg

"""HTTP entrypoint for the leaderboard API.

This server does NOT serve the game client. Host the static game separately;
it talks to `/scores` from any origin.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from aiohttp import web

from leaderboard.chain import SimulatedChainSubmitter
from leaderboard.config import LeaderboardConfig
from leaderboard.protocol import (
    LeaderboardError,
    MethodNotAllowed,
    Submission,
    ValidationError,
    parse_limit,
)
from leaderboard.ranking import RankingService, SubmitResult
from leaderboard.storage.kv import KeyValueStore
from leaderboard.storage.memory import MemoryStore
from leaderboard.storage.sqlite import SqliteBackend

logger = logging.getLogger(__name__)


class ScoreService:
    def __init__(self, config: LeaderboardConfig, clock=time.time):
        self.config = config
        self.server_id = str(uuid.uuid4())
        self.start_time = time.time()

        self.sqlite = SqliteBackend(config.sqlite_path) if config.storage == "sqlite" else None
        store = KeyValueStore(self.sqlite) if self.sqlite else MemoryStore()
        self.ranking = RankingService(
            store,
            capacity=config.capacity,
            clock=clock,
            game_version=config.game_version,
        )
        self.chain = SimulatedChainSubmitter(self.ranking, delay_sec=config.chain_delay_sec)

    async def start(self) -> None:
        if self.sqlite:
            self.sqlite.init()
            logger.info("sqlite leaderboard at %s", self.sqlite.path)

    async def stop(self) -> None:
        if self.sqlite:
            self.sqlite.close()

    def version_payload(self) -> dict[str, Any]:
        return {
            "serverId": self.server_id,
            "serverVersion": self.config.server_version,
            "gameVersion": self.config.game_version,
        }


def _cors_headers(config: LeaderboardConfig, origin: str | None) -> dict[str, str]:
    if config.cors_allow_all:
        return {"Access-Control-Allow-Origin": origin or "*", "Vary": "Origin"}
    if origin and origin in config.cors_allowed_origins:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    return {}


@web.middleware
async def cors_middleware(request: web.Request, handler):
    if request.method == "OPTIONS":
        origin = request.headers.get("Origin")
        headers = {
            **_cors_headers(request.app["config"], origin),
            "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
            "Access-Control-Max-Age": "86400",
        }
        return web.Response(status=204, headers=headers)

    origin = request.headers.get("Origin")
    cors = _cors_headers(request.app["config"], origin)
    try:
        resp = await handler(request)
    except web.HTTPException as exc:
        # 404s and friends still need the header or the browser hides them.
        exc.headers.update(cors)
        raise

    resp.headers.update(cors)
    return resp


@web.middleware
async def error_middleware(request: web.Request, handler):
    config: LeaderboardConfig = request.app["config"]
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except LeaderboardError as e:
        if e.status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, e.message)
            body = {"error": "Internal server error"}
            if config.debug:
                body["details"] = e.message
            return web.json_response(body, status=e.status, headers=e.headers)
        logger.debug("%s %s rejected: %s", request.method, request.path, e.message)
        return web.json_response({"error": e.message}, status=e.status, headers=e.headers)
    except Exception as e:
        logger.exception("unhandled error on %s %s", request.method, request.path)
        body = {"error": "Internal server error"}
        if config.debug:
            body["details"] = str(e)
        return web.json_response(body, status=500)


def _submit_message(result: SubmitResult) -> str:
    if result.accepted:
        return "Score submitted successfully"
    if result.rank is None:
        return "Score did not reach the leaderboard"
    return "Existing score is equal or higher; leaderboard unchanged"


def create_app(config: LeaderboardConfig, svc: ScoreService | None = None) -> web.Application:
    app = web.Application(middlewares=[cors_middleware, error_middleware])
    svc = svc or ScoreService(config)

    app["config"] = config
    app["svc"] = svc

    async def on_startup(_: web.Application):
        await svc.start()

    async def on_cleanup(_: web.Application):
        await svc.stop()

    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)

    async def health(_: web.Request):
        return web.json_response(
            {
                "ok": True,
                "uptimeSec": time.time() - svc.start_time,
                "players": svc.ranking.total_players(),
                "capacity": svc.ranking.capacity,
                "storage": config.storage,
                **svc.version_payload(),
            }
        )

    async def root(_: web.Request):
        return web.json_response(
            {
                "ok": True,
                "service": "leaderboard",
                **svc.version_payload(),
                "endpoints": {
                    "health": "/health",
                    "version": "/version",
                    "scores": "/scores",
                    "chain": "/scores/chain",
                },
            }
        )

    async def version(_: web.Request):
        return web.json_response(svc.version_payload())

    async def get_scores(request: web.Request):
        limit = parse_limit(
            request.query.get("limit"),
            default=config.default_limit,
            cap=svc.ranking.capacity,
        )
        top = svc.ranking.get_top(limit)
        return web.json_response([r.public() for r in top])

    async def post_scores(request: web.Request):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("request body must be valid JSON")
        sub = Submission.parse(body)
        result = svc.ranking.submit_parsed(sub)
        return web.json_response({"message": _submit_message(result), **result.public()}, status=201)

    async def chain_scores(request: web.Request):
        if request.method != "POST":
            raise MethodNotAllowed("Method not allowed", allowed=("POST", "OPTIONS"))
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("request body must be valid JSON")
        sub = Submission.parse(body)
        receipt = await svc.chain.submit(sub.identity, sub.score, sub.displayName)
        result = receipt.result
        return web.json_response(
            {"message": _submit_message(result), "txHash": receipt.txHash, **result.public()},
            status=201,
        )

    async def scores(request: web.Request):
        if request.method == "GET":
            return await get_scores(request)
        if request.method == "POST":
            return await post_scores(request)
        raise MethodNotAllowed("Method not allowed")

    app.router.add_get("/", root)
    app.router.add_get("/health", health)
    app.router.add_get("/version", version)
    app.router.add_route("*", "/scores", scores)
    app.router.add_route("*", "/api/scores", scores)
    app.router.add_route("*", "/scores/chain", chain_scores)

    return app


def main() -> None:
    config = LeaderboardConfig.from_env()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if config.storage == "memory":
        logger.info("in-memory leaderboard; scores are lost on restart")
    app = create_app(config)
    web.run_app(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()

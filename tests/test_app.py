import re
from contextlib import contextmanager

import pytest

from leaderboard.app import ScoreService, create_app
from leaderboard.config import LeaderboardConfig


@pytest.fixture()
def make_client(aiohttp_client, clock):
    async def _make(config: LeaderboardConfig | None = None, svc: ScoreService | None = None):
        config = config or LeaderboardConfig()
        svc = svc or ScoreService(config, clock=clock)
        return await aiohttp_client(create_app(config, svc))

    return _make


async def test_empty_scores(make_client):
    client = await make_client()
    resp = await client.get("/scores")
    assert resp.status == 200
    assert await resp.json() == []


async def test_submit_and_list(make_client):
    client = await make_client()

    resp = await client.post("/scores", json={"identity": "0xAA", "score": 100})
    assert resp.status == 201
    body = await resp.json()
    assert body["accepted"] is True
    assert body["rank"] == 1
    assert body["totalPlayers"] == 1
    assert body["entry"]["identity"] == "0xaa"
    assert body["entry"]["submittedAt"].endswith("Z")
    assert body["entry"]["gameVersion"] == "1.0.0"

    await client.post("/scores", json={"identity": "0xBB", "displayName": "bee", "score": 200})

    resp = await client.post("/scores", json={"identity": "0xAA", "score": 50})
    assert resp.status == 201
    body = await resp.json()
    assert body["accepted"] is False
    assert (body["rank"], body["totalPlayers"], body["entry"]["score"]) == (2, 2, 100)

    rows = await (await client.get("/scores")).json()
    assert [(r["identity"], r["displayName"], r["score"], r["rank"]) for r in rows] == [
        ("0xbb", "bee", 200, 1),
        ("0xaa", "0xAA", 100, 2),
    ]


async def test_original_field_names(make_client):
    client = await make_client()
    resp = await client.post(
        "/api/scores",
        json={"address": "0x1234567890abcdef1234567890abcdef12345678", "score": 7},
    )
    assert resp.status == 201
    assert (await resp.json())["entry"]["displayName"] == "0x1234...5678"


async def test_limit_query(make_client):
    client = await make_client()
    for i in range(15):
        await client.post("/scores", json={"identity": f"0x{i:02d}", "score": i})

    assert len(await (await client.get("/scores")).json()) == 10
    rows = await (await client.get("/scores", params={"limit": "3"})).json()
    assert [r["score"] for r in rows] == [14, 13, 12]
    assert [r["rank"] for r in rows] == [1, 2, 3]

    resp = await client.get("/scores", params={"limit": "nope"})
    assert resp.status == 400


@pytest.mark.parametrize(
    "body",
    [
        {"identity": "0xAA", "score": -1},
        {"identity": "0xAA", "score": 1_000_001},
        {"identity": "0xAA", "score": "abc"},
        {"score": 10},
    ],
)
async def test_validation_errors(make_client, body):
    client = await make_client()
    resp = await client.post("/scores", json=body)
    assert resp.status == 400
    assert "error" in await resp.json()
    assert await (await client.get("/scores")).json() == []


async def test_invalid_json(make_client):
    client = await make_client()
    resp = await client.post("/scores", data="not json", headers={"Content-Type": "application/json"})
    assert resp.status == 400


async def test_method_not_allowed(make_client):
    client = await make_client()
    resp = await client.delete("/scores")
    assert resp.status == 405
    assert resp.headers["Allow"] == "GET, POST, OPTIONS"
    assert await resp.json() == {"error": "Method not allowed"}

    resp = await client.get("/scores/chain")
    assert resp.status == 405
    assert resp.headers["Allow"] == "POST, OPTIONS"


async def test_not_found_keeps_cors_header(make_client):
    client = await make_client()
    resp = await client.get("/nope", headers={"Origin": "https://game.example"})
    assert resp.status == 404
    assert resp.headers["Access-Control-Allow-Origin"] == "https://game.example"


async def test_cors_preflight_and_headers(make_client):
    client = await make_client()
    resp = await client.options("/scores", headers={"Origin": "https://game.example"})
    assert resp.status == 204
    assert resp.headers["Access-Control-Allow-Origin"] == "https://game.example"
    assert "POST" in resp.headers["Access-Control-Allow-Methods"]

    resp = await client.get("/scores", headers={"Origin": "https://game.example"})
    assert resp.headers["Access-Control-Allow-Origin"] == "https://game.example"


async def test_cors_allow_list(make_client):
    config = LeaderboardConfig(cors_allow_all=False, cors_allowed_origins=["https://ok.example"])
    client = await make_client(config)
    resp = await client.get("/scores", headers={"Origin": "https://evil.example"})
    assert "Access-Control-Allow-Origin" not in resp.headers
    resp = await client.get("/scores", headers={"Origin": "https://ok.example"})
    assert resp.headers["Access-Control-Allow-Origin"] == "https://ok.example"


class BrokenStore:
    def __len__(self):
        return 0

    @contextmanager
    def batch(self):
        yield self

    def get(self, identity):
        raise RuntimeError("disk on fire")

    def all(self):
        raise RuntimeError("disk on fire")


@pytest.mark.parametrize("debug", [False, True])
async def test_internal_error(make_client, debug):
    config = LeaderboardConfig(debug=debug)
    svc = ScoreService(config)
    svc.ranking.store = BrokenStore()
    client = await make_client(config, svc)

    resp = await client.get("/scores")
    assert resp.status == 500
    body = await resp.json()
    assert body["error"] == "Internal server error"
    assert ("details" in body) is debug

    resp = await client.post("/scores", json={"identity": "0xAA", "score": 1})
    assert resp.status == 500


async def test_health_and_version(make_client):
    client = await make_client()
    await client.post("/scores", json={"identity": "0xAA", "score": 1})
    health = await (await client.get("/health")).json()
    assert health["ok"] is True
    assert health["players"] == 1
    assert health["capacity"] == 100
    version = await (await client.get("/version")).json()
    assert version["serverVersion"] == "0.1.0"
    root = await (await client.get("/")).json()
    assert root["endpoints"]["scores"] == "/scores"


async def test_sqlite_storage(make_client, tmp_path):
    config = LeaderboardConfig(storage="sqlite", sqlite_path=str(tmp_path / "lb.sqlite3"))
    client = await make_client(config)
    resp = await client.post("/scores", json={"identity": "0xAA", "score": 9})
    assert resp.status == 201
    rows = await (await client.get("/scores")).json()
    assert rows[0]["score"] == 9


async def test_chain_submission(make_client):
    client = await make_client(LeaderboardConfig(chain_delay_sec=0))
    resp = await client.post("/scores/chain", json={"identity": "0xFEEDbeef", "score": 77})
    assert resp.status == 201
    body = await resp.json()
    assert re.fullmatch(r"0x[0-9a-f]{40}", body["txHash"])
    assert body["accepted"] is True
    assert body["entry"]["displayName"] == "Playerbeef"

    rows = await (await client.get("/scores")).json()
    assert [(r["identity"], r["score"]) for r in rows] == [("0xfeedbeef", 77)]

    resp = await client.post("/scores/chain", json={"identity": "0xFEEDbeef", "score": -3})
    assert resp.status == 400

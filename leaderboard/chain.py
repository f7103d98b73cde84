"""Simulated wallet/chain submission.

Stands in for the on-chain write the game client performs: wait a bit, mint a
fake transaction hash, then record the score. The delay lives here, never in
RankingService.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass

from leaderboard.protocol import Submission
from leaderboard.ranking import RankingService, SubmitResult

logger = logging.getLogger(__name__)


@dataclass
class ChainReceipt:
    txHash: str
    result: SubmitResult


def fake_tx_hash() -> str:
    return "0x" + secrets.token_hex(20)


def player_label(identity: str) -> str:
    return f"Player{identity.strip()[-4:]}"


class SimulatedChainSubmitter:
    def __init__(self, service: RankingService, delay_sec: float = 2.0, sleep=asyncio.sleep):
        self.service = service
        self.delay_sec = float(delay_sec)
        self._sleep = sleep

    async def submit(self, identity: str, score, display_name: str | None = None) -> ChainReceipt:
        # Reject bad input before paying for the "transaction".
        sub = Submission.parse({"identity": identity, "displayName": display_name, "score": score})
        if sub.displayName is None:
            sub.displayName = player_label(sub.identity)

        if self.delay_sec > 0:
            await self._sleep(self.delay_sec)
        tx_hash = fake_tx_hash()

        result = self.service.submit_parsed(sub)
        logger.info("simulated tx %s for %s (accepted=%s)", tx_hash[:10], result.entry.identity, result.accepted)
        return ChainReceipt(txHash=tx_hash, result=result)

import pytest

from leaderboard.config import LeaderboardConfig
from leaderboard.ranking import RankingService
from leaderboard.storage.memory import MemoryStore


class FakeClock:
    """Each call moves time forward one second."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.t = start

    def __call__(self) -> float:
        self.t += 1.0
        return self.t


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture()
def service(store, clock):
    return RankingService(store, capacity=100, clock=clock)


@pytest.fixture()
def config():
    return LeaderboardConfig()

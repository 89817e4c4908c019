"""Ranking module - Rank store, propagation protocol and per-node engines."""

from .config import RankingConfig
from .store import FriendRecord, RankPush, RankSnapshot, RankStore, compute_rank
from .engine import RankingEngine, PeopleRankEngine
from .registry import EngineRegistry
from .protocol import ExchangeResult, exchange, locked_pair
from .coordinator import EncounterCoordinator

__all__ = [
    "RankingConfig",
    "FriendRecord",
    "RankPush",
    "RankSnapshot",
    "RankStore",
    "compute_rank",
    "RankingEngine",
    "PeopleRankEngine",
    "EngineRegistry",
    "ExchangeResult",
    "exchange",
    "locked_pair",
    "EncounterCoordinator",
]

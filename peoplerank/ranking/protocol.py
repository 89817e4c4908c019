"""
Rank propagation protocol between two friends in contact.

Per exchange:
1. each side applies its pending gossip and takes a snapshot;
2. the snapshots are swapped (both taken before either is applied);
3. each side stores the other's values in its friend record;
4. each side recomputes its rank;
5. each side pushes its new rank to all of its friends.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Hashable, Iterator, Tuple

from .engine import RankingEngine
from .store import RankSnapshot


@dataclass(frozen=True)
class ExchangeResult:
    """Values sent and resulting ranks of one exchange."""
    initiator_sent: RankSnapshot
    peer_sent: RankSnapshot
    initiator_rank: float
    peer_rank: float


def _lock_order(engine: RankingEngine) -> Tuple[str, Hashable]:
    return (type(engine.node_id).__name__, engine.node_id)


@contextmanager
def locked_pair(a: RankingEngine, b: RankingEngine) -> Iterator[Tuple[RankingEngine, RankingEngine]]:
    """
    Hold both engines' locks for a two-node transaction.

    Locks are always taken in ascending node-id order so concurrent
    transactions over overlapping pairs cannot deadlock. Ids of
    different types are ordered by type name first.
    """
    first, second = sorted((a, b), key=_lock_order)
    with first.lock:
        with second.lock:
            yield a, b


def exchange(initiator: RankingEngine, peer: RankingEngine) -> ExchangeResult:
    """
    Run one rank exchange between two friends.

    The caller must hold both locks (see `locked_pair`).
    """
    initiator.process_inbox()
    sent = initiator.snapshot()
    received = peer.submit_exchange(sent)
    initiator_rank = initiator.receive_exchange(received)

    return ExchangeResult(
        initiator_sent=sent,
        peer_sent=received,
        initiator_rank=initiator_rank,
        peer_rank=peer.get_rank(),
    )

"""
Encounter coordinator: the entry point for contact lifecycle events.

Turns "these two nodes are now in range / out of range" callbacks from
the host into contact bookkeeping on both nodes, rank exchanges between
friends and friendship promotions. Every event touching two nodes runs
as one transaction under both nodes' locks.
"""

from typing import Callable, FrozenSet, Hashable, List, Optional, Set, Tuple
import logging
import threading

from ..errors import IncompatibleEngineError
from .engine import RankingEngine
from .protocol import ExchangeResult, exchange, locked_pair
from .registry import EngineRegistry

logger = logging.getLogger(__name__)


class EncounterCoordinator:
    """
    Drives the ranking engines from encounter events.

    The host reports each encounter once, from either endpoint. A
    duplicate open for a pair that is already in contact is ignored.
    Pairs involving a node without a ranking engine are skipped for
    the rest of the run.
    """

    def __init__(self, registry: EngineRegistry):
        self.registry = registry
        self._skipped: Set[FrozenSet[Hashable]] = set()
        self._lock = threading.Lock()

        # Event hooks
        self._on_exchange: List[Callable[[ExchangeResult], None]] = []
        self._on_promotion: List[Callable[[Hashable, Hashable], None]] = []

        # Counters
        self.contacts_opened = 0
        self.contacts_closed = 0
        self.exchanges = 0
        self.promotions = 0

    def on_exchange(self, callback: Callable[[ExchangeResult], None]) -> None:
        """Register a callback for completed rank exchanges."""
        self._on_exchange.append(callback)

    def on_promotion(self, callback: Callable[[Hashable, Hashable], None]) -> None:
        """Register a callback for new friendships."""
        self._on_promotion.append(callback)

    def on_contact_open(self, self_node: Hashable, peer_node: Hashable, now: float) -> Optional[ExchangeResult]:
        """
        A contact between two nodes begins.

        Opens the contact window on both sides and, if the nodes are
        already friends, runs a rank exchange. Returns the exchange
        result, or None if no exchange took place.
        """
        engines = self._resolve(self_node, peer_node)
        if engines is None:
            return None
        this, peer = engines

        with locked_pair(this, peer):
            opened = this.open_contact(peer_node, now)
            opened = peer.open_contact(self_node, now) or opened
            if not opened:
                logger.debug("contact %s-%s already open", self_node, peer_node)
                return None
            with self._lock:
                self.contacts_opened += 1

            if not (this.is_friend(peer_node) and peer.is_friend(self_node)):
                return None

            result = exchange(this, peer)
            with self._lock:
                self.exchanges += 1

        logger.debug(
            "exchange %s-%s at %s: ranks %.4f / %.4f",
            self_node, peer_node, now, result.initiator_rank, result.peer_rank,
        )
        for callback in self._on_exchange:
            callback(result)
        return result

    def on_contact_close(self, self_node: Hashable, peer_node: Hashable, now: float) -> bool:
        """
        A contact between two nodes ends.

        Closes the window on both sides, then evaluates friendship
        promotion. Returns True if the pair became friends.
        """
        engines = self._resolve(self_node, peer_node)
        if engines is None:
            return False
        this, peer = engines

        with locked_pair(this, peer):
            this.close_contact(peer_node, now)
            peer.close_contact(self_node, now)
            with self._lock:
                self.contacts_closed += 1

            promoted = this.evaluate_promotion(peer)
            if promoted:
                with self._lock:
                    self.promotions += 1

        if promoted:
            for callback in self._on_promotion:
                callback(self_node, peer_node)
        return promoted

    def is_skipped(self, a: Hashable, b: Hashable) -> bool:
        with self._lock:
            return frozenset((a, b)) in self._skipped

    @property
    def skipped_pairs(self) -> List[Tuple[Hashable, ...]]:
        with self._lock:
            return [tuple(sorted(pair)) for pair in self._skipped]

    def _resolve(self, a: Hashable, b: Hashable) -> Optional[Tuple[RankingEngine, RankingEngine]]:
        """Look up both engines, or mark the pair as permanently skipped."""
        pair = frozenset((a, b))
        with self._lock:
            if pair in self._skipped:
                return None

        try:
            return self.registry.lookup(a), self.registry.lookup(b)
        except IncompatibleEngineError as e:
            with self._lock:
                self._skipped.add(pair)
            logger.warning("skipping pair %s-%s for the rest of the run: %s", a, b, e)
            return None

    def __repr__(self) -> str:
        return (
            f"EncounterCoordinator(exchanges={self.exchanges}, "
            f"promotions={self.promotions}, skipped={len(self._skipped)})"
        )

"""
Per-node ranking engine.

Holds one node's contact history, friend table, own rank and gossip
inbox. Other nodes never touch this state directly: they hand it
snapshots through `submit_exchange`, `befriend` and `post`, and every
mutation runs under the engine's own lock.
"""

from abc import ABC, abstractmethod
from typing import Dict, Hashable, List, Optional, Tuple, TYPE_CHECKING
import logging
import queue
import threading

from ..network.contacts import ContactTracker, ContactWindow
from ..network.friendship import FriendshipClassifier
from .config import RankingConfig
from .store import FriendRecord, RankPush, RankSnapshot, RankStore

if TYPE_CHECKING:
    from .registry import EngineRegistry

logger = logging.getLogger(__name__)


class RankingEngine(ABC):
    """Capability interface one node exposes to its peers."""

    lock: threading.RLock

    @property
    @abstractmethod
    def node_id(self) -> Hashable: ...

    @abstractmethod
    def get_rank(self) -> float: ...

    @abstractmethod
    def get_friend_count(self) -> int: ...

    @abstractmethod
    def friend_ids(self) -> List[Hashable]: ...

    @abstractmethod
    def is_friend(self, peer: Hashable) -> bool: ...

    @abstractmethod
    def open_contact(self, peer: Hashable, now: float) -> bool: ...

    @abstractmethod
    def close_contact(self, peer: Hashable, now: float) -> ContactWindow: ...

    @abstractmethod
    def evaluate_promotion(self, other: "RankingEngine") -> bool: ...

    @abstractmethod
    def snapshot(self) -> RankSnapshot: ...

    @abstractmethod
    def befriend(self, snapshot: RankSnapshot) -> None: ...

    @abstractmethod
    def submit_exchange(self, snapshot: RankSnapshot) -> RankSnapshot: ...

    @abstractmethod
    def receive_exchange(self, snapshot: RankSnapshot) -> float: ...

    @abstractmethod
    def post(self, push: RankPush) -> None: ...

    @abstractmethod
    def process_inbox(self) -> int: ...


class PeopleRankEngine(RankingEngine):
    """
    Ranking engine for a single node.

    Contact handling (`open_contact`, `close_contact`) only touches
    local state; anything involving a peer goes through the
    coordinator, which holds both engines' locks.
    """

    def __init__(self, node_id: Hashable, config: Optional[RankingConfig] = None):
        self._node_id = node_id
        self.config = config or RankingConfig()

        self.tracker = ContactTracker()
        self.classifier = FriendshipClassifier(self.tracker, self.config.friend_threshold)
        self.store = RankStore(self.config.damping_factor, self.config.initial_rank)

        self.lock = threading.RLock()
        self._inbox: "queue.SimpleQueue[RankPush]" = queue.SimpleQueue()
        self._sequence = 0
        self._registry: Optional["EngineRegistry"] = None

        # Counters for analysis
        self.exchange_count = 0
        self.pushes_applied = 0

    @property
    def node_id(self) -> Hashable:
        return self._node_id

    def attach(self, registry: "EngineRegistry") -> None:
        """Bind the registry used to reach friends when gossiping."""
        self._registry = registry

    def replicate(self, node_id: Hashable) -> "PeopleRankEngine":
        """A fresh engine for another node, sharing only the configuration."""
        return PeopleRankEngine(node_id, self.config)

    # --- Contact events (local state only) ---

    def open_contact(self, peer: Hashable, now: float) -> bool:
        with self.lock:
            self.process_inbox()
            return self.tracker.open(peer, now)

    def close_contact(self, peer: Hashable, now: float) -> ContactWindow:
        with self.lock:
            self.process_inbox()
            return self.tracker.close(peer, now)

    def total_duration(self, peer: Hashable) -> float:
        return self.tracker.total_duration(peer)

    def evaluate_promotion(self, other: RankingEngine) -> bool:
        """Promote `other` to mutual friend if enough contact time has accrued."""
        with self.lock:
            return self.classifier.evaluate_promotion(self, other)

    # --- Capability interface ---

    def get_rank(self) -> float:
        return self.store.own_rank

    def get_friend_count(self) -> int:
        return len(self.store)

    def friend_ids(self) -> List[Hashable]:
        return self.store.friend_ids

    def is_friend(self, peer: Hashable) -> bool:
        return peer in self.store

    def snapshot(self) -> RankSnapshot:
        """Immutable copy of (rank, friend count), stamped with a new sequence number."""
        with self.lock:
            self._sequence += 1
            return RankSnapshot(
                sender=self._node_id,
                rank=self.store.own_rank,
                friend_count=len(self.store),
                sequence=self._sequence,
            )

    def befriend(self, snapshot: RankSnapshot) -> None:
        with self.lock:
            self.store.add_friend(snapshot)

    def submit_exchange(self, snapshot: RankSnapshot) -> RankSnapshot:
        """
        Handle the peer's half of a rank exchange.

        Our own snapshot is taken before the incoming one is applied,
        so both sides send pre-exchange values.
        """
        with self.lock:
            self.process_inbox()
            ours = self.snapshot()
            self.receive_exchange(snapshot)
            return ours

    def receive_exchange(self, snapshot: RankSnapshot) -> float:
        """Store a friend's exchanged snapshot, recompute, and gossip the result."""
        with self.lock:
            if not self.store.update(snapshot):
                logger.debug(
                    "%s: exchange snapshot from %s not applied", self._node_id, snapshot.sender
                )
            rank = self.store.recompute()
            self.exchange_count += 1
            logger.debug("%s: rank now %.4f (%d friends)", self._node_id, rank, len(self.store))
            self.publish()
            return rank

    def publish(self) -> int:
        """
        Push a fresh snapshot to every friend's inbox.

        Pushes never block and are applied by the receivers on their
        own schedule. Returns the number of pushes sent.
        """
        if self._registry is None:
            logger.debug("%s: not registered, skipping gossip", self._node_id)
            return 0

        snapshot = self.snapshot()
        sent = 0
        for friend in self.store:
            self._registry.lookup(friend).post(RankPush(target=friend, snapshot=snapshot))
            sent += 1
        return sent

    def post(self, push: RankPush) -> None:
        self._inbox.put(push)

    def process_inbox(self) -> int:
        """Apply every pending gossip push. Returns the number applied."""
        applied = 0
        with self.lock:
            while True:
                try:
                    push = self._inbox.get_nowait()
                except queue.Empty:
                    break
                if self.store.update(push.snapshot):
                    applied += 1
            self.pushes_applied += applied
        return applied

    # --- Read-only views ---

    @property
    def friends(self) -> Dict[Hashable, FriendRecord]:
        return self.store.records()

    @property
    def contact_history(self) -> Dict[Hashable, Tuple[ContactWindow, ...]]:
        return {peer: self.tracker.history(peer) for peer in self.tracker.known_peers}

    def __repr__(self) -> str:
        return (
            f"PeopleRankEngine(node={self._node_id!r}, rank={self.store.own_rank:.4f}, "
            f"friends={len(self.store)})"
        )

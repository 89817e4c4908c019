"""
Minimal message-carrying layer for the reference host.

Nodes hold messages in unbounded buffers. Whenever a contact opens,
each side offers its buffered messages to the other and the routers'
decisions decide what moves, what is kept and what is dropped.
"""

from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional
import logging

from ..routing.decision import Message, PeopleRankRouter

logger = logging.getLogger(__name__)


@dataclass
class DeliveryRecord:
    """How and when a message reached its destination."""
    message_id: str
    created_at: float
    delivered_at: float
    hops: int

    @property
    def delay(self) -> float:
        return self.delivered_at - self.created_at


@dataclass
class CarrierStats:
    created: int = 0
    rejected: int = 0
    relayed: int = 0
    delivered: int = 0
    dropped_stale: int = 0


class MessageCarrier:
    """Moves messages between node buffers according to each node's router."""

    def __init__(self):
        self._routers: Dict[Hashable, PeopleRankRouter] = {}
        self._buffers: Dict[Hashable, Dict[str, Message]] = {}
        self._hops: Dict[Hashable, Dict[str, int]] = {}
        self._deliveries: Dict[str, DeliveryRecord] = {}
        self.stats = CarrierStats()

    def add_router(self, router: PeopleRankRouter) -> None:
        self._routers[router.node_id] = router
        self._buffers.setdefault(router.node_id, {})
        self._hops.setdefault(router.node_id, {})

    def create_message(self, source: Hashable, destination: Hashable, now: float) -> Optional[Message]:
        """Create a message at its source, if the source's router accepts it."""
        router = self._routers[source]
        message = Message(source=source, destination=destination, created_at=now)
        if not router.accepts_new_message(message):
            self.stats.rejected += 1
            return None

        self._buffers[source][message.message_id] = message
        self._hops[source][message.message_id] = 0
        self.stats.created += 1
        return message

    def on_contact(self, a: Hashable, b: Hashable, now: float) -> int:
        """Exchange messages in both directions. Returns the number of transfers."""
        if a not in self._routers or b not in self._routers:
            return 0
        return self._offer(a, b, now) + self._offer(b, a, now)

    def _offer(self, sender: Hashable, receiver: Hashable, now: float) -> int:
        router = self._routers[sender]
        peer_router = self._routers[receiver]
        transfers = 0

        for message in list(self._buffers[sender].values()):
            mid = message.message_id

            if mid in self._deliveries:
                if router.should_discard_stale_local_copy(message, receiver):
                    self._drop(sender, mid)
                    self.stats.dropped_stale += 1
                continue

            if mid in self._buffers[receiver]:
                continue
            if not router.should_forward(message, receiver):
                continue

            hops = self._hops[sender][mid] + 1
            transfers += 1

            if peer_router.is_final_destination(message):
                self._deliveries[mid] = DeliveryRecord(
                    message_id=mid,
                    created_at=message.created_at,
                    delivered_at=now,
                    hops=hops,
                )
                self.stats.delivered += 1
                logger.debug("message %s delivered to %s after %d hops", mid[:8], receiver, hops)
            elif peer_router.should_save_received_message(message):
                self._buffers[receiver][mid] = message
                self._hops[receiver][mid] = hops
                self.stats.relayed += 1

            if not router.should_retain_copy_after_forward(message, receiver):
                self._drop(sender, mid)

        return transfers

    def _drop(self, node_id: Hashable, message_id: str) -> None:
        self._buffers[node_id].pop(message_id, None)
        self._hops[node_id].pop(message_id, None)

    def buffer(self, node_id: Hashable) -> List[Message]:
        return list(self._buffers.get(node_id, {}).values())

    @property
    def deliveries(self) -> List[DeliveryRecord]:
        return list(self._deliveries.values())

    @property
    def delivery_ratio(self) -> float:
        if self.stats.created == 0:
            return 0.0
        return self.stats.delivered / self.stats.created

    @property
    def average_delay(self) -> float:
        if not self._deliveries:
            return 0.0
        return sum(d.delay for d in self._deliveries.values()) / len(self._deliveries)

    @property
    def average_hops(self) -> float:
        if not self._deliveries:
            return 0.0
        return sum(d.hops for d in self._deliveries.values()) / len(self._deliveries)

    def __repr__(self) -> str:
        return (
            f"MessageCarrier(created={self.stats.created}, "
            f"delivered={self.stats.delivered})"
        )

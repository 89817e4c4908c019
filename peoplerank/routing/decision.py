"""
Forwarding decisions for the message layer.

A message is handed to a peer if the peer is its destination, or if
the peer's rank is at least this node's rank. Ties forward.
"""

from dataclasses import dataclass, field
from typing import Hashable, Optional
import logging
import uuid

from ..errors import IncompatibleEngineError
from ..ranking.engine import RankingEngine
from ..ranking.registry import EngineRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Message:
    """A message as seen by the decision rule: only its endpoints matter."""
    source: Hashable
    destination: Hashable
    created_at: float = 0.0
    size: int = 0
    message_id: str = field(default_factory=lambda: str(uuid.uuid4()))


def should_forward(
    message: Message,
    candidate_peer: Hashable,
    this_rank: float,
    peer_rank: float,
) -> bool:
    """Forward to the destination itself, or to any peer ranked at least as high."""
    return candidate_peer == message.destination or peer_rank >= this_rank


def is_final_destination(message: Message, node: Hashable) -> bool:
    return message.destination == node


class PeopleRankRouter:
    """
    Decision interface one node exposes to the message layer.

    Ranks are read through the registry, so the peer's value is the
    one it currently holds, not a copy cached here.
    """

    def __init__(self, engine: RankingEngine, registry: EngineRegistry):
        self.engine = engine
        self.registry = registry

    @property
    def node_id(self) -> Hashable:
        return self.engine.node_id

    def should_forward(self, message: Message, peer_node: Hashable) -> bool:
        """
        Whether to hand `message` to `peer_node` during the current contact.

        A peer without a ranking engine has no rank to compare against,
        so it is never used as a relay.
        """
        if is_final_destination(message, peer_node):
            return True
        try:
            peer_rank = self.registry.lookup(peer_node).get_rank()
        except IncompatibleEngineError:
            logger.debug("%s: no rank for %s, not relaying", self.node_id, peer_node)
            return False
        return should_forward(message, peer_node, self.engine.get_rank(), peer_rank)

    def accepts_new_message(self, message: Message) -> bool:
        return True

    def is_final_destination(self, message: Message, node: Optional[Hashable] = None) -> bool:
        return is_final_destination(message, self.node_id if node is None else node)

    def should_save_received_message(self, message: Message) -> bool:
        """Keep custody only of messages addressed to someone else."""
        return message.destination != self.node_id

    def should_retain_copy_after_forward(self, message: Message, peer_node: Hashable) -> bool:
        """Drop our copy once the destination itself has it."""
        return message.destination != peer_node

    def should_discard_stale_local_copy(self, message: Message, reporting_node: Hashable) -> bool:
        """A node reporting it already holds the message is its destination."""
        return message.destination == reporting_node

    def __repr__(self) -> str:
        return f"PeopleRankRouter(node={self.node_id!r})"

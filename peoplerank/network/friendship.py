"""
Friendship promotion from accumulated contact time.

A peer becomes a friend once the total duration of closed contact
windows with it reaches the configured threshold. Friendship is
symmetric and permanent.
"""

from typing import Container, Hashable, TYPE_CHECKING
import logging

from .contacts import ContactTracker

if TYPE_CHECKING:
    from ..ranking.engine import RankingEngine

logger = logging.getLogger(__name__)


class FriendshipClassifier:
    """
    Decides when a contacted peer is promoted to friend.

    Owned by a single node's engine and reads that node's
    contact history only.
    """

    def __init__(self, tracker: ContactTracker, threshold: float):
        self.tracker = tracker
        self.threshold = threshold

    def should_promote(self, peer: Hashable, friends: Container) -> bool:
        """Not yet a friend, and cumulative contact time has reached the threshold."""
        if peer in friends:
            return False
        return self.tracker.total_duration(peer) >= self.threshold

    def evaluate_promotion(self, this: "RankingEngine", other: "RankingEngine") -> bool:
        """
        Promote `other` to friend of `this`, and vice versa, if due.

        The caller must hold both engines' locks. Both snapshots are
        taken before either side is written, so each side records the
        other's friend count as it stood before the new link, plus one
        for the link being added.

        Returns True if a promotion happened.
        """
        if not self.should_promote(other.node_id, this.friend_ids()):
            return False

        ours = this.snapshot()
        theirs = other.snapshot()

        this.befriend(theirs.with_new_link())
        other.befriend(ours.with_new_link())

        logger.info(
            "%s and %s are now friends after %.1fs of contact",
            this.node_id, other.node_id, self.tracker.total_duration(other.node_id),
        )
        return True

    def __repr__(self) -> str:
        return f"FriendshipClassifier(threshold={self.threshold})"

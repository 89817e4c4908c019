"""
Rank store: the per-node friend table and the rank formula.

Each node keeps, for every friend, the last rank and friend count
that friend sent it, and derives its own rank from those values only:

    rank = (1 - d) + d * sum(rank_f / count_f for every friend f)

where d is the damping factor. A friend reporting a count of zero
contributes nothing.
"""

from dataclasses import dataclass, replace
from typing import Dict, Hashable, Iterable, Iterator, List, Optional
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankSnapshot:
    """
    Immutable (rank, friend count) value taken by a node at send time.

    The sequence number grows with every snapshot a node takes, so a
    receiver can tell a newer value from an older one.
    """
    sender: Hashable
    rank: float
    friend_count: int
    sequence: int

    def with_new_link(self) -> "RankSnapshot":
        """The same snapshot, counting the friendship about to be created."""
        return replace(self, friend_count=self.friend_count + 1)


@dataclass(frozen=True)
class RankPush:
    """A gossip message carrying a snapshot to one of the sender's friends."""
    target: Hashable
    snapshot: RankSnapshot


@dataclass(frozen=True)
class FriendRecord:
    """Last known values reported by a friend."""
    remote_rank: float
    remote_friend_count: int
    sequence: int = -1

    @property
    def contribution(self) -> float:
        if self.remote_friend_count == 0:
            return 0.0
        return self.remote_rank / self.remote_friend_count

    @classmethod
    def from_snapshot(cls, snapshot: RankSnapshot) -> "FriendRecord":
        return cls(
            remote_rank=snapshot.rank,
            remote_friend_count=snapshot.friend_count,
            sequence=snapshot.sequence,
        )


def compute_rank(damping_factor: float, records: Iterable[FriendRecord]) -> float:
    """Damped rank from a set of friend records."""
    sigma = sum(record.contribution for record in records)
    return (1 - damping_factor) + damping_factor * sigma


class RankStore:
    """
    A node's own rank and its table of friends.

    Friends are only ever added; records are overwritten by newer
    snapshots and never removed.
    """

    def __init__(self, damping_factor: float, initial_rank: Optional[float] = None):
        self.damping_factor = damping_factor
        self.own_rank = (1 - damping_factor) if initial_rank is None else initial_rank
        self._friends: Dict[Hashable, FriendRecord] = {}

    def add_friend(self, snapshot: RankSnapshot) -> FriendRecord:
        """Create (or refresh) the record for a newly promoted friend."""
        record = FriendRecord.from_snapshot(snapshot)
        self._friends[snapshot.sender] = record
        return record

    def update(self, snapshot: RankSnapshot) -> bool:
        """
        Store a snapshot received from a friend.

        Snapshots from non-friends, and snapshots older than the one
        already stored, are ignored. Returns True if the record changed.
        """
        current = self._friends.get(snapshot.sender)
        if current is None:
            logger.debug("ignoring snapshot from non-friend %s", snapshot.sender)
            return False
        if snapshot.sequence <= current.sequence:
            logger.debug(
                "ignoring stale snapshot #%d from %s (have #%d)",
                snapshot.sequence, snapshot.sender, current.sequence,
            )
            return False

        self._friends[snapshot.sender] = FriendRecord.from_snapshot(snapshot)
        return True

    def sigma(self) -> float:
        """Sum of the friends' rank contributions."""
        return sum(record.contribution for record in self._friends.values())

    def recompute(self) -> float:
        """Recompute and store the own rank from the current friend records."""
        self.own_rank = compute_rank(self.damping_factor, self._friends.values())
        return self.own_rank

    def get(self, friend: Hashable) -> Optional[FriendRecord]:
        return self._friends.get(friend)

    @property
    def friend_ids(self) -> List[Hashable]:
        return list(self._friends)

    def records(self) -> Dict[Hashable, FriendRecord]:
        """Copy of the friend table."""
        return dict(self._friends)

    def __contains__(self, friend: Hashable) -> bool:
        return friend in self._friends

    def __len__(self) -> int:
        return len(self._friends)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._friends))

    def __repr__(self) -> str:
        return f"RankStore(rank={self.own_rank:.4f}, friends={len(self._friends)})"

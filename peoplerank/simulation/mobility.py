"""
Community-based contact generation.

Nodes are split into communities. At each step every pair of nodes
may meet, with a higher probability inside a community than across
communities, for an exponentially distributed duration. A pair is
never scheduled to meet again while a previous contact is still open.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Hashable, List, Optional, Sequence
import itertools
import random

from .dynamics import ContactScheduler


@dataclass
class MobilityConfig:
    """Contact generation parameters."""
    community_count: int = 3
    intra_contact_probability: float = 0.05  # Per pair, per step
    inter_contact_probability: float = 0.005
    mean_contact_seconds: float = 120.0
    min_contact_seconds: float = 1.0


class CommunityMobility:
    """Seeded generator of contact windows between community members."""

    def __init__(
        self,
        node_ids: Sequence[Hashable],
        config: Optional[MobilityConfig] = None,
        seed: Optional[int] = None,
    ):
        self.config = config or MobilityConfig()
        self._rng = random.Random(seed)
        self._busy_until: Dict[FrozenSet[Hashable], float] = {}
        self.communities: Dict[Hashable, int] = {}
        self.assign_communities(node_ids)

    def assign_communities(self, node_ids: Sequence[Hashable]) -> None:
        """Deal nodes round-robin into communities after a seeded shuffle."""
        shuffled = list(node_ids)
        self._rng.shuffle(shuffled)
        count = max(1, self.config.community_count)
        self.communities = {
            node_id: i % count for i, node_id in enumerate(shuffled)
        }

    def members(self, community: int) -> List[Hashable]:
        return [n for n, c in self.communities.items() if c == community]

    def same_community(self, a: Hashable, b: Hashable) -> bool:
        return self.communities.get(a) == self.communities.get(b)

    def contact_probability(self, a: Hashable, b: Hashable) -> float:
        if self.same_community(a, b):
            return self.config.intra_contact_probability
        return self.config.inter_contact_probability

    def generate(self, scheduler: ContactScheduler, step_start: float, step_seconds: float) -> int:
        """
        Schedule the contacts that begin during one step.

        Returns the number of contacts scheduled.
        """
        scheduled = 0
        nodes = sorted(self.communities, key=str)

        for a, b in itertools.combinations(nodes, 2):
            pair = frozenset((a, b))
            if self._busy_until.get(pair, -1.0) >= step_start:
                continue
            if self._rng.random() >= self.contact_probability(a, b):
                continue

            start = step_start + self._rng.uniform(0, step_seconds)
            duration = max(
                self.config.min_contact_seconds,
                self._rng.expovariate(1 / self.config.mean_contact_seconds),
            )
            scheduler.schedule_contact(a, b, start, duration)
            self._busy_until[pair] = start + duration
            scheduled += 1

        return scheduled

    def __repr__(self) -> str:
        return (
            f"CommunityMobility(nodes={len(self.communities)}, "
            f"communities={self.config.community_count})"
        )

"""
Metrics collection for simulation analysis.

Collects per-step counters and end-of-run aggregates for comparing
runs with different damping factors and thresholds.
"""

from dataclasses import dataclass
from typing import List, Dict, Hashable, Optional, Any
from datetime import datetime
from collections import defaultdict
import json

from ..ranking.coordinator import EncounterCoordinator
from ..ranking.protocol import ExchangeResult
from ..simulation.engine import SimulationState
from ..simulation.dynamics import ContactEvent, ContactEventType


@dataclass
class SimulationMetrics:
    """Aggregated metrics for a simulation run."""
    # Basic stats
    simulation_id: str
    start_time: datetime
    end_time: Optional[datetime]
    total_steps: int
    total_contacts: int
    total_exchanges: int
    total_promotions: int

    # Network stats
    node_count: int
    friendship_count: int
    graph_density: float
    avg_clustering: float

    # Ranking stats
    damping_factor: float
    friend_threshold: float
    mean_rank: float
    max_rank: float
    min_rank: float
    mean_absolute_error: float
    order_agreement: float

    # Delivery stats
    messages_created: int
    messages_delivered: int
    delivery_ratio: float
    average_delay: float
    average_hops: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "simulation_id": self.simulation_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "total_steps": self.total_steps,
            "total_contacts": self.total_contacts,
            "total_exchanges": self.total_exchanges,
            "total_promotions": self.total_promotions,
            "node_count": self.node_count,
            "friendship_count": self.friendship_count,
            "graph_density": self.graph_density,
            "avg_clustering": self.avg_clustering,
            "damping_factor": self.damping_factor,
            "friend_threshold": self.friend_threshold,
            "mean_rank": self.mean_rank,
            "max_rank": self.max_rank,
            "min_rank": self.min_rank,
            "mean_absolute_error": self.mean_absolute_error,
            "order_agreement": self.order_agreement,
            "messages_created": self.messages_created,
            "messages_delivered": self.messages_delivered,
            "delivery_ratio": self.delivery_ratio,
            "average_delay": self.average_delay,
            "average_hops": self.average_hops,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


class MetricsCollector:
    """
    Collects metrics during simulation runs.

    Tracks:
    - Per-step counters
    - Per-node activity (contacts, exchanges, friendships)
    - Aggregate statistics
    """

    def __init__(self, simulation_id: Optional[str] = None):
        import uuid
        self.simulation_id = simulation_id or str(uuid.uuid4())[:8]
        self.start_time = datetime.now()
        self.end_time: Optional[datetime] = None

        # Counters
        self._step_count = 0
        self._contact_count = 0
        self._exchange_count = 0
        self._promotion_count = 0
        self._last_exchanges = 0
        self._last_promotions = 0

        # Per-node tracking
        self._node_contacts: Dict[Hashable, int] = defaultdict(int)
        self._node_exchanges: Dict[Hashable, int] = defaultdict(int)
        self._node_friendships: Dict[Hashable, int] = defaultdict(int)

        # Time series data
        self._timeline: List[Dict[str, Any]] = []

    def subscribe(self, coordinator: EncounterCoordinator) -> None:
        """Receive exchange and promotion events from a coordinator."""
        coordinator.on_exchange(self.record_exchange)
        coordinator.on_promotion(self.record_promotion)

    def record_step(self, state: SimulationState, contacts_this_step: int = 0) -> None:
        """Record metrics for a simulation step."""
        self._step_count = state.step_count
        self._contact_count = state.contacts

        exchanges_this_step = state.exchanges - self._last_exchanges
        promotions_this_step = state.promotions - self._last_promotions
        self._last_exchanges = state.exchanges
        self._last_promotions = state.promotions
        self._exchange_count = state.exchanges
        self._promotion_count = state.promotions

        self._timeline.append({
            "step": state.step_count,
            "time": state.current_time,
            "contacts": contacts_this_step,
            "exchanges": exchanges_this_step,
            "promotions": promotions_this_step,
            "messages_delivered": state.messages_delivered,
        })

    def record_contact(self, event: ContactEvent) -> None:
        """Record a contact opening between two nodes."""
        if event.event_type is not ContactEventType.UP:
            return
        self._node_contacts[event.node_a] += 1
        self._node_contacts[event.node_b] += 1

    def record_exchange(self, result: ExchangeResult) -> None:
        """Record a completed rank exchange."""
        self._node_exchanges[result.initiator_sent.sender] += 1
        self._node_exchanges[result.peer_sent.sender] += 1

    def record_promotion(self, node_a: Hashable, node_b: Hashable) -> None:
        """Record a new friendship."""
        self._node_friendships[node_a] += 1
        self._node_friendships[node_b] += 1

    def finalize(
        self,
        node_count: int,
        friendship_count: int,
        graph_density: float,
        avg_clustering: float,
        damping_factor: float,
        friend_threshold: float,
        ranks: Dict[Hashable, float],
        mean_absolute_error: float,
        order_agreement: float,
        messages_created: int,
        messages_delivered: int,
        average_delay: float,
        average_hops: float,
    ) -> SimulationMetrics:
        """Finalize metrics collection and return aggregated metrics."""
        self.end_time = datetime.now()
        values = list(ranks.values())

        return SimulationMetrics(
            simulation_id=self.simulation_id,
            start_time=self.start_time,
            end_time=self.end_time,
            total_steps=self._step_count,
            total_contacts=self._contact_count,
            total_exchanges=self._exchange_count,
            total_promotions=self._promotion_count,
            node_count=node_count,
            friendship_count=friendship_count,
            graph_density=graph_density,
            avg_clustering=avg_clustering,
            damping_factor=damping_factor,
            friend_threshold=friend_threshold,
            mean_rank=self._avg(values),
            max_rank=max(values, default=0.0),
            min_rank=min(values, default=0.0),
            mean_absolute_error=mean_absolute_error,
            order_agreement=order_agreement,
            messages_created=messages_created,
            messages_delivered=messages_delivered,
            delivery_ratio=messages_delivered / max(1, messages_created),
            average_delay=average_delay,
            average_hops=average_hops,
        )

    def _avg(self, values: List[float]) -> float:
        return sum(values) / len(values) if values else 0.0

    def get_node_activity(self, node_id: Hashable) -> Dict[str, int]:
        return {
            "contacts": self._node_contacts.get(node_id, 0),
            "exchanges": self._node_exchanges.get(node_id, 0),
            "friendships": self._node_friendships.get(node_id, 0),
        }

    def get_top_active_nodes(self, n: int = 10) -> List[tuple]:
        """Get the nodes with the most contacts."""
        sorted_nodes = sorted(
            self._node_contacts.items(),
            key=lambda x: x[1],
            reverse=True,
        )
        return sorted_nodes[:n]

    def get_timeline(self) -> List[Dict[str, Any]]:
        return self._timeline.copy()

    def export_to_csv(self, filepath: str) -> None:
        """Export timeline data to CSV."""
        import csv

        if not self._timeline:
            return

        with open(filepath, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=self._timeline[0].keys())
            writer.writeheader()
            writer.writerows(self._timeline)

    def __repr__(self) -> str:
        return f"MetricsCollector(id={self.simulation_id}, steps={self._step_count}, contacts={self._contact_count})"

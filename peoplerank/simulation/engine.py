"""
Time-step simulation loop for the reference host.

Generates contacts, feeds them to the encounter coordinator, moves
messages with the forwarding decisions and records rank history for
analysis.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, List, Optional
from enum import Enum
import logging
import random

from ..ranking.config import RankingConfig
from ..ranking.coordinator import EncounterCoordinator
from ..ranking.engine import PeopleRankEngine
from ..ranking.registry import EngineRegistry
from ..routing.decision import PeopleRankRouter
from .carrier import MessageCarrier
from .clock import SimClock
from .dynamics import ContactEvent, ContactEventType, ContactScheduler
from .mobility import CommunityMobility, MobilityConfig

logger = logging.getLogger(__name__)


class SimulationPhase(Enum):
    """Phases of a simulation run."""
    SETUP = "setup"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


@dataclass
class SimulationConfig:
    """Configuration for a simulation run."""
    # Population
    node_count: int = 30

    # Time settings
    duration_hours: float = 24.0
    time_step_minutes: float = 10.0

    # Contacts
    mobility: MobilityConfig = field(default_factory=MobilityConfig)

    # Ranking
    ranking: RankingConfig = field(
        default_factory=lambda: RankingConfig(damping_factor=0.5, friend_threshold=300.0)
    )

    # Traffic
    messages_per_step: int = 1

    # Random seed for reproducibility
    seed: Optional[int] = None

    @property
    def step_seconds(self) -> float:
        return self.time_step_minutes * 60.0

    @property
    def duration_seconds(self) -> float:
        return self.duration_hours * 3600.0


@dataclass
class SimulationState:
    """Current state of a simulation."""
    phase: SimulationPhase = SimulationPhase.SETUP
    current_time: float = 0.0
    step_count: int = 0
    contacts: int = 0
    exchanges: int = 0
    promotions: int = 0
    messages_created: int = 0
    messages_delivered: int = 0


class SimulationEngine:
    """
    Reference host for the ranking engines.

    Each step:
    1. Contacts starting in the step are generated
    2. New messages are created at random sources
    3. Contact events are fed to the coordinator in time order
    4. On every contact open, buffered messages are offered both ways
    5. Every node's rank is recorded
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        self.config = config or SimulationConfig()
        self._rng = random.Random(self.config.seed)

        # Core components
        self.clock = SimClock()
        self.registry = EngineRegistry()
        self.coordinator = EncounterCoordinator(self.registry)
        self.carrier = MessageCarrier()
        self._scheduler = ContactScheduler(self.clock.current())
        self._prototype = PeopleRankEngine("prototype", self.config.ranking)
        self._mobility: Optional[CommunityMobility] = None

        self._node_ids: List[Hashable] = []
        self._rank_history: Dict[Hashable, List[float]] = {}

        # State tracking
        self._state = SimulationState()

        # Event hooks
        self._on_contact: List[Callable[[ContactEvent], None]] = []
        self._on_step: List[Callable[[SimulationState], None]] = []

    def add_node(self, node_id: Hashable, router: Any = None) -> None:
        """
        Add a node to the simulation.

        By default the node gets a fresh ranking engine. Passing any
        other router registers a node that cannot take part in ranking.
        """
        if router is None:
            engine = self._prototype.replicate(node_id)
            self.registry.register(node_id, engine)
            self.carrier.add_router(PeopleRankRouter(engine, self.registry))
            self._rank_history[node_id] = []
        else:
            self.registry.register(node_id, router)
        self._node_ids.append(node_id)
        self._mobility = None

    def populate(self) -> List[Hashable]:
        """Add `config.node_count` ranking nodes named n00, n01, ..."""
        width = max(2, len(str(self.config.node_count - 1)))
        ids = [f"n{i:0{width}d}" for i in range(self.config.node_count)]
        for node_id in ids:
            self.add_node(node_id)
        return ids

    @property
    def mobility(self) -> CommunityMobility:
        if self._mobility is None:
            self._mobility = CommunityMobility(
                self._node_ids,
                self.config.mobility,
                seed=self._rng.randrange(2**32),
            )
        return self._mobility

    @property
    def scheduler(self) -> ContactScheduler:
        return self._scheduler

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def node_ids(self) -> List[Hashable]:
        return list(self._node_ids)

    def get_engine(self, node_id: Hashable) -> PeopleRankEngine:
        return self.registry.lookup(node_id)

    def rank_history(self) -> Dict[Hashable, List[float]]:
        return {node: list(ranks) for node, ranks in self._rank_history.items()}

    def on_contact(self, callback: Callable[[ContactEvent], None]) -> None:
        """Register a callback for processed contact events."""
        self._on_contact.append(callback)

    def on_step(self, callback: Callable[[SimulationState], None]) -> None:
        """Register a callback for step completion."""
        self._on_step.append(callback)

    def run(self) -> SimulationState:
        """
        Run the full simulation.

        Returns the final simulation state.
        """
        self._state.phase = SimulationPhase.RUNNING
        logger.info(
            "running %d nodes for %.1f hours", len(self._node_ids), self.config.duration_hours
        )

        while self._state.current_time < self.config.duration_seconds:
            self._run_step()

            if self._state.phase != SimulationPhase.RUNNING:
                break

        if self._state.phase == SimulationPhase.RUNNING:
            self._state.phase = SimulationPhase.COMPLETED
        logger.info(
            "finished after %d steps: %d promotions, %d exchanges, %d/%d delivered",
            self._state.step_count, self._state.promotions, self._state.exchanges,
            self._state.messages_delivered, self._state.messages_created,
        )
        return self._state

    def run_steps(self, n_steps: int) -> SimulationState:
        """Run a specific number of simulation steps."""
        self._state.phase = SimulationPhase.RUNNING

        for _ in range(n_steps):
            self._run_step()

            if self._state.phase != SimulationPhase.RUNNING:
                break

        return self._state

    def pause(self) -> None:
        self._state.phase = SimulationPhase.PAUSED

    def resume(self) -> None:
        if self._state.phase == SimulationPhase.PAUSED:
            self._state.phase = SimulationPhase.RUNNING

    def _run_step(self) -> None:
        """Execute a single simulation step."""
        step_start = self.clock.current()
        step_end = step_start + self.config.step_seconds

        self.mobility.generate(self._scheduler, step_start, self.config.step_seconds)
        self._generate_messages(step_start)

        for event in self._scheduler.process_events_until(step_end):
            self.clock.set(event.timestamp)
            self.handle_event(event)

        self.clock.set(step_end)
        self._state.current_time = step_end
        self._state.step_count += 1
        self._state.exchanges = self.coordinator.exchanges
        self._state.promotions = self.coordinator.promotions
        self._state.messages_created = self.carrier.stats.created
        self._state.messages_delivered = self.carrier.stats.delivered

        for node_id, ranks in self._rank_history.items():
            ranks.append(self.registry.lookup(node_id).get_rank())

        for callback in self._on_step:
            callback(self._state)

    def handle_event(self, event: ContactEvent) -> None:
        """Feed one contact event to the coordinator and the message layer."""
        now = event.timestamp
        if event.event_type is ContactEventType.UP:
            self.coordinator.on_contact_open(event.node_a, event.node_b, now)
            self.carrier.on_contact(event.node_a, event.node_b, now)
            self._state.contacts += 1
        else:
            self.coordinator.on_contact_close(event.node_a, event.node_b, now)

        for callback in self._on_contact:
            callback(event)

    def _generate_messages(self, now: float) -> None:
        """Create messages between random pairs of ranking nodes."""
        candidates = list(self._rank_history)
        if len(candidates) < 2:
            return

        for _ in range(self.config.messages_per_step):
            source, destination = self._rng.sample(candidates, 2)
            self.carrier.create_message(source, destination, now)

    def export_state(self) -> Dict[str, Any]:
        """Export current simulation state for analysis."""
        return {
            "phase": self._state.phase.value,
            "current_time": self._state.current_time,
            "step_count": self._state.step_count,
            "contacts": self._state.contacts,
            "exchanges": self._state.exchanges,
            "promotions": self._state.promotions,
            "messages_created": self._state.messages_created,
            "messages_delivered": self._state.messages_delivered,
            "delivery_ratio": self.carrier.delivery_ratio,
            "node_count": len(self._node_ids),
            "skipped_pairs": len(self.coordinator.skipped_pairs),
        }

    def __repr__(self) -> str:
        return f"SimulationEngine(nodes={len(self._node_ids)}, phase={self._state.phase.value})"

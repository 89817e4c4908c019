"""
Contact event scheduling for the reference host.

Keeps a time-ordered queue of contact up/down events and the
completed event log. At equal timestamps, contact closes are
processed before contact opens, so friendship promotions of a tick
are settled before that tick's rank exchanges.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Hashable, List, Optional, Tuple
from enum import Enum
import heapq
import itertools


class ContactEventType(Enum):
    """Contact lifecycle events."""
    DOWN = 0  # Nodes moved out of range
    UP = 1  # Nodes came into range


_sequence = itertools.count()


@dataclass
class ContactEvent:
    """
    A scheduled or completed contact event between two nodes.

    Events order by time, then DOWN before UP, then scheduling order.
    """
    timestamp: float
    event_type: ContactEventType
    node_a: Hashable
    node_b: Hashable
    event_id: int = field(default_factory=lambda: next(_sequence))

    @property
    def pair(self) -> FrozenSet[Hashable]:
        return frozenset((self.node_a, self.node_b))

    def sort_key(self) -> Tuple[float, int, int]:
        return (self.timestamp, self.event_type.value, self.event_id)

    def __lt__(self, other: "ContactEvent") -> bool:
        return self.sort_key() < other.sort_key()


class ContactScheduler:
    """
    Schedules contact windows between nodes over simulated time.

    Supports:
    - Scheduling a full contact (UP and matching DOWN)
    - Processing events up to a given time
    - Per-pair contact statistics
    """

    def __init__(self, start_time: float = 0.0):
        self._event_queue: List[ContactEvent] = []
        self._completed_events: List[ContactEvent] = []
        self._current_time = start_time

    @property
    def current_time(self) -> float:
        return self._current_time

    def schedule_event(
        self,
        event_type: ContactEventType,
        node_a: Hashable,
        node_b: Hashable,
        timestamp: float,
    ) -> ContactEvent:
        """Schedule a single contact event."""
        if timestamp < self._current_time:
            raise ValueError(
                f"cannot schedule an event at {timestamp}, clock is at {self._current_time}"
            )
        event = ContactEvent(
            timestamp=timestamp,
            event_type=event_type,
            node_a=node_a,
            node_b=node_b,
        )
        heapq.heappush(self._event_queue, event)
        return event

    def schedule_contact(
        self,
        node_a: Hashable,
        node_b: Hashable,
        start: float,
        duration: float,
    ) -> Tuple[ContactEvent, ContactEvent]:
        """Schedule a contact window from `start` lasting `duration` seconds."""
        if duration < 0:
            raise ValueError(f"contact duration must be >= 0, got {duration}")
        up = self.schedule_event(ContactEventType.UP, node_a, node_b, start)
        down = self.schedule_event(ContactEventType.DOWN, node_a, node_b, start + duration)
        return up, down

    def get_next_event(self) -> Optional[ContactEvent]:
        """
        Get the next scheduled event.

        Returns None if no events are scheduled.
        """
        if not self._event_queue:
            return None
        return heapq.heappop(self._event_queue)

    def peek_next_event(self) -> Optional[ContactEvent]:
        if not self._event_queue:
            return None
        return self._event_queue[0]

    def process_next_event(self) -> Optional[ContactEvent]:
        """Pop the next event and move the clock to it."""
        event = self.get_next_event()
        if event:
            self._current_time = event.timestamp
            self._completed_events.append(event)
        return event

    def process_events_until(self, end_time: float) -> List[ContactEvent]:
        """Process all events up to and including the given time."""
        processed = []

        while self._event_queue and self._event_queue[0].timestamp <= end_time:
            event = self.process_next_event()
            if event:
                processed.append(event)

        self._current_time = max(self._current_time, end_time)
        return processed

    def get_completed_events(self) -> List[ContactEvent]:
        return self._completed_events.copy()

    def get_events_by_node(self, node_id: Hashable) -> List[ContactEvent]:
        return [
            e for e in self._completed_events
            if node_id in (e.node_a, e.node_b)
        ]

    def get_pair_statistics(self) -> Dict[FrozenSet[Hashable], Dict[str, float]]:
        """
        Contact count and total contact time per pair, from completed events.

        Windows still open at the current time are not counted.
        """
        open_at: Dict[FrozenSet[Hashable], float] = {}
        stats: Dict[FrozenSet[Hashable], Dict[str, float]] = {}

        for event in self._completed_events:
            pair = event.pair
            if event.event_type is ContactEventType.UP:
                open_at.setdefault(pair, event.timestamp)
            elif pair in open_at:
                entry = stats.setdefault(pair, {"contacts": 0, "total_seconds": 0.0})
                entry["contacts"] += 1
                entry["total_seconds"] += event.timestamp - open_at.pop(pair)

        return stats

    @property
    def pending_count(self) -> int:
        return len(self._event_queue)

    @property
    def completed_count(self) -> int:
        return len(self._completed_events)

    def clear(self) -> None:
        self._event_queue.clear()
        self._completed_events.clear()

    def __repr__(self) -> str:
        return f"ContactScheduler(pending={self.pending_count}, completed={self.completed_count})"

"""
Contact accounting for opportunistic encounters.

Records when each peer comes into and goes out of range and
accumulates the total time spent in contact with it.
"""

from dataclasses import dataclass
from typing import Dict, List, Hashable, Tuple
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContactWindow:
    """
    One continuous in-range period with a peer.

    Windows are immutable once closed and kept in chronological order.
    """
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


class ContactTracker:
    """
    Tracks open contacts and the closed contact history of one node.

    A peer is either in the open-contact table (currently in range)
    or not; it is never recorded as open twice.
    """

    def __init__(self):
        self._open: Dict[Hashable, float] = {}
        self._history: Dict[Hashable, List[ContactWindow]] = {}

    def open(self, peer: Hashable, now: float) -> bool:
        """
        Record the start of a contact with a peer.

        Re-opening a contact that is already open is a no-op.
        Returns True if a new window was opened.
        """
        if peer in self._open:
            logger.debug("contact with %s already open since %s", peer, self._open[peer])
            return False

        self._open[peer] = now
        return True

    def close(self, peer: Hashable, now: float) -> ContactWindow:
        """
        Record the end of a contact and append it to the history.

        A close without a matching open (the contact began before this
        node's state existed, or the open event was lost) is recorded
        as starting at time zero.
        """
        start = self._open.pop(peer, None)
        if start is None:
            logger.warning(
                "contact with %s closed at %s without an open record; assuming start=0",
                peer, now,
            )
            start = 0.0

        window = ContactWindow(start=start, end=now)
        self._history.setdefault(peer, []).append(window)
        return window

    def total_duration(self, peer: Hashable) -> float:
        """Total time spent in contact with a peer over all closed windows."""
        return sum(w.duration for w in self._history.get(peer, []))

    def is_open(self, peer: Hashable) -> bool:
        return peer in self._open

    def open_since(self, peer: Hashable):
        """Start time of the current contact with a peer, or None."""
        return self._open.get(peer)

    def history(self, peer: Hashable) -> Tuple[ContactWindow, ...]:
        """Closed windows with a peer, oldest first."""
        return tuple(self._history.get(peer, ()))

    def contact_count(self, peer: Hashable) -> int:
        return len(self._history.get(peer, ()))

    @property
    def known_peers(self) -> List[Hashable]:
        """Every peer ever seen, open or closed."""
        peers = list(self._history)
        peers.extend(p for p in self._open if p not in self._history)
        return peers

    @property
    def open_peers(self) -> List[Hashable]:
        return list(self._open)

    def __repr__(self) -> str:
        return f"ContactTracker(peers={len(self.known_peers)}, open={len(self._open)})"

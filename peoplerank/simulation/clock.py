"""Simulation clock in seconds."""


class SimClock:
    """Monotonic clock driven by the simulation loop."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)

    def current(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError(f"cannot move the clock backwards by {seconds}s")
        self._now += seconds
        return self._now

    def set(self, timestamp: float) -> float:
        """Jump forward to an absolute time."""
        if timestamp < self._now:
            raise ValueError(f"cannot move the clock back from {self._now} to {timestamp}")
        self._now = float(timestamp)
        return self._now

    def __repr__(self) -> str:
        return f"SimClock(now={self._now:.1f})"

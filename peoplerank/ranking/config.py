"""Static configuration shared by every node's ranking engine."""

from dataclasses import dataclass
from typing import Any, Mapping

from ..errors import ConfigurationError

DAMPING_KEY = "dampingFactor"
THRESHOLD_KEY = "threshold"

DAMPING_DEFAULT = 0.5
THRESHOLD_DEFAULT = 3.0


@dataclass(frozen=True)
class RankingConfig:
    """
    Damping factor and friendship threshold.

    Attributes:
        damping_factor: Weight of the friends' contribution, strictly
            between 0 and 1.
        friend_threshold: Cumulative contact time (seconds) needed
            before a peer is promoted to friend.
    """
    damping_factor: float = DAMPING_DEFAULT
    friend_threshold: float = THRESHOLD_DEFAULT

    def __post_init__(self):
        if not 0.0 < self.damping_factor < 1.0:
            raise ConfigurationError(
                f"damping factor must be in (0, 1), got {self.damping_factor}"
            )
        if self.friend_threshold < 0:
            raise ConfigurationError(
                f"friend threshold must be >= 0, got {self.friend_threshold}"
            )

    @property
    def initial_rank(self) -> float:
        """Rank held by a node before any exchange."""
        return 1.0 - self.damping_factor

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "RankingConfig":
        """
        Build a config from a flat settings mapping.

        Reads ``dampingFactor`` and ``threshold``; missing keys fall back
        to the defaults.
        """
        try:
            damping = float(settings.get(DAMPING_KEY, DAMPING_DEFAULT))
            threshold = float(settings.get(THRESHOLD_KEY, THRESHOLD_DEFAULT))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid ranking settings: {e}") from e

        return cls(damping_factor=damping, friend_threshold=threshold)

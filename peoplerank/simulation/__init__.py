"""Simulation module - Reference host: clock, contacts, messages and the run loop."""

from .clock import SimClock
from .dynamics import ContactEvent, ContactEventType, ContactScheduler
from .mobility import CommunityMobility, MobilityConfig
from .carrier import MessageCarrier, DeliveryRecord
from .engine import SimulationEngine, SimulationConfig, SimulationState, SimulationPhase

__all__ = [
    "SimClock",
    "ContactEvent",
    "ContactEventType",
    "ContactScheduler",
    "CommunityMobility",
    "MobilityConfig",
    "MessageCarrier",
    "DeliveryRecord",
    "SimulationEngine",
    "SimulationConfig",
    "SimulationState",
    "SimulationPhase",
]

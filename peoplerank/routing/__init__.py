"""Routing module - Forwarding decisions for the message layer."""

from .decision import Message, PeopleRankRouter, should_forward, is_final_destination

__all__ = [
    "Message",
    "PeopleRankRouter",
    "should_forward",
    "is_final_destination",
]

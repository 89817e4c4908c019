"""Network module - Contact accounting, friendship promotion and the friend graph."""

from .contacts import ContactTracker, ContactWindow
from .friendship import FriendshipClassifier
from .graph import FriendshipGraph

__all__ = [
    "ContactTracker",
    "ContactWindow",
    "FriendshipClassifier",
    "FriendshipGraph",
]

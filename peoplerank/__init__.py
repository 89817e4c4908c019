"""
PeopleRank

Social-trust ranking and forwarding decisions for delay-tolerant,
opportunistic networks. Nodes promote frequent contacts to friends,
propagate a damped PageRank-like score over the friend graph at each
encounter, and forward messages towards better-ranked peers.
"""

__version__ = "0.1.0"

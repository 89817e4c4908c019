"""
Friendship graph snapshot for analysis.

Built from the engines' friend tables. Friendship is symmetric, so
the graph is undirected; an edge present on only one side is
recorded as asymmetric, which a correct run never produces.
"""

from typing import Dict, Hashable, Iterable, List, Optional, Set, Tuple


class FriendshipGraph:
    """
    An undirected graph of friendships between nodes.

    Supports:
    - Degree and neighbour queries
    - Graph metrics (density, clustering)
    - Connected components
    """

    def __init__(self):
        self._nodes: Set[Hashable] = set()
        self._adjacency: Dict[Hashable, Set[Hashable]] = {}
        self._asymmetric: Set[Tuple[Hashable, Hashable]] = set()

    def add_node(self, node_id: Hashable) -> None:
        if node_id not in self._nodes:
            self._nodes.add(node_id)
            self._adjacency[node_id] = set()

    def add_friendship(self, a: Hashable, b: Hashable) -> None:
        self.add_node(a)
        self.add_node(b)
        self._adjacency[a].add(b)
        self._adjacency[b].add(a)

    def are_friends(self, a: Hashable, b: Hashable) -> bool:
        return b in self._adjacency.get(a, ())

    def get_friends(self, node_id: Hashable) -> List[Hashable]:
        return list(self._adjacency.get(node_id, ()))

    def degree(self, node_id: Hashable) -> int:
        return len(self._adjacency.get(node_id, ()))

    @property
    def nodes(self) -> List[Hashable]:
        return list(self._nodes)

    @property
    def edges(self) -> List[Tuple[Hashable, Hashable]]:
        """Each friendship once, as a sorted pair."""
        seen = set()
        for a, friends in self._adjacency.items():
            for b in friends:
                pair = tuple(sorted((a, b), key=str))
                seen.add(pair)
        return sorted(seen, key=str)

    @property
    def asymmetric_links(self) -> List[Tuple[Hashable, Hashable]]:
        """(holder, friend) links recorded on one side only."""
        return sorted(self._asymmetric, key=str)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(f) for f in self._adjacency.values()) // 2

    def density(self) -> float:
        """
        Calculate graph density.

        Density = edges / (nodes * (nodes - 1) / 2)
        for undirected graphs.
        """
        n = self.node_count
        if n < 2:
            return 0.0
        return self.edge_count / (n * (n - 1) / 2)

    def clustering_coefficient(self, node_id: Hashable) -> float:
        """
        Calculate local clustering coefficient for a node.

        Measures how many of a node's friends are friends with each other.
        """
        neighbors = self.get_friends(node_id)
        k = len(neighbors)

        if k < 2:
            return 0.0

        edges_between = 0
        for i, n1 in enumerate(neighbors):
            for n2 in neighbors[i + 1:]:
                if self.are_friends(n1, n2):
                    edges_between += 1

        return edges_between / (k * (k - 1) / 2)

    def average_clustering(self) -> float:
        if self.node_count == 0:
            return 0.0
        return sum(self.clustering_coefficient(n) for n in self._nodes) / self.node_count

    def connected_components(self, min_size: int = 1) -> List[Set[Hashable]]:
        """Groups of nodes linked by chains of friendships."""
        visited: Set[Hashable] = set()
        components = []

        for node in self._nodes:
            if node in visited:
                continue

            component = set()
            queue = [node]

            while queue:
                current = queue.pop(0)
                if current in component:
                    continue

                component.add(current)
                visited.add(current)
                queue.extend(n for n in self._adjacency[current] if n not in component)

            if len(component) >= min_size:
                components.append(component)

        return components

    @classmethod
    def from_engines(cls, engines: Iterable) -> "FriendshipGraph":
        """
        Build a snapshot from ranking engines.

        Every engine becomes a node, including those without friends.
        """
        graph = cls()
        links = set()

        for engine in engines:
            graph.add_node(engine.node_id)
            for friend in engine.friend_ids():
                links.add((engine.node_id, friend))

        for a, b in links:
            graph.add_friendship(a, b)
            if (b, a) not in links:
                graph._asymmetric.add((a, b))

        return graph

    def __repr__(self) -> str:
        return f"FriendshipGraph(nodes={self.node_count}, friendships={self.edge_count})"

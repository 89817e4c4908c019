"""
Convergence analysis for locally held ranks.

No node ever sees the whole friend graph, so each rank is only an
estimate. This module solves the rank equation on the observed graph
and measures how far the nodes' own values are from that fixed point.
"""

from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterable, Tuple
import itertools

from ..network.graph import FriendshipGraph
from ..ranking.store import compute_rank


@dataclass
class ConvergenceMetrics:
    """How close the local ranks are to the global fixed point."""
    node_count: int
    iterations: int
    fixed_point: Dict[Hashable, float] = field(default_factory=dict)
    local_ranks: Dict[Hashable, float] = field(default_factory=dict)
    mean_absolute_error: float = 0.0
    max_absolute_error: float = 0.0
    order_agreement: float = 1.0  # Fraction of node pairs ranked in the same order
    stale_records: int = 0  # Friend records behind the friend's current rank
    total_records: int = 0

    @property
    def residuals(self) -> Dict[Hashable, float]:
        return {
            node: self.local_ranks[node] - self.fixed_point[node]
            for node in self.fixed_point
            if node in self.local_ranks
        }

    @property
    def staleness(self) -> float:
        if self.total_records == 0:
            return 0.0
        return self.stale_records / self.total_records


class ConvergenceAnalyzer:
    """
    Compares engine ranks with the fixed point of the rank equation.

    The fixed point is found by synchronous iteration:

        rank_i = (1 - d) + d * sum(rank_j / degree_j for j in friends(i))
    """

    def __init__(self, damping_factor: float, tolerance: float = 1e-9, max_iterations: int = 1000):
        self.damping_factor = damping_factor
        self.tolerance = tolerance
        self.max_iterations = max_iterations

    def fixed_point(self, graph: FriendshipGraph) -> Tuple[Dict[Hashable, float], int]:
        """Solve the rank equation on a graph. Returns (ranks, iterations used)."""
        d = self.damping_factor
        ranks = {node: 1.0 - d for node in graph.nodes}

        for iteration in range(1, self.max_iterations + 1):
            updated = {}
            for node in graph.nodes:
                sigma = sum(
                    ranks[f] / graph.degree(f)
                    for f in graph.get_friends(node)
                    if graph.degree(f) > 0
                )
                updated[node] = (1 - d) + d * sigma

            delta = max((abs(updated[n] - ranks[n]) for n in ranks), default=0.0)
            ranks = updated
            if delta < self.tolerance:
                return ranks, iteration

        return ranks, self.max_iterations

    def analyze(self, engines: Iterable) -> ConvergenceMetrics:
        """Analyze a set of ranking engines."""
        engines = list(engines)
        graph = FriendshipGraph.from_engines(engines)
        fixed, iterations = self.fixed_point(graph)

        local = {e.node_id: e.get_rank() for e in engines}
        errors = [abs(local[n] - fixed[n]) for n in fixed]

        current = dict(local)
        stale = 0
        total = 0
        for engine in engines:
            for friend, record in engine.friends.items():
                total += 1
                if friend in current and abs(record.remote_rank - current[friend]) > self.tolerance:
                    stale += 1

        return ConvergenceMetrics(
            node_count=len(engines),
            iterations=iterations,
            fixed_point=fixed,
            local_ranks=local,
            mean_absolute_error=sum(errors) / len(errors) if errors else 0.0,
            max_absolute_error=max(errors, default=0.0),
            order_agreement=self.order_agreement(local, fixed),
            stale_records=stale,
            total_records=total,
        )

    def self_consistency(self, engine) -> float:
        """Distance between an engine's rank and the rank its own records imply."""
        return abs(engine.get_rank() - compute_rank(self.damping_factor, engine.friends.values()))

    @staticmethod
    def order_agreement(a: Dict[Hashable, float], b: Dict[Hashable, float]) -> float:
        """
        Fraction of node pairs that two rankings order the same way.

        Pairs tied in either ranking are left out. 1.0 when nothing
        can be compared.
        """
        nodes = [n for n in a if n in b]
        concordant = 0
        compared = 0

        for x, y in itertools.combinations(nodes, 2):
            da = a[x] - a[y]
            db = b[x] - b[y]
            if da == 0 or db == 0:
                continue
            compared += 1
            if (da > 0) == (db > 0):
                concordant += 1

        if compared == 0:
            return 1.0
        return concordant / compared

    def get_convergence_summary(self, metrics: ConvergenceMetrics) -> Dict[str, float]:
        return {
            "node_count": metrics.node_count,
            "fixed_point_iterations": metrics.iterations,
            "mean_absolute_error": metrics.mean_absolute_error,
            "max_absolute_error": metrics.max_absolute_error,
            "order_agreement": metrics.order_agreement,
            "staleness": metrics.staleness,
        }

    def __repr__(self) -> str:
        return f"ConvergenceAnalyzer(damping={self.damping_factor})"

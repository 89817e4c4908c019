"""Analysis module - Rank convergence and run metrics."""

from .convergence import ConvergenceAnalyzer, ConvergenceMetrics
from .metrics import MetricsCollector, SimulationMetrics

__all__ = [
    "ConvergenceAnalyzer",
    "ConvergenceMetrics",
    "MetricsCollector",
    "SimulationMetrics",
]

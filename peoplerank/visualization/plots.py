"""
Plotting utilities for simulation visualization.

Generates visualizations for:
- Rank evolution per node
- Local ranks against the fixed point
- Summary reports
"""

from typing import List, Dict, Hashable, Optional, Any
import json


class SimulationPlotter:
    """
    Creates visualizations for simulation results.

    Note: This module provides data structures suitable for plotting
    with matplotlib or other visualization libraries. The actual
    plotting requires matplotlib to be installed.
    """

    def __init__(self, output_dir: str = "."):
        """Initialize the simulation plotter.

        Args:
            output_dir: Directory path for saving output files. Defaults to
                current directory.
        """
        self.output_dir = output_dir
        self._has_matplotlib = self._check_matplotlib()

    def _check_matplotlib(self) -> bool:
        """Check if matplotlib is available.

        Returns:
            True if matplotlib can be imported, False otherwise.
        """
        try:
            import matplotlib
            return True
        except ImportError:
            return False

    def plot_rank_history(
        self,
        history: Dict[Hashable, List[float]],
        step_minutes: float,
        top_n: int = 10,
        save_path: Optional[str] = None,
    ) -> Optional[Any]:
        """Plot rank over time for the highest-ranked nodes.

        Args:
            history: Rank recorded at the end of every step, per node.
            step_minutes: Length of one step, for the time axis.
            top_n: Number of nodes to draw, by final rank.
            save_path: Optional file path to save the plot image.

        Returns:
            The matplotlib figure if matplotlib is available, otherwise
            returns the data as a dict for external plotting.
        """
        ranked = sorted(
            history.items(),
            key=lambda item: item[1][-1] if item[1] else 0.0,
            reverse=True,
        )[:top_n]

        data = {
            "step_minutes": step_minutes,
            "series": {str(node): ranks for node, ranks in ranked},
        }

        if not self._has_matplotlib:
            return data

        import matplotlib.pyplot as plt

        fig, ax = plt.subplots(figsize=(10, 6))

        for node, ranks in ranked:
            hours = [(i + 1) * step_minutes / 60 for i in range(len(ranks))]
            ax.plot(hours, ranks, linewidth=1.5, label=str(node))

        ax.set_xlabel('Time (hours)')
        ax.set_ylabel('Rank')
        ax.set_title(f'Rank Evolution (top {len(ranked)} nodes)')
        ax.legend(loc='upper left', fontsize='small', ncol=2)
        ax.grid(True, alpha=0.3)

        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches='tight')

        return fig

    def plot_fixed_point_comparison(
        self,
        local_ranks: Dict[Hashable, float],
        fixed_point: Dict[Hashable, float],
        save_path: Optional[str] = None,
    ) -> Optional[Any]:
        """Scatter the locally held ranks against the fixed point.

        Args:
            local_ranks: Rank each node currently holds.
            fixed_point: Rank each node would hold at the fixed point of
                the observed friend graph.
            save_path: Optional file path to save the plot image.

        Returns:
            The matplotlib figure if matplotlib is available, otherwise
            returns the data as a dict for external plotting.
        """
        nodes = sorted((n for n in local_ranks if n in fixed_point), key=str)
        data = {
            "nodes": [str(n) for n in nodes],
            "local": [local_ranks[n] for n in nodes],
            "fixed_point": [fixed_point[n] for n in nodes],
        }

        if not self._has_matplotlib:
            return data

        import matplotlib.pyplot as plt

        fig, ax = plt.subplots(figsize=(7, 7))
        ax.scatter(data["fixed_point"], data["local"], alpha=0.7)

        if nodes:
            lo = min(data["fixed_point"] + data["local"])
            hi = max(data["fixed_point"] + data["local"])
            ax.plot([lo, hi], [lo, hi], 'r--', label='Exact agreement')
            ax.legend()

        ax.set_xlabel('Fixed-point rank')
        ax.set_ylabel('Local rank')
        ax.set_title('Local Ranks vs Fixed Point')
        ax.grid(True, alpha=0.3)

        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches='tight')

        return fig

    def export_plot_data(
        self,
        data: Dict[str, Any],
        filepath: str,
    ) -> None:
        """Export plot data to JSON for external visualization.

        Args:
            data: Dictionary containing plot data to export.
            filepath: Path to the output JSON file.
        """
        with open(filepath, 'w') as f:
            json.dump(data, f, indent=2, default=str)

    def create_summary_report(
        self,
        metrics: Dict[str, Any],
        top_nodes: List[tuple],
        active_nodes: Optional[List[tuple]] = None,
        save_path: Optional[str] = None,
    ) -> str:
        """Create a text summary report of simulation results.

        Args:
            metrics: Dictionary of simulation metrics, as produced by
                `SimulationMetrics.to_dict`.
            top_nodes: (node id, rank) pairs, highest rank first.
            active_nodes: Optional (node id, contact count) pairs, most
                active first.
            save_path: Optional file path to save the text report.

        Returns:
            The formatted report as a string.
        """
        lines = [
            "=" * 60,
            "PEOPLERANK SIMULATION REPORT",
            "=" * 60,
            "",
            "SIMULATION OVERVIEW",
            "-" * 40,
            f"Simulation ID: {metrics.get('simulation_id', 'N/A')}",
            f"Total Steps: {metrics.get('total_steps', 0)}",
            f"Contacts: {metrics.get('total_contacts', 0)}",
            f"Rank Exchanges: {metrics.get('total_exchanges', 0)}",
            f"Promotions: {metrics.get('total_promotions', 0)}",
            "",
            "FRIENDSHIP GRAPH",
            "-" * 40,
            f"Nodes: {metrics.get('node_count', 0)}",
            f"Friendships: {metrics.get('friendship_count', 0)}",
            f"Graph Density: {metrics.get('graph_density', 0):.4f}",
            f"Avg Clustering: {metrics.get('avg_clustering', 0):.4f}",
            "",
            "RANKING",
            "-" * 40,
            f"Damping Factor: {metrics.get('damping_factor', 0):.2f}",
            f"Friend Threshold: {metrics.get('friend_threshold', 0):.1f}s",
            f"Mean Rank: {metrics.get('mean_rank', 0):.4f}",
            f"Rank Range: {metrics.get('min_rank', 0):.4f} - {metrics.get('max_rank', 0):.4f}",
            f"Mean Error vs Fixed Point: {metrics.get('mean_absolute_error', 0):.4f}",
            f"Order Agreement: {metrics.get('order_agreement', 0):.2%}",
            "",
        ]

        if top_nodes:
            lines.append("Top Ranked Nodes:")
            for node_id, rank in top_nodes[:5]:
                lines.append(f"  - {node_id}: {rank:.4f}")

        if active_nodes:
            lines.append("")
            lines.append("Most Active Nodes (contacts):")
            for node_id, contacts in active_nodes[:5]:
                lines.append(f"  - {node_id}: {contacts}")

        lines.extend([
            "",
            "MESSAGE DELIVERY",
            "-" * 40,
            f"Created: {metrics.get('messages_created', 0)}",
            f"Delivered: {metrics.get('messages_delivered', 0)}",
            f"Delivery Ratio: {metrics.get('delivery_ratio', 0):.2%}",
            f"Average Delay: {metrics.get('average_delay', 0) / 60:.1f} min",
            f"Average Hops: {metrics.get('average_hops', 0):.2f}",
            "",
            "=" * 60,
            "END OF REPORT",
            "=" * 60,
        ])

        report = "\n".join(lines)

        if save_path:
            with open(save_path, 'w') as f:
                f.write(report)

        return report

    def __repr__(self) -> str:
        """Return string representation of the plotter.

        Returns:
            String indicating matplotlib availability status.
        """
        return f"SimulationPlotter(matplotlib={'available' if self._has_matplotlib else 'not available'})"

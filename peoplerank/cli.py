"""
Command-line interface for PeopleRank.

Runs a demonstration simulation over a community-mobility contact
model and prints a report of the resulting ranks and deliveries.
"""

import argparse
import logging
import os
import sys

from .errors import ConfigurationError
from .network.graph import FriendshipGraph
from .ranking.config import RankingConfig
from .simulation.dynamics import ContactEventType
from .simulation.engine import SimulationEngine, SimulationConfig
from .simulation.mobility import MobilityConfig
from .analysis.convergence import ConvergenceAnalyzer
from .analysis.metrics import MetricsCollector
from .visualization.plots import SimulationPlotter


def build_config(args) -> SimulationConfig:
    """Turn parsed arguments into a simulation config."""
    return SimulationConfig(
        node_count=args.nodes,
        duration_hours=args.hours,
        time_step_minutes=args.step_minutes,
        mobility=MobilityConfig(community_count=args.communities),
        ranking=RankingConfig(damping_factor=args.damping, friend_threshold=args.threshold),
        messages_per_step=args.messages_per_step,
        seed=args.seed,
    )


def run_demo_simulation(args) -> int:
    """Run a demonstration simulation."""
    print("=" * 60)
    print("PeopleRank - Demo Simulation")
    print("=" * 60)
    print()

    try:
        config = build_config(args)
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    engine = SimulationEngine(config)
    engine.populate()

    print(f"Creating {config.node_count} nodes in {config.mobility.community_count} communities...")
    print(f"  - Damping factor: {config.ranking.damping_factor}")
    print(f"  - Friend threshold: {config.ranking.friend_threshold}s")

    metrics_collector = MetricsCollector()
    step_contacts = [0]

    def on_contact(event):
        metrics_collector.record_contact(event)
        if event.event_type is ContactEventType.UP:
            step_contacts[0] += 1

    def on_step(state):
        metrics_collector.record_step(state, step_contacts[0])
        step_contacts[0] = 0

    engine.on_contact(on_contact)
    engine.on_step(on_step)
    metrics_collector.subscribe(engine.coordinator)

    print(f"\nRunning simulation for {args.hours} hours...")
    state = engine.run()

    print(f"  - Steps completed: {state.step_count}")
    print(f"  - Contacts: {state.contacts}")
    print(f"  - Promotions: {state.promotions}")
    print(f"  - Rank exchanges: {state.exchanges}")

    print("\nAnalyzing results...")
    engines = engine.registry.engines()
    for e in engines:
        e.process_inbox()

    graph = FriendshipGraph.from_engines(engines)
    analyzer = ConvergenceAnalyzer(config.ranking.damping_factor)
    convergence = analyzer.analyze(engines)

    ranks = {e.node_id: e.get_rank() for e in engines}
    top_nodes = sorted(ranks.items(), key=lambda x: x[1], reverse=True)
    if top_nodes:
        leader, leader_rank = top_nodes[0]
        activity = metrics_collector.get_node_activity(leader)
        print(
            f"  - Highest ranked: {leader} ({leader_rank:.4f}, "
            f"{activity['friendships']} friendships, {activity['exchanges']} exchanges)"
        )

    final_metrics = metrics_collector.finalize(
        node_count=graph.node_count,
        friendship_count=graph.edge_count,
        graph_density=graph.density(),
        avg_clustering=graph.average_clustering(),
        damping_factor=config.ranking.damping_factor,
        friend_threshold=config.ranking.friend_threshold,
        ranks=ranks,
        mean_absolute_error=convergence.mean_absolute_error,
        order_agreement=convergence.order_agreement,
        messages_created=engine.carrier.stats.created,
        messages_delivered=engine.carrier.stats.delivered,
        average_delay=engine.carrier.average_delay,
        average_hops=engine.carrier.average_hops,
    )

    plotter = SimulationPlotter(args.output_dir or ".")
    report = plotter.create_summary_report(
        final_metrics.to_dict(),
        top_nodes,
        active_nodes=metrics_collector.get_top_active_nodes(5),
    )
    print("\n" + report)

    if args.output_dir:
        os.makedirs(args.output_dir, exist_ok=True)

        report_path = os.path.join(args.output_dir, "simulation_report.txt")
        with open(report_path, 'w') as f:
            f.write(report)
        print(f"\nReport saved to: {report_path}")

        metrics_path = os.path.join(args.output_dir, "metrics.json")
        with open(metrics_path, 'w') as f:
            f.write(final_metrics.to_json())
        print(f"Metrics saved to: {metrics_path}")

        timeline_path = os.path.join(args.output_dir, "timeline.csv")
        metrics_collector.export_to_csv(timeline_path)

        history = engine.rank_history()
        figure = plotter.plot_rank_history(
            history,
            config.time_step_minutes,
            save_path=os.path.join(args.output_dir, "rank_history.png"),
        )
        if isinstance(figure, dict):
            plotter.export_plot_data(figure, os.path.join(args.output_dir, "rank_history.json"))

        comparison = plotter.plot_fixed_point_comparison(
            convergence.local_ranks,
            convergence.fixed_point,
            save_path=os.path.join(args.output_dir, "fixed_point.png"),
        )
        if isinstance(comparison, dict):
            plotter.export_plot_data(comparison, os.path.join(args.output_dir, "fixed_point.json"))

    return 0


def main():
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        prog="peoplerank",
        description="""
PeopleRank - social-trust ranking for opportunistic networks

Nodes promote frequent contacts to friends, propagate a damped
PageRank-like score over the friend graph at each encounter, and
forward messages towards better-ranked peers.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    demo_parser = subparsers.add_parser(
        "demo",
        help="Run a demonstration simulation",
    )
    demo_parser.add_argument(
        "-n", "--nodes",
        type=int,
        default=30,
        help="Number of nodes (default: 30)",
    )
    demo_parser.add_argument(
        "-c", "--communities",
        type=int,
        default=3,
        help="Number of communities (default: 3)",
    )
    demo_parser.add_argument(
        "-t", "--hours",
        type=float,
        default=24.0,
        help="Simulation duration in hours (default: 24)",
    )
    demo_parser.add_argument(
        "--step-minutes",
        type=float,
        default=10.0,
        help="Length of one simulation step in minutes (default: 10)",
    )
    demo_parser.add_argument(
        "-d", "--damping",
        type=float,
        default=0.5,
        help="Damping factor in (0, 1) (default: 0.5)",
    )
    demo_parser.add_argument(
        "--threshold",
        type=float,
        default=300.0,
        help="Seconds of cumulative contact before friendship (default: 300)",
    )
    demo_parser.add_argument(
        "-m", "--messages-per-step",
        type=int,
        default=1,
        help="Messages created per step (default: 1)",
    )
    demo_parser.add_argument(
        "-s", "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility",
    )
    demo_parser.add_argument(
        "-o", "--output-dir",
        type=str,
        default=None,
        help="Directory for output files",
    )

    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "-v", "--version",
        action="store_true",
        help="Show version information",
    )

    args = parser.parse_args()

    logging.basicConfig(level=args.log_level, format='%(levelname)s: %(name)s: %(message)s')

    if args.version:
        from . import __version__
        print(f"PeopleRank v{__version__}")
        return 0

    if args.command == "demo":
        return run_demo_simulation(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())

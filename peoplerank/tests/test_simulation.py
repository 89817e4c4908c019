"""Tests for simulation and analysis modules."""

import json
import pytest

from peoplerank.analysis.convergence import ConvergenceAnalyzer
from peoplerank.analysis.metrics import MetricsCollector
from peoplerank.network.graph import FriendshipGraph
from peoplerank.ranking.config import RankingConfig
from peoplerank.ranking.coordinator import EncounterCoordinator
from peoplerank.ranking.engine import PeopleRankEngine
from peoplerank.ranking.registry import EngineRegistry
from peoplerank.routing.decision import PeopleRankRouter
from peoplerank.simulation.carrier import MessageCarrier
from peoplerank.simulation.clock import SimClock
from peoplerank.simulation.dynamics import ContactEvent, ContactEventType, ContactScheduler
from peoplerank.simulation.engine import (
    SimulationConfig,
    SimulationEngine,
    SimulationPhase,
    SimulationState,
)
from peoplerank.simulation.mobility import CommunityMobility, MobilityConfig
from peoplerank.visualization.plots import SimulationPlotter


class TestSimClock:
    """Tests for SimClock class."""

    def test_advance(self):
        clock = SimClock()
        clock.advance(2.5)
        assert clock.current() == 2.5

    def test_cannot_go_backwards(self):
        clock = SimClock(10.0)
        with pytest.raises(ValueError):
            clock.set(5.0)
        with pytest.raises(ValueError):
            clock.advance(-1.0)


class TestContactScheduler:
    """Tests for ContactScheduler class."""

    @pytest.fixture
    def scheduler(self):
        return ContactScheduler()

    def test_schedule_contact(self, scheduler):
        up, down = scheduler.schedule_contact("a", "b", start=10.0, duration=5.0)

        assert up.event_type is ContactEventType.UP
        assert down.timestamp == 15.0
        assert scheduler.pending_count == 2

    def test_close_before_open_at_same_time(self, scheduler):
        scheduler.schedule_contact("a", "c", start=15.0, duration=5.0)
        scheduler.schedule_contact("a", "b", start=10.0, duration=5.0)

        events = scheduler.process_events_until(15.0)

        assert [(e.event_type, e.timestamp) for e in events] == [
            (ContactEventType.UP, 10.0),
            (ContactEventType.DOWN, 15.0),
            (ContactEventType.UP, 15.0),
        ]
        assert scheduler.pending_count == 1

    def test_cannot_schedule_in_the_past(self, scheduler):
        scheduler.schedule_contact("a", "b", start=10.0, duration=1.0)
        scheduler.process_events_until(20.0)

        with pytest.raises(ValueError):
            scheduler.schedule_contact("a", "b", start=5.0, duration=1.0)

    def test_pair_statistics(self, scheduler):
        scheduler.schedule_contact("a", "b", start=0.0, duration=2.0)
        scheduler.schedule_contact("b", "a", start=10.0, duration=3.0)
        scheduler.schedule_contact("a", "c", start=20.0, duration=50.0)
        scheduler.process_events_until(30.0)

        stats = scheduler.get_pair_statistics()

        assert stats[frozenset(("a", "b"))] == {"contacts": 2, "total_seconds": 5.0}
        assert frozenset(("a", "c")) not in stats

    def test_events_by_node(self, scheduler):
        scheduler.schedule_contact("a", "b", start=0.0, duration=1.0)
        scheduler.schedule_contact("c", "d", start=0.0, duration=1.0)
        scheduler.process_events_until(5.0)

        assert len(scheduler.get_events_by_node("a")) == 2


class TestCommunityMobility:
    """Tests for CommunityMobility class."""

    NODES = [f"n{i}" for i in range(9)]

    def test_communities_are_balanced(self):
        mobility = CommunityMobility(self.NODES, MobilityConfig(community_count=3), seed=1)
        sizes = [len(mobility.members(c)) for c in range(3)]
        assert sizes == [3, 3, 3]

    def test_seeded_generation_is_repeatable(self):
        runs = []
        for _ in range(2):
            scheduler = ContactScheduler()
            mobility = CommunityMobility(self.NODES, seed=42)
            mobility.generate(scheduler, 0.0, 600.0)
            events = scheduler.process_events_until(10_000.0)
            runs.append([(e.node_a, e.node_b, e.timestamp) for e in events])

        assert runs[0] == runs[1]

    def test_pair_never_overlaps_itself(self):
        config = MobilityConfig(community_count=1, intra_contact_probability=1.0)
        mobility = CommunityMobility(["a", "b"], config, seed=3)
        scheduler = ContactScheduler()

        assert mobility.generate(scheduler, 0.0, 600.0) == 1
        assert mobility.generate(scheduler, 0.0, 600.0) == 0

    def test_no_contacts_with_zero_probability(self):
        config = MobilityConfig(intra_contact_probability=0.0, inter_contact_probability=0.0)
        mobility = CommunityMobility(self.NODES, config, seed=3)
        assert mobility.generate(ContactScheduler(), 0.0, 600.0) == 0


class TestMessageCarrier:
    """Tests for MessageCarrier class."""

    @pytest.fixture
    def network(self):
        registry = EngineRegistry()
        carrier = MessageCarrier()
        for node_id, rank in (("a", 0.5), ("b", 0.8), ("c", 0.6)):
            engine = PeopleRankEngine(node_id)
            engine.store.own_rank = rank
            registry.register(node_id, engine)
            carrier.add_router(PeopleRankRouter(engine, registry))
        return registry, carrier

    def test_relay_then_deliver(self, network):
        registry, carrier = network
        message = carrier.create_message("a", "c", now=0.0)

        carrier.on_contact("a", "b", 10.0)
        assert message in carrier.buffer("b")
        assert message in carrier.buffer("a")

        carrier.on_contact("b", "c", 20.0)

        assert carrier.stats.delivered == 1
        assert message not in carrier.buffer("b")
        record = carrier.deliveries[0]
        assert record.hops == 2
        assert record.delay == pytest.approx(20.0)
        assert carrier.delivery_ratio == 1.0

    def test_lower_ranked_peer_not_used(self, network):
        registry, carrier = network
        registry.lookup("b").store.own_rank = 0.1

        carrier.create_message("a", "c", now=0.0)
        carrier.on_contact("a", "b", 10.0)

        assert carrier.buffer("b") == []
        assert carrier.stats.relayed == 0

    def test_stale_copy_dropped_on_meeting_destination(self, network):
        registry, carrier = network
        carrier.create_message("a", "c", now=0.0)
        carrier.on_contact("a", "b", 10.0)
        carrier.on_contact("b", "c", 20.0)

        carrier.on_contact("a", "c", 30.0)

        assert carrier.buffer("a") == []
        assert carrier.stats.dropped_stale == 1
        assert carrier.stats.delivered == 1

    def test_unknown_nodes_ignored(self, network):
        _, carrier = network
        assert carrier.on_contact("a", "zz", 0.0) == 0


class TestSimulationEngine:
    """Tests for SimulationEngine class."""

    @pytest.fixture
    def config(self):
        return SimulationConfig(
            node_count=6,
            duration_hours=1.0,
            time_step_minutes=10.0,
            mobility=MobilityConfig(community_count=1, intra_contact_probability=0.5),
            ranking=RankingConfig(damping_factor=0.5, friend_threshold=30.0),
            seed=7,
        )

    @pytest.fixture
    def engine(self, config):
        engine = SimulationEngine(config)
        engine.populate()
        return engine

    def test_populate(self, engine):
        assert engine.node_ids == ["n00", "n01", "n02", "n03", "n04", "n05"]
        assert len(engine.registry) == 6

    def test_run_full_simulation(self, engine):
        state = engine.run()

        assert state.phase == SimulationPhase.COMPLETED
        assert state.step_count == 6
        assert state.contacts > 0
        assert state.promotions > 0
        assert all(len(ranks) == 6 for ranks in engine.rank_history().values())

    def test_friendships_are_symmetric(self, engine):
        engine.run()

        graph = FriendshipGraph.from_engines(engine.registry.engines())
        assert graph.asymmetric_links == []
        assert graph.edge_count == engine.state.promotions

    def test_run_steps(self, engine):
        state = engine.run_steps(3)

        assert state.step_count == 3
        assert state.phase == SimulationPhase.RUNNING
        assert engine.clock.current() == pytest.approx(1800.0)

    def test_step_callbacks(self, engine):
        steps = []
        engine.on_step(lambda state: steps.append(state.step_count))
        engine.run_steps(2)

        assert steps == [1, 2]

    def test_incompatible_node_is_tolerated(self, config):
        engine = SimulationEngine(config)
        engine.populate()
        engine.add_node("legacy", router=object())

        state = engine.run_steps(6)

        assert state.step_count == 6
        assert "legacy" not in engine.rank_history()
        for a, b in engine.coordinator.skipped_pairs:
            assert "legacy" in (a, b)

    def test_export_state(self, engine):
        engine.run_steps(1)
        exported = engine.export_state()

        assert exported["step_count"] == 1
        assert exported["node_count"] == 6
        assert exported["phase"] == "running"

    def test_promotion_settles_before_exchange_at_same_time(self):
        config = SimulationConfig(
            duration_hours=1.0,
            mobility=MobilityConfig(intra_contact_probability=0.0, inter_contact_probability=0.0),
            ranking=RankingConfig(damping_factor=0.5, friend_threshold=30.0),
            messages_per_step=0,
            seed=1,
        )
        engine = SimulationEngine(config)
        engine.add_node("a")
        engine.add_node("b")
        # Second contact opens at the instant the first one closes
        engine.scheduler.schedule_contact("a", "b", start=0.0, duration=40.0)
        engine.scheduler.schedule_contact("b", "a", start=40.0, duration=10.0)

        state = engine.run_steps(1)

        assert state.promotions == 1
        assert state.exchanges == 1
        assert engine.get_engine("a").get_rank() == pytest.approx(0.75)
        assert engine.get_engine("b").get_rank() == pytest.approx(0.75)


class TestConvergenceAnalyzer:
    """Tests for ConvergenceAnalyzer class."""

    @pytest.fixture
    def analyzer(self):
        return ConvergenceAnalyzer(damping_factor=0.5)

    def test_fixed_point_pair(self, analyzer):
        graph = FriendshipGraph()
        graph.add_friendship("a", "b")

        ranks, _ = analyzer.fixed_point(graph)

        assert ranks["a"] == pytest.approx(1.0)
        assert ranks["b"] == pytest.approx(1.0)

    def test_fixed_point_star(self, analyzer):
        graph = FriendshipGraph()
        graph.add_friendship("hub", "a")
        graph.add_friendship("hub", "b")

        ranks, _ = analyzer.fixed_point(graph)

        assert ranks["hub"] == pytest.approx(4 / 3)
        assert ranks["a"] == pytest.approx(5 / 6)
        assert sum(ranks.values()) == pytest.approx(3.0)

    def test_isolated_node_has_baseline_rank(self, analyzer):
        graph = FriendshipGraph()
        graph.add_node("alone")

        ranks, iterations = analyzer.fixed_point(graph)

        assert ranks["alone"] == pytest.approx(0.5)
        assert iterations == 1

    def test_order_agreement(self):
        a = {"x": 1.0, "y": 2.0, "z": 3.0}
        assert ConvergenceAnalyzer.order_agreement(a, a) == 1.0
        assert ConvergenceAnalyzer.order_agreement(a, {"x": 3.0, "y": 2.0, "z": 1.0}) == 0.0

    def test_analyze_converged_pair(self, analyzer):
        registry = EngineRegistry()
        config = RankingConfig(damping_factor=0.5, friend_threshold=1.0)
        for node_id in ("a", "b"):
            registry.register(node_id, PeopleRankEngine(node_id, config))
        coordinator = EncounterCoordinator(registry)

        for i in range(60):
            coordinator.on_contact_open("a", "b", i * 10.0)
            coordinator.on_contact_close("a", "b", i * 10.0 + 2)
        for engine in registry.engines():
            engine.process_inbox()

        metrics = analyzer.analyze(registry.engines())

        assert metrics.mean_absolute_error < 1e-6
        assert metrics.staleness == 0.0
        assert analyzer.self_consistency(registry.lookup("a")) < 1e-6


class TestMetricsCollector:
    """Tests for MetricsCollector class."""

    def test_timeline_records_step_deltas(self):
        collector = MetricsCollector(simulation_id="test")
        collector.record_step(SimulationState(step_count=1, contacts=4, exchanges=2, promotions=1), 4)
        collector.record_step(SimulationState(step_count=2, contacts=9, exchanges=7, promotions=1), 5)

        timeline = collector.get_timeline()

        assert [t["exchanges"] for t in timeline] == [2, 5]
        assert [t["promotions"] for t in timeline] == [1, 0]

    def test_finalize_to_json(self):
        collector = MetricsCollector(simulation_id="test")
        collector.record_step(SimulationState(step_count=1, contacts=3), 3)

        metrics = collector.finalize(
            node_count=3,
            friendship_count=1,
            graph_density=1 / 3,
            avg_clustering=0.0,
            damping_factor=0.5,
            friend_threshold=3.0,
            ranks={"a": 0.5, "b": 1.0, "c": 1.5},
            mean_absolute_error=0.1,
            order_agreement=1.0,
            messages_created=4,
            messages_delivered=1,
            average_delay=60.0,
            average_hops=2.0,
        )

        data = json.loads(metrics.to_json())
        assert data["simulation_id"] == "test"
        assert data["mean_rank"] == pytest.approx(1.0)
        assert data["delivery_ratio"] == pytest.approx(0.25)
        assert data["total_contacts"] == 3

    def test_coordinator_hooks_feed_node_activity(self):
        registry = EngineRegistry()
        config = RankingConfig(damping_factor=0.5, friend_threshold=3.0)
        for node_id in ("a", "b", "c"):
            registry.register(node_id, PeopleRankEngine(node_id, config))
        coordinator = EncounterCoordinator(registry)
        collector = MetricsCollector(simulation_id="test")
        collector.subscribe(coordinator)

        coordinator.on_contact_open("a", "b", 0.0)
        coordinator.on_contact_close("a", "b", 5.0)
        coordinator.on_contact_open("b", "a", 10.0)

        assert collector.get_node_activity("a") == {"contacts": 0, "exchanges": 1, "friendships": 1}
        assert collector.get_node_activity("b")["exchanges"] == 1
        assert collector.get_node_activity("c") == {"contacts": 0, "exchanges": 0, "friendships": 0}

    def test_top_active_nodes(self):
        collector = MetricsCollector(simulation_id="test")
        for a, b in (("a", "b"), ("a", "c"), ("a", "b")):
            collector.record_contact(ContactEvent(0.0, ContactEventType.UP, a, b))
        collector.record_contact(ContactEvent(1.0, ContactEventType.DOWN, "a", "b"))

        assert collector.get_top_active_nodes(2) == [("a", 3), ("b", 2)]
        assert collector.get_node_activity("c")["contacts"] == 1


class TestSimulationPlotter:
    """Tests for SimulationPlotter class."""

    def test_summary_report(self):
        plotter = SimulationPlotter()
        report = plotter.create_summary_report(
            {"simulation_id": "abc", "total_steps": 6, "damping_factor": 0.5},
            [("n01", 1.25), ("n02", 0.75)],
        )

        assert "PEOPLERANK SIMULATION REPORT" in report
        assert "n01: 1.2500" in report

    def test_plot_data_without_matplotlib(self):
        plotter = SimulationPlotter()
        plotter._has_matplotlib = False

        data = plotter.plot_rank_history({"a": [0.5, 0.75], "b": [0.5, 0.6]}, 10.0, top_n=1)

        assert data["series"] == {"a": [0.5, 0.75]}

    def test_summary_report_lists_active_nodes(self):
        report = SimulationPlotter().create_summary_report(
            {"simulation_id": "abc"},
            [("n01", 1.25)],
            active_nodes=[("n03", 17)],
        )

        assert "Most Active Nodes (contacts):" in report
        assert "n03: 17" in report

    def test_fixed_point_comparison_data_without_matplotlib(self):
        plotter = SimulationPlotter()
        plotter._has_matplotlib = False

        data = plotter.plot_fixed_point_comparison(
            {"b": 0.9, "a": 0.7, "lonely": 0.5},
            {"a": 0.75, "b": 1.0},
        )

        assert data == {"nodes": ["a", "b"], "local": [0.7, 0.9], "fixed_point": [0.75, 1.0]}

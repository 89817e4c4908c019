"""Tests for forwarding decisions."""

import pytest

from peoplerank.errors import UnknownNodeError
from peoplerank.ranking.coordinator import EncounterCoordinator
from peoplerank.ranking.engine import PeopleRankEngine
from peoplerank.ranking.registry import EngineRegistry
from peoplerank.routing.decision import (
    Message,
    PeopleRankRouter,
    is_final_destination,
    should_forward,
)


class TestShouldForward:
    """Tests for the pure decision rule."""

    @pytest.fixture
    def message(self):
        return Message(source="a", destination="d")

    def test_destination_always_forwarded(self, message):
        assert should_forward(message, "d", this_rank=5.0, peer_rank=0.1)

    def test_higher_rank_forwarded(self, message):
        assert should_forward(message, "b", this_rank=0.5, peer_rank=0.9)

    def test_tie_forwarded(self, message):
        assert should_forward(message, "b", this_rank=0.75, peer_rank=0.75)

    def test_lower_rank_not_forwarded(self, message):
        assert not should_forward(message, "b", this_rank=0.9, peer_rank=0.5)

    def test_is_final_destination(self, message):
        assert is_final_destination(message, "d")
        assert not is_final_destination(message, "a")


class TestMessage:
    """Tests for Message class."""

    def test_unique_ids(self):
        assert Message("a", "b").message_id != Message("a", "b").message_id


class TestPeopleRankRouter:
    """Tests for PeopleRankRouter class."""

    @pytest.fixture
    def registry(self):
        registry = EngineRegistry()
        for node_id, rank in (("a", 0.8), ("b", 0.4), ("c", 1.2), ("d", 0.1)):
            engine = PeopleRankEngine(node_id)
            engine.store.own_rank = rank
            registry.register(node_id, engine)
        return registry

    @pytest.fixture
    def router(self, registry):
        return PeopleRankRouter(registry.lookup("a"), registry)

    def test_forward_uses_live_peer_rank(self, router, registry):
        message = Message(source="a", destination="d")

        assert router.should_forward(message, "c")
        assert not router.should_forward(message, "b")

        registry.lookup("b").store.own_rank = 0.8
        assert router.should_forward(message, "b")

    def test_forward_to_destination_regardless_of_rank(self, router):
        assert router.should_forward(Message(source="a", destination="d"), "d")

    def test_accepts_every_new_message(self, router):
        assert router.accepts_new_message(Message(source="a", destination="b"))

    def test_final_destination(self, router):
        assert router.is_final_destination(Message(source="b", destination="a"))
        assert not router.is_final_destination(Message(source="a", destination="b"))
        assert router.is_final_destination(Message(source="a", destination="b"), "b")

    def test_custody_only_for_others(self, router):
        assert router.should_save_received_message(Message(source="b", destination="c"))
        assert not router.should_save_received_message(Message(source="b", destination="a"))

    def test_copy_released_after_reaching_destination(self, router):
        message = Message(source="a", destination="c")
        assert not router.should_retain_copy_after_forward(message, "c")
        assert router.should_retain_copy_after_forward(message, "b")

    def test_stale_copy_discarded_when_destination_reports(self, router):
        message = Message(source="a", destination="c")
        assert router.should_discard_stale_local_copy(message, "c")
        assert not router.should_discard_stale_local_copy(message, "b")

    def test_peer_without_ranking_engine_not_used_as_relay(self, router, registry):
        registry.register("x", object())
        coordinator = EncounterCoordinator(registry)
        coordinator.on_contact_open("a", "x", 0.0)
        assert coordinator.is_skipped("a", "x")

        assert not router.should_forward(Message(source="a", destination="d"), "x")
        assert router.should_forward(Message(source="a", destination="x"), "x")

    def test_unknown_peer_still_raises(self, router):
        with pytest.raises(UnknownNodeError):
            router.should_forward(Message(source="a", destination="d"), "ghost")

"""
Registry mapping node ids to their routers.

Peers are only ever reached through the `RankingEngine` interface
handed out by `lookup`; a node whose router is something else is
reported as incompatible instead of being cast.
"""

from typing import Any, Dict, Hashable, Iterator, List
import threading

from ..errors import IncompatibleEngineError, UnknownNodeError
from .engine import RankingEngine


class EngineRegistry:
    """Thread-safe lookup service from node id to ranking engine."""

    def __init__(self):
        self._routers: Dict[Hashable, Any] = {}
        self._lock = threading.Lock()

    def register(self, node_id: Hashable, router: Any) -> None:
        """
        Register the router for a node.

        Any object may be registered; only `RankingEngine` instances
        take part in ranking.
        """
        with self._lock:
            self._routers[node_id] = router
        if isinstance(router, RankingEngine) and hasattr(router, "attach"):
            router.attach(self)

    def lookup(self, node_id: Hashable) -> RankingEngine:
        """Return the ranking engine of a node."""
        with self._lock:
            try:
                router = self._routers[node_id]
            except KeyError:
                raise UnknownNodeError(node_id) from None

        if not isinstance(router, RankingEngine):
            raise IncompatibleEngineError(node_id, router)
        return router

    def is_compatible(self, node_id: Hashable) -> bool:
        with self._lock:
            return isinstance(self._routers.get(node_id), RankingEngine)

    def engines(self) -> List[RankingEngine]:
        """All registered ranking engines, in registration order."""
        with self._lock:
            return [r for r in self._routers.values() if isinstance(r, RankingEngine)]

    @property
    def node_ids(self) -> List[Hashable]:
        with self._lock:
            return list(self._routers)

    def __contains__(self, node_id: Hashable) -> bool:
        with self._lock:
            return node_id in self._routers

    def __len__(self) -> int:
        with self._lock:
            return len(self._routers)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self.node_ids)

    def __repr__(self) -> str:
        return f"EngineRegistry(nodes={len(self)})"

"""Exception hierarchy for the ranking engine."""


class PeopleRankError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(PeopleRankError, ValueError):
    """Invalid damping factor, threshold or settings value."""


class UnknownNodeError(PeopleRankError, KeyError):
    """A node id was looked up that was never registered."""

    def __init__(self, node_id):
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self) -> str:
        return f"no engine registered for node {self.node_id!r}"


class IncompatibleEngineError(PeopleRankError, TypeError):
    """The router registered for a node is not a ranking engine."""

    def __init__(self, node_id, router):
        super().__init__(node_id, router)
        self.node_id = node_id
        self.router = router

    def __str__(self) -> str:
        return (
            f"router for node {self.node_id!r} is "
            f"{type(self.router).__name__}, not a ranking engine"
        )

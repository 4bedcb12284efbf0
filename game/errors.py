"""
Error taxonomy for the procurement systems.

Business outcomes (a search that fails, a consumer that does not meet the
discovery prerequisites) are result values, not exceptions.
"""


class ProcurementError(Exception):
    """Base class for procurement errors."""


class ConfigurationError(ProcurementError):
    """Unknown tier / quality / inspection id. Programmer error; not retried."""


class InsufficientFunds(ProcurementError):
    """The ledger refused a charge."""

    def __init__(self, consumer_id: int, amount: int):
        super().__init__(f"consumer {consumer_id} cannot afford {amount}")
        self.consumer_id = consumer_id
        self.amount = amount


class NotFound(ProcurementError):
    """Operation on an unknown search or listing."""


class InvalidState(ProcurementError):
    """Operation on a search or listing in the wrong state."""


class SearchLimitReached(InvalidState):
    """Consumer already has the maximum number of active searches."""


class CorruptRecord(ProcurementError):
    """A persisted entry is missing its identity; the loader skips it."""


class SpawnFailure(ProcurementError):
    """The acquirer could not materialize the item; funds were refunded."""

"""
Interfaces for the systems the procurement core talks to but does not own.
"""
from abc import ABC, abstractmethod
from typing import Iterable


class Ledger(ABC):
    """Money in and out of a consumer's account."""

    @abstractmethod
    def charge(self, consumer_id: int, amount: int) -> bool:
        """
        Take `amount` from the consumer.

        Returns:
            True if charged, False if the consumer cannot afford it (nothing changes).
        """
        pass

    @abstractmethod
    def credit(self, consumer_id: int, amount: int) -> None:
        """Give `amount` back to the consumer (refunds)."""
        pass


class RatingProvider(ABC):
    """Credit rating source (0-850 style score)."""

    @abstractmethod
    def get_score(self, consumer_id: int) -> float:
        pass


class Acquirer(ABC):
    """Turns a purchased catalog key into an owned object in the world."""

    @abstractmethod
    def materialize(self, catalog_key: str, consumer_id: int) -> bool:
        """
        Returns True on success. Must be safe to retry; the caller refunds on False.
        """
        pass


class FleetProbe(ABC):
    """Read-only view of a consumer's owned equipment."""

    @abstractmethod
    def reliability_ceilings(self, consumer_id: int) -> Iterable[float]:
        """Max reliability ceiling (0-1) of every owned item."""
        pass

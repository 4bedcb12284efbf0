"""
Read-only snapshots handed to whoever presents procurement state.

Snapshots are built on demand from the authoritative records and carry no
references back into the scheduler or the gate.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from game.sim.timebase import format_duration
from game.systems.tier_catalog import QUALITY_TIERS, SEARCH_TIERS


@dataclass(slots=True)
class SearchStatusSnapshot:
    """
    A UI-facing view of a search.

    Deterministic-friendly: no wall-clock, no RNG. Never exposes the frozen
    outcome of an active search.
    """

    search_id: str
    item_name: str
    tier_name: str
    quality_name: str
    status: str
    cost: int
    remaining: str

    @classmethod
    def from_record(cls, record) -> "SearchStatusSnapshot":
        tier = SEARCH_TIERS.get(record.tier_id)
        quality = QUALITY_TIERS.get(record.quality_id)
        return cls(
            search_id=str(record.search_id),
            item_name=str(record.item_name),
            tier_name=tier.name if tier else "Unknown",
            quality_name=quality.name if quality else "Unknown",
            status=str(record.status.value),
            cost=int(record.cost),
            remaining=format_duration(record.ttl),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class DiscoveryStatusSnapshot:
    discovered: bool
    purchased: bool
    opportunity_active: bool
    remaining_days: int
    eligible_transactions: int
    price: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class PrerequisiteSnapshot:
    """Per-prerequisite progress for display (cached on the gate state)."""

    usage_count: int
    usage_required: int
    credit_score: float
    credit_required: int
    has_degraded: bool

    @property
    def usage_met(self) -> bool:
        return self.usage_count >= self.usage_required

    @property
    def credit_met(self) -> bool:
        return self.credit_score >= self.credit_required

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["usage_met"] = self.usage_met
        d["credit_met"] = self.credit_met
        d["ceiling_met"] = self.has_degraded
        return d

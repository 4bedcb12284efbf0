"""
A single in-flight used-item search.

The outcome is rolled once in `SearchRecord.create` and frozen. Time only ever
decrements the ttl/tts countdowns; nothing is re-rolled on advance, save/load
or replication.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from game.entities.config_codec import configs_from_attrs, configs_to_attrs, read_configs, write_configs
from game.errors import CorruptRecord
from game.net.wire import WireReader, WireWriter
from game.sim.timebase import format_duration
from game.systems import outcome as outcome_resolver
from game.systems.tier_catalog import DEFAULT_QUALITY_ID, get_quality, get_tier


class SearchStatus(str, Enum):
    ACTIVE = "active"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"  # listing purchased


class Completion(str, Enum):
    NONE = "none"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(slots=True)
class SearchRecord:
    search_id: str
    consumer_id: int
    catalog_key: str
    item_name: str
    base_price: float
    tier_id: str
    quality_id: str = DEFAULT_QUALITY_ID
    requested_configs: dict[str, int] = field(default_factory=dict)

    # Frozen at creation.
    cost: int = 0
    ttl: int = 0
    tts: int = 0
    credit_modifier: float = 0.0
    succeeds: bool = False
    planned_condition: float = 0.0
    planned_price: int = 0
    planned_configs: dict[str, Optional[int]] = field(default_factory=dict)

    status: SearchStatus = SearchStatus.ACTIVE

    # Populated only when success is committed.
    found_condition: float = 0.0
    found_price: int = 0
    found_configs: dict[str, Optional[int]] = field(default_factory=dict)

    created_at: int = 0

    @classmethod
    def create(
        cls,
        consumer_id: int,
        catalog_key: str,
        item_name: str,
        base_price: float,
        tier_id: str,
        quality_id: str,
        requested_configs: Optional[Mapping[str, int]],
        credit_modifier: float,
        rng: random.Random,
        *,
        search_id: str = "",
        created_at: int = 0,
    ) -> "SearchRecord":
        tier = get_tier(tier_id)
        quality = get_quality(quality_id)
        requested = {str(k): int(v) for k, v in (requested_configs or {}).items()}
        out = outcome_resolver.resolve(tier, quality, base_price, credit_modifier, rng, requested)
        return cls(
            search_id=str(search_id),
            consumer_id=int(consumer_id),
            catalog_key=str(catalog_key),
            item_name=str(item_name),
            base_price=float(base_price),
            tier_id=tier.tier_id,
            quality_id=quality.quality_id,
            requested_configs=requested,
            cost=out.cost,
            ttl=out.duration,
            tts=out.tts,
            credit_modifier=float(credit_modifier),
            succeeds=out.succeeds,
            planned_condition=out.condition,
            planned_price=out.price,
            planned_configs=dict(out.matched_configs),
            created_at=int(created_at),
        )

    @property
    def is_active(self) -> bool:
        return self.status == SearchStatus.ACTIVE

    def advance(self, delta: int) -> None:
        """Decrement both countdowns. No clamping; callers inspect the sign."""
        self.ttl -= int(delta)
        self.tts -= int(delta)

    def check_completion(self) -> Completion:
        if self.status != SearchStatus.ACTIVE:
            return Completion.NONE
        if self.tts <= 0:
            return Completion.SUCCESS
        if self.ttl <= 0:
            return Completion.FAILED
        return Completion.NONE

    def mark_success(self) -> None:
        self.status = SearchStatus.SUCCESS
        self.found_condition = self.planned_condition
        self.found_price = self.planned_price
        self.found_configs = dict(self.planned_configs)

    def mark_failed(self) -> None:
        self.status = SearchStatus.FAILED
        self.found_condition = 0.0
        self.found_price = 0
        self.found_configs = {}

    def mark_completed(self) -> None:
        self.status = SearchStatus.COMPLETED

    def cancel(self) -> None:
        # Fee is sunk; nothing to refund.
        self.status = SearchStatus.CANCELLED

    def remaining_time_label(self) -> str:
        return format_duration(self.ttl)

    # -----------------------------
    # Durable attribute form
    # -----------------------------

    def to_attrs(self) -> dict[str, Any]:
        return {
            "id": self.search_id,
            "consumer_id": self.consumer_id,
            "catalog_key": self.catalog_key,
            "item_name": self.item_name,
            "base_price": self.base_price,
            "tier_id": self.tier_id,
            "quality_id": self.quality_id,
            "cost": self.cost,
            "ttl": self.ttl,
            "tts": self.tts,
            "credit_modifier": self.credit_modifier,
            "succeeds": self.succeeds,
            "planned_condition": self.planned_condition,
            "planned_price": self.planned_price,
            "status": self.status.value,
            "found_condition": self.found_condition,
            "found_price": self.found_price,
            "created_at": self.created_at,
            "requested_configs": [{"id": k, "index": v} for k, v in sorted(self.requested_configs.items())],
            "planned_configs": configs_to_attrs(self.planned_configs),
            "found_configs": configs_to_attrs(self.found_configs),
        }

    @classmethod
    def from_attrs(cls, d: Mapping[str, Any]) -> "SearchRecord":
        if not isinstance(d, Mapping):
            raise CorruptRecord(f"search entry is not a mapping: {d!r}")
        search_id = d.get("id")
        if not search_id:
            raise CorruptRecord("search entry has no id")
        try:
            return cls(
                search_id=str(search_id),
                consumer_id=int(d.get("consumer_id") or 0),
                catalog_key=str(d.get("catalog_key") or ""),
                item_name=str(d.get("item_name") or ""),
                base_price=float(d.get("base_price") or 0.0),
                tier_id=str(d.get("tier_id") or "local"),
                quality_id=str(d.get("quality_id") or DEFAULT_QUALITY_ID),
                requested_configs={str(c["id"]): int(c["index"]) for c in (d.get("requested_configs") or []) if c.get("id")},
                cost=int(d.get("cost") or 0),
                ttl=int(d.get("ttl") or 0),
                tts=int(d.get("tts") or 0),
                credit_modifier=float(d.get("credit_modifier") or 0.0),
                succeeds=bool(d.get("succeeds", False)),
                planned_condition=float(d.get("planned_condition") or 0.0),
                planned_price=int(d.get("planned_price") or 0),
                planned_configs=configs_from_attrs(d.get("planned_configs")),
                status=SearchStatus(d.get("status") or SearchStatus.ACTIVE.value),
                found_condition=float(d.get("found_condition") or 0.0),
                found_price=int(d.get("found_price") or 0),
                found_configs=configs_from_attrs(d.get("found_configs")),
                created_at=int(d.get("created_at") or 0),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CorruptRecord(f"search {search_id}: {e}") from e

    # -----------------------------
    # Replication (order matters)
    # -----------------------------

    def write_stream(self, w: WireWriter) -> None:
        w.write_str(self.search_id)
        w.write_int(self.consumer_id)
        w.write_str(self.catalog_key)
        w.write_str(self.item_name)
        w.write_float(self.base_price)
        w.write_str(self.tier_id)
        w.write_str(self.quality_id)
        w.write_int(self.cost)
        w.write_int(self.ttl)
        w.write_int(self.tts)
        w.write_float(self.credit_modifier)
        w.write_bool(self.succeeds)
        w.write_float(self.planned_condition)
        w.write_int(self.planned_price)
        w.write_str(self.status.value)
        w.write_float(self.found_condition)
        w.write_int(self.found_price)
        w.write_int(self.created_at)
        write_configs(w, self.requested_configs)
        write_configs(w, self.planned_configs)
        write_configs(w, self.found_configs)

    @classmethod
    def read_stream(cls, r: WireReader) -> "SearchRecord":
        rec = cls(
            search_id=r.read_str(),
            consumer_id=r.read_int(),
            catalog_key=r.read_str(),
            item_name=r.read_str(),
            base_price=r.read_float(),
            tier_id=r.read_str(),
            quality_id=r.read_str(),
        )
        rec.cost = r.read_int()
        rec.ttl = r.read_int()
        rec.tts = r.read_int()
        rec.credit_modifier = r.read_float()
        rec.succeeds = r.read_bool()
        rec.planned_condition = r.read_float()
        rec.planned_price = r.read_int()
        rec.status = SearchStatus(r.read_str())
        rec.found_condition = r.read_float()
        rec.found_price = r.read_int()
        rec.created_at = r.read_int()
        rec.requested_configs = {k: int(v) for k, v in read_configs(r).items()}
        rec.planned_configs = read_configs(r)
        rec.found_configs = read_configs(r)
        return rec

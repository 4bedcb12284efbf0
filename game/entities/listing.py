"""
A purchasable result of a successful search.

Listings live apart from their search record: the record frees its active
slot only when the listing is purchased, declined or expires.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from config import LISTING_EXPIRY_HOURS
from game.errors import CorruptRecord
from game.net.wire import WireReader, WireWriter
from game.entities.config_codec import configs_from_attrs, configs_to_attrs, read_configs, write_configs


class ListingStatus(str, Enum):
    AVAILABLE = "available"
    PURCHASED = "purchased"
    EXPIRED = "expired"
    DECLINED = "declined"


class InspectionState(str, Enum):
    NONE = "none"
    PENDING = "pending"
    COMPLETE = "complete"


@dataclass(slots=True)
class Listing:
    listing_id: str
    consumer_id: int
    search_id: str
    catalog_key: str
    item_name: str
    condition: float
    price: int
    configs: dict[str, Optional[int]] = field(default_factory=dict)
    expires_in: int = LISTING_EXPIRY_HOURS
    status: ListingStatus = ListingStatus.AVAILABLE
    listed_day: int = 0

    inspection_state: InspectionState = InspectionState.NONE
    inspection_tier: str = ""
    inspection_completes_at: int = 0
    inspection_cost: int = 0

    @property
    def is_available(self) -> bool:
        return self.status == ListingStatus.AVAILABLE

    @property
    def on_hold(self) -> bool:
        """Listings under inspection do not expire."""
        return self.inspection_state == InspectionState.PENDING

    def age(self, hours: int) -> bool:
        """
        Count the expiry down. Returns True if the listing expired on this step.
        """
        if not self.is_available or self.on_hold:
            return False
        self.expires_in -= int(hours)
        if self.expires_in <= 0:
            self.status = ListingStatus.EXPIRED
            return True
        return False

    def begin_inspection(self, tier_id: str, completes_at: int, cost: int) -> None:
        self.inspection_state = InspectionState.PENDING
        self.inspection_tier = str(tier_id)
        self.inspection_completes_at = int(completes_at)
        self.inspection_cost = int(cost)

    def inspection_due(self, now_hours: int) -> bool:
        return self.on_hold and int(now_hours) >= self.inspection_completes_at

    def to_attrs(self) -> dict[str, Any]:
        return {
            "id": self.listing_id,
            "consumer_id": self.consumer_id,
            "search_id": self.search_id,
            "catalog_key": self.catalog_key,
            "item_name": self.item_name,
            "condition": self.condition,
            "price": self.price,
            "expires_in": self.expires_in,
            "status": self.status.value,
            "listed_day": self.listed_day,
            "inspection_state": self.inspection_state.value,
            "inspection_tier": self.inspection_tier,
            "inspection_completes_at": self.inspection_completes_at,
            "inspection_cost": self.inspection_cost,
            "configs": configs_to_attrs(self.configs),
        }

    @classmethod
    def from_attrs(cls, d: Mapping[str, Any]) -> "Listing":
        if not isinstance(d, Mapping):
            raise CorruptRecord(f"listing entry is not a mapping: {d!r}")
        listing_id = d.get("id")
        if not listing_id:
            raise CorruptRecord("listing entry has no id")
        try:
            return cls(
                listing_id=str(listing_id),
                consumer_id=int(d.get("consumer_id") or 0),
                search_id=str(d.get("search_id") or ""),
                catalog_key=str(d.get("catalog_key") or ""),
                item_name=str(d.get("item_name") or ""),
                condition=float(d.get("condition") or 0.0),
                price=int(d.get("price") or 0),
                configs=configs_from_attrs(d.get("configs")),
                expires_in=int(d.get("expires_in", LISTING_EXPIRY_HOURS)),
                status=ListingStatus(d.get("status") or ListingStatus.AVAILABLE.value),
                listed_day=int(d.get("listed_day") or 0),
                inspection_state=InspectionState(d.get("inspection_state") or InspectionState.NONE.value),
                inspection_tier=str(d.get("inspection_tier") or ""),
                inspection_completes_at=int(d.get("inspection_completes_at") or 0),
                inspection_cost=int(d.get("inspection_cost") or 0),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CorruptRecord(f"listing {listing_id}: {e}") from e

    def write_stream(self, w: WireWriter) -> None:
        w.write_str(self.listing_id)
        w.write_int(self.consumer_id)
        w.write_str(self.search_id)
        w.write_str(self.catalog_key)
        w.write_str(self.item_name)
        w.write_float(self.condition)
        w.write_int(self.price)
        w.write_int(self.expires_in)
        w.write_str(self.status.value)
        w.write_int(self.listed_day)
        w.write_str(self.inspection_state.value)
        w.write_str(self.inspection_tier)
        w.write_int(self.inspection_completes_at)
        w.write_int(self.inspection_cost)
        write_configs(w, self.configs)

    @classmethod
    def read_stream(cls, r: WireReader) -> "Listing":
        listing = cls(
            listing_id=r.read_str(),
            consumer_id=r.read_int(),
            search_id=r.read_str(),
            catalog_key=r.read_str(),
            item_name=r.read_str(),
            condition=r.read_float(),
            price=r.read_int(),
        )
        listing.expires_in = r.read_int()
        listing.status = ListingStatus(r.read_str())
        listing.listed_day = r.read_int()
        listing.inspection_state = InspectionState(r.read_str())
        listing.inspection_tier = r.read_str()
        listing.inspection_completes_at = r.read_int()
        listing.inspection_cost = r.read_int()
        listing.configs = read_configs(r)
        return listing

"""
Market engine - wires the procurement systems together and drives them from one clock.
"""
from typing import Optional

from config import SIM_SEED
from game.net.wire import WireReader, WireWriter
from game.persistence.state_store import MarketStateStore
from game.sim.determinism import set_sim_seed
from game.sim.log import info_log
from game.sim.timebase import SimTime
from game.systems.collaborators import Acquirer, FleetProbe, Ledger, RatingProvider
from game.systems.discovery_gate import AcceptResult, DiscoveryGate, DiscoveryState
from game.systems.economy import EconomySystem
from game.systems.notices import NoticeBoard
from game.systems.search_scheduler import SearchScheduler, read_consumer_snapshot

_TAG = "engine"

# Searches at this tier (and purchases they lead to) count towards discovery.
QUALIFYING_TIER = "national"


class MarketEngine:
    """Authoritative node: owns the scheduler, the discovery gate and the notice board."""

    def __init__(
        self,
        ledger: Optional[Ledger] = None,
        *,
        rating: Optional[RatingProvider] = None,
        acquirer: Optional[Acquirer] = None,
        fleet: Optional[FleetProbe] = None,
        seed: Optional[int] = SIM_SEED,
    ):
        # Seed before any system grabs its RNG stream.
        if seed is not None:
            set_sim_seed(seed)

        self.ledger = ledger if ledger is not None else EconomySystem()
        self.notices = NoticeBoard()
        self.scheduler = SearchScheduler(
            self.ledger,
            rating=rating,
            acquirer=acquirer,
            notices=self.notices,
        )
        self.gate = DiscoveryGate(
            self.ledger,
            rating=rating,
            acquirer=acquirer,
            fleet=fleet,
            notices=self.notices,
        )
        self.now = SimTime()

    # -----------------------------
    # Consumer actions
    # -----------------------------

    def submit_search(
        self,
        consumer_id: int,
        catalog_key: str,
        item_name: str,
        base_price: float,
        tier_id: str,
        quality_id: str = "any",
        requested_configs=None,
    ):
        record = self.scheduler.submit(
            consumer_id,
            catalog_key,
            item_name,
            base_price,
            tier_id,
            quality_id,
            requested_configs,
            now=self.now,
        )
        if record.tier_id == QUALIFYING_TIER:
            self.gate.on_qualifying_event(consumer_id, "search", self.now)
        return record

    def cancel_search(self, search_id: str):
        return self.scheduler.cancel(search_id)

    def purchase_listing(self, consumer_id: int, listing_id: str):
        tier_id = None
        for listing in self.scheduler.listings_for(consumer_id):
            if listing.listing_id == listing_id:
                record = self.scheduler.get(listing.search_id)
                tier_id = record.tier_id if record is not None else None
                break
        listing = self.scheduler.purchase_listing(consumer_id, listing_id)
        if tier_id == QUALIFYING_TIER:
            self.gate.on_qualifying_event(consumer_id, "purchase", self.now)
        return listing

    def decline_listing(self, consumer_id: int, listing_id: str):
        return self.scheduler.decline_listing(consumer_id, listing_id)

    def request_inspection(self, consumer_id: int, listing_id: str, tier_id: str):
        return self.scheduler.request_inspection(consumer_id, listing_id, tier_id, now=self.now)

    def record_diagnostic(self, consumer_id: int, count: int = 1) -> int:
        return self.gate.record_usage(consumer_id, count)

    def accept_discovery(self, consumer_id: int) -> AcceptResult:
        return self.gate.accept(consumer_id)

    def decline_discovery(self, consumer_id: int) -> None:
        self.gate.decline(consumer_id)

    # -----------------------------
    # Time
    # -----------------------------

    def tick(self, now: SimTime):
        """Advance every system to `now`. Returns the listings published by this tick."""
        if now < self.now:
            return []
        self.now = now
        published = self.scheduler.tick(now)
        self.gate.expire_check(now)
        return published

    # -----------------------------
    # Save / load
    # -----------------------------

    def to_attrs(self) -> dict:
        payload = {
            "now_hours": self.now.total_hours,
            "scheduler": self.scheduler.to_attrs(),
            "discovery": self.gate.to_attrs(),
        }
        if isinstance(self.ledger, EconomySystem):
            payload["balances"] = {str(k): v for k, v in sorted(self.ledger.balances.items())}
        return payload

    def load_attrs(self, payload: dict) -> int:
        """Returns the number of corrupt entries skipped."""
        self.now = SimTime.from_hours(int(payload.get("now_hours") or 0))
        skipped = self.scheduler.load_attrs(payload.get("scheduler") or {})
        skipped += self.gate.load_attrs(payload.get("discovery") or [])
        if isinstance(self.ledger, EconomySystem):
            for k, v in (payload.get("balances") or {}).items():
                self.ledger.set_balance(int(k), int(v))
        return skipped

    def save(self, store: MarketStateStore) -> None:
        store.save(self.to_attrs())
        info_log(_TAG, f"saved at day {self.now.day} hour {self.now.hour}")

    def load(self, store: MarketStateStore) -> bool:
        payload = store.load()
        if payload is None:
            return False
        skipped = self.load_attrs(payload)
        info_log(_TAG, f"loaded save (day {self.now.day}, {skipped} corrupt entries skipped)")
        return True

    # -----------------------------
    # Replication
    # -----------------------------

    def consumer_snapshot(self, consumer_id: int) -> bytes:
        """Read-only snapshot of one consumer's searches, listings and discovery state."""
        w = WireWriter()
        self.scheduler.write_consumer_snapshot(w, consumer_id)
        self.gate.state_for(consumer_id).write_stream(w)
        return w.getvalue()


def read_snapshot(data: bytes):
    """Observer side of `MarketEngine.consumer_snapshot`."""
    r = WireReader(data)
    consumer_id, records, listings = read_consumer_snapshot(r)
    state = DiscoveryState.read_stream(r)
    return consumer_id, records, listings, state

"""
Scripted consumers for the headless runner.

Each buyer has a fixed profile (budget habits, credit score, fleet condition) and
makes routine choices every sim day: start a search, inspect or buy what was
found, and take the service truck offer when it turns up.
"""
from dataclasses import dataclass, field

from game.entities.listing import InspectionState
from game.errors import InsufficientFunds, InvalidState, ProcurementError
from game.sim.determinism import get_rng
from game.sim.log import debug_log
from game.systems.collaborators import Acquirer, FleetProbe, RatingProvider
from game.systems.discovery_gate import AcceptResult

_TAG = "buyer"

# (catalog_key, item_name, base_price)
CATALOG = [
    ("tractor_small", "Compact Tractor", 45000),
    ("tractor_large", "Row Crop Tractor", 180000),
    ("combine", "Combine Harvester", 320000),
    ("trailer", "Grain Trailer", 28000),
    ("baler", "Round Baler", 52000),
]

# item config id -> number of options
CONFIG_OPTIONS = {
    "engine": 3,
    "tires": 4,
    "color": 6,
}


@dataclass
class ConsumerProfile:
    consumer_id: int
    credit_score: float
    reliability_ceilings: list = field(default_factory=list)
    preferred_tier: str = "regional"
    preferred_quality: str = "any"


class ProfileRating(RatingProvider):
    def __init__(self, profiles: dict):
        self.profiles = profiles

    def get_score(self, consumer_id: int) -> float:
        profile = self.profiles.get(int(consumer_id))
        return profile.credit_score if profile else 650


class ProfileFleet(FleetProbe):
    def __init__(self, profiles: dict):
        self.profiles = profiles

    def reliability_ceilings(self, consumer_id: int):
        profile = self.profiles.get(int(consumer_id))
        return list(profile.reliability_ceilings) if profile else []


class Garage(Acquirer):
    """Records delivered items per consumer."""

    def __init__(self):
        self.delivered = {}

    def materialize(self, catalog_key: str, consumer_id: int) -> bool:
        self.delivered.setdefault(int(consumer_id), []).append(catalog_key)
        return True


def make_profiles(count: int, rng=None) -> dict:
    """Deterministic spread of consumer profiles (ids start at 1)."""
    rng = rng or get_rng("buyer_profiles")
    tiers = ["local", "regional", "national"]
    qualities = ["poor", "any", "fair", "good", "excellent"]
    profiles = {}
    for cid in range(1, int(count) + 1):
        profiles[cid] = ConsumerProfile(
            consumer_id=cid,
            credit_score=rng.randint(560, 820),
            reliability_ceilings=[round(rng.uniform(0.7, 1.0), 2) for _ in range(rng.randint(1, 4))],
            preferred_tier=rng.choice(tiers),
            preferred_quality=rng.choice(qualities),
        )
    return profiles


class BasicBuyer:
    """
    Drives every consumer once per sim day.
    Buying and inspection choices are random but seeded.
    """

    def __init__(self, engine, profiles: dict, rng=None):
        self.engine = engine
        self.profiles = profiles
        self.rng = rng or get_rng("basic_buyer")
        self.declined = set()

        # Prototype-friendly tuning
        self.search_chance = 0.35
        self.inspect_chance = 0.3
        self.buy_chance = 0.6
        self.diagnostic_chance = 0.25

    def update(self):
        for cid in sorted(self.profiles):
            self.update_consumer(self.profiles[cid])

    def update_consumer(self, profile: ConsumerProfile):
        cid = profile.consumer_id
        if self.rng.random() < self.diagnostic_chance:
            self.engine.record_diagnostic(cid)

        self.handle_listings(profile)
        self.handle_discovery(profile)

        if self.rng.random() < self.search_chance:
            self.start_search(profile)

    def start_search(self, profile: ConsumerProfile):
        key, name, price = self.rng.choice(CATALOG)
        configs = {cfg: self.rng.randint(1, n) for cfg, n in CONFIG_OPTIONS.items() if self.rng.random() < 0.5}
        try:
            record = self.engine.submit_search(
                profile.consumer_id,
                key,
                name,
                price,
                profile.preferred_tier,
                profile.preferred_quality,
                configs,
            )
        except (InsufficientFunds, InvalidState) as e:
            debug_log(_TAG, f"consumer {profile.consumer_id} could not search: {e}")
            return None
        return record

    def handle_listings(self, profile: ConsumerProfile):
        cid = profile.consumer_id
        for listing in self.engine.scheduler.listings_for(cid):
            if listing.on_hold:
                continue
            if listing.inspection_state == InspectionState.NONE and self.rng.random() < self.inspect_chance:
                try:
                    self.engine.request_inspection(cid, listing.listing_id, "quick")
                except ProcurementError as e:
                    debug_log(_TAG, f"consumer {cid} skipped inspection: {e}")
                continue
            if self.rng.random() < self.buy_chance:
                try:
                    self.engine.purchase_listing(cid, listing.listing_id)
                except ProcurementError as e:
                    debug_log(_TAG, f"consumer {cid} could not buy {listing.listing_id}: {e}")
            else:
                self.engine.decline_listing(cid, listing.listing_id)

    def handle_discovery(self, profile: ConsumerProfile):
        cid = profile.consumer_id
        if not self.engine.gate.state_for(cid).opportunity_active:
            return
        result = self.engine.accept_discovery(cid)
        if result != AcceptResult.ACCEPTED and cid not in self.declined:
            self.engine.decline_discovery(cid)
            self.declined.add(cid)

"""
Discovery gate: a hidden, per-consumer unlock for the premium service vehicle.

Flow:
    locked -> (prerequisites met + roll) -> opportunity active -> accept | decline | expire

Every qualifying event from an eligible consumer bumps a pity counter before the
roll; once the counter reaches the pity threshold the roll always succeeds.
A consumer gets exactly one discovery: an expired opportunity is never re-armed.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, NamedTuple, Optional

from config import DEFAULT_CREDIT_SCORE, HOURS_PER_DAY
from game.net.wire import WireReader, WireWriter
from game.sim.contracts import DiscoveryStatusSnapshot, PrerequisiteSnapshot
from game.sim.determinism import get_rng
from game.sim.log import debug_log, info_log, warn_log
from game.sim.timebase import SimTime
from game.systems.collaborators import Acquirer, FleetProbe, Ledger, RatingProvider
from game.systems.notices import NoticeBoard, NoticeKind

_TAG = "discovery"

DISCOVERY_CHANCE = 0.20
REQUIRED_USAGE = 3
REQUIRED_CREDIT_SCORE = 700
REQUIRED_CEILING_THRESHOLD = 0.90
BASE_PRICE = 75000
DISCOUNT_PERCENT = 0.10
DISCOUNTED_PRICE = int(BASE_PRICE * (1 - DISCOUNT_PERCENT))
OPPORTUNITY_EXPIRY_DAYS = 30
PITY_TIMER_THRESHOLD = 10

SERVICE_TRUCK_KEY = "service_truck"


class AcceptResult(str, Enum):
    ACCEPTED = "accepted"
    NO_OPPORTUNITY = "no_opportunity"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    SPAWN_FAILED = "spawn_failed"


class PrerequisiteCheck(NamedTuple):
    eligible: bool
    reason: str
    detail: Optional[float] = None


@dataclass(slots=True)
class DiscoveryState:
    discovered: bool = False
    purchased: bool = False
    opportunity_active: bool = False
    opportunity_expiry: int = 0  # absolute sim hour, 0 = none
    eligible_transactions: int = 0
    usage_count: int = 0
    last_prerequisites: Optional[PrerequisiteSnapshot] = None

    def to_attrs(self, consumer_id: int) -> dict[str, Any]:
        return {
            "consumer_id": int(consumer_id),
            "discovered": self.discovered,
            "purchased": self.purchased,
            "opportunity_active": self.opportunity_active,
            "opportunity_expiry": self.opportunity_expiry,
            "eligible_transactions": self.eligible_transactions,
            "usage_count": self.usage_count,
        }

    @classmethod
    def from_attrs(cls, d: Mapping[str, Any]) -> "DiscoveryState":
        state = cls(
            discovered=bool(d.get("discovered", False)),
            purchased=bool(d.get("purchased", False)),
            opportunity_active=bool(d.get("opportunity_active", False)),
            opportunity_expiry=int(d.get("opportunity_expiry") or 0),
            eligible_transactions=int(d.get("eligible_transactions") or 0),
            usage_count=int(d.get("usage_count") or 0),
        )
        if state.opportunity_active:
            state.discovered = True
        return state

    def write_stream(self, w: WireWriter) -> None:
        w.write_bool(self.discovered)
        w.write_bool(self.purchased)
        w.write_bool(self.opportunity_active)
        w.write_int(self.opportunity_expiry)
        w.write_int(self.eligible_transactions)
        w.write_int(self.usage_count)

    @classmethod
    def read_stream(cls, r: WireReader) -> "DiscoveryState":
        return cls(
            discovered=r.read_bool(),
            purchased=r.read_bool(),
            opportunity_active=r.read_bool(),
            opportunity_expiry=r.read_int(),
            eligible_transactions=r.read_int(),
            usage_count=r.read_int(),
        )


class DiscoveryGate:
    """Owns every consumer's discovery state."""

    def __init__(
        self,
        ledger: Ledger,
        *,
        rating: Optional[RatingProvider] = None,
        acquirer: Optional[Acquirer] = None,
        fleet: Optional[FleetProbe] = None,
        notices: Optional[NoticeBoard] = None,
        rng: Optional[random.Random] = None,
    ):
        self.ledger = ledger
        self.rating = rating
        self.acquirer = acquirer
        self.fleet = fleet
        self.notices = notices if notices is not None else NoticeBoard()
        self.rng = rng if rng is not None else get_rng("discovery_gate")
        self.states: dict[int, DiscoveryState] = {}

    def state_for(self, consumer_id: int) -> DiscoveryState:
        return self.states.setdefault(int(consumer_id), DiscoveryState())

    # -----------------------------
    # Prerequisites
    # -----------------------------

    def record_usage(self, consumer_id: int, count: int = 1) -> int:
        """Count a diagnostic use towards the usage prerequisite."""
        state = self.state_for(consumer_id)
        state.usage_count += max(0, int(count))
        return state.usage_count

    def credit_score(self, consumer_id: int) -> float:
        if self.rating is None:
            return DEFAULT_CREDIT_SCORE
        return float(self.rating.get_score(consumer_id))

    def has_degraded_ceiling(self, consumer_id: int) -> bool:
        if self.fleet is None:
            return False
        return any(float(c) < REQUIRED_CEILING_THRESHOLD for c in self.fleet.reliability_ceilings(consumer_id))

    def check_prerequisites(self, consumer_id: int) -> PrerequisiteCheck:
        """First failing prerequisite wins; the order is fixed."""
        state = self.state_for(consumer_id)
        if state.discovered or state.purchased:
            return PrerequisiteCheck(False, "already_discovered")
        if state.opportunity_active:
            return PrerequisiteCheck(False, "opportunity_active")
        if state.usage_count < REQUIRED_USAGE:
            return PrerequisiteCheck(False, "usage_count", float(state.usage_count))
        score = self.credit_score(consumer_id)
        if score < REQUIRED_CREDIT_SCORE:
            return PrerequisiteCheck(False, "credit_score", score)
        if not self.has_degraded_ceiling(consumer_id):
            return PrerequisiteCheck(False, "no_degraded_ceiling")
        return PrerequisiteCheck(True, "eligible")

    # -----------------------------
    # Events
    # -----------------------------

    def on_qualifying_event(self, consumer_id: int, event_kind: str, now: SimTime) -> bool:
        """
        Roll for discovery after a qualifying transaction.

        Returns True if the opportunity was opened by this event.
        """
        check = self.check_prerequisites(consumer_id)
        if not check.eligible:
            debug_log(_TAG, f"consumer {consumer_id} not eligible: {check.reason}")
            return False

        state = self.state_for(consumer_id)
        state.eligible_transactions += 1
        info_log(_TAG, f"consumer {consumer_id} eligible transaction #{state.eligible_transactions} ({event_kind})")

        roll = self.rng.random()
        threshold = DISCOVERY_CHANCE
        if state.eligible_transactions >= PITY_TIMER_THRESHOLD:
            threshold = 1.0
            info_log(_TAG, f"pity timer reached for consumer {consumer_id}")

        if roll > threshold:
            debug_log(_TAG, f"roll failed ({roll:.2f} > {threshold:.2f})")
            return False

        state.discovered = True
        state.opportunity_active = True
        state.opportunity_expiry = now.total_hours + OPPORTUNITY_EXPIRY_DAYS * HOURS_PER_DAY
        self.notices.post(
            NoticeKind.DISCOVERY,
            consumer_id,
            "A contact is offering you a service truck",
            at_hour=now.total_hours,
            data={"price": DISCOUNTED_PRICE, "via": event_kind},
        )
        info_log(_TAG, f"discovery triggered for consumer {consumer_id} via {event_kind}")
        return True

    def accept(self, consumer_id: int) -> AcceptResult:
        state = self.state_for(consumer_id)
        if not state.opportunity_active:
            warn_log(_TAG, f"no active opportunity for consumer {consumer_id}")
            return AcceptResult.NO_OPPORTUNITY

        if not self.ledger.charge(consumer_id, DISCOUNTED_PRICE):
            return AcceptResult.INSUFFICIENT_FUNDS

        if self.acquirer is not None and not self.acquirer.materialize(SERVICE_TRUCK_KEY, consumer_id):
            self.ledger.credit(consumer_id, DISCOUNTED_PRICE)
            warn_log(_TAG, f"service truck spawn failed for consumer {consumer_id}; refunded")
            return AcceptResult.SPAWN_FAILED

        state.purchased = True
        state.opportunity_active = False
        state.opportunity_expiry = 0
        self.notices.post(
            NoticeKind.DISCOVERY_PURCHASED,
            consumer_id,
            "Service truck delivered",
            data={"price": DISCOUNTED_PRICE},
        )
        info_log(_TAG, f"consumer {consumer_id} purchased service truck for {DISCOUNTED_PRICE}")
        return AcceptResult.ACCEPTED

    def decline(self, consumer_id: int) -> None:
        """The offer stays open until it expires."""
        self.notices.post(
            NoticeKind.DISCOVERY_DECLINED,
            consumer_id,
            f"Offer saved, it expires in {OPPORTUNITY_EXPIRY_DAYS} days",
        )

    def expire_check(self, now: SimTime) -> list[int]:
        """Close opportunities whose window has passed. Returns the affected consumer ids."""
        now_hours = now.total_hours
        expired = []
        for consumer_id in sorted(self.states):
            state = self.states[consumer_id]
            if not state.opportunity_active or state.opportunity_expiry <= 0:
                continue
            if now_hours < state.opportunity_expiry:
                continue
            state.opportunity_active = False
            state.opportunity_expiry = 0
            expired.append(consumer_id)
            self.notices.post(
                NoticeKind.DISCOVERY_EXPIRED,
                consumer_id,
                "The service truck offer has expired",
                at_hour=now_hours,
            )
            info_log(_TAG, f"opportunity expired for consumer {consumer_id}")
        return expired

    # -----------------------------
    # Display
    # -----------------------------

    def remaining_days(self, consumer_id: int, now: SimTime) -> int:
        state = self.state_for(consumer_id)
        if not state.opportunity_active:
            return 0
        remaining = state.opportunity_expiry - now.total_hours
        if remaining <= 0:
            return 0
        return math.ceil(remaining / HOURS_PER_DAY)

    def status(self, consumer_id: int, now: SimTime) -> DiscoveryStatusSnapshot:
        state = self.state_for(consumer_id)
        return DiscoveryStatusSnapshot(
            discovered=state.discovered,
            purchased=state.purchased,
            opportunity_active=state.opportunity_active,
            remaining_days=self.remaining_days(consumer_id, now),
            eligible_transactions=state.eligible_transactions,
            price=DISCOUNTED_PRICE,
        )

    def prerequisites_status(self, consumer_id: int) -> PrerequisiteSnapshot:
        state = self.state_for(consumer_id)
        snap = PrerequisiteSnapshot(
            usage_count=state.usage_count,
            usage_required=REQUIRED_USAGE,
            credit_score=self.credit_score(consumer_id),
            credit_required=REQUIRED_CREDIT_SCORE,
            has_degraded=self.has_degraded_ceiling(consumer_id),
        )
        state.last_prerequisites = snap
        return snap

    def reset(self, consumer_id: int) -> None:
        """Admin/test helper: forget everything about one consumer's discovery."""
        self.states[int(consumer_id)] = DiscoveryState()
        info_log(_TAG, f"reset discovery state for consumer {consumer_id}")

    # -----------------------------
    # Persistence
    # -----------------------------

    def to_attrs(self) -> list[dict[str, Any]]:
        return [self.states[cid].to_attrs(cid) for cid in sorted(self.states)]

    def load_attrs(self, entries) -> int:
        """Replace all state. Entries without a positive consumer id are skipped."""
        self.states = {}
        skipped = 0
        for d in entries or []:
            consumer_id = int(d.get("consumer_id") or 0)
            if consumer_id <= 0:
                skipped += 1
                continue
            self.states[consumer_id] = DiscoveryState.from_attrs(d)
        debug_log(_TAG, f"loaded discovery data for {len(self.states)} consumers")
        return skipped

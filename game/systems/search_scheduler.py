"""
Search scheduler: owns every in-flight search and every listing they produce.

Cadences:
- hourly: inspection completions (listings only, never touches search countdowns)
- daily:  listing expiry + search countdowns (one day's worth of hours per elapsed day)

`tick()` walks every elapsed hour, so a save that was offline for N days is
caught up one day at a time and ends in the same state as N one-day ticks.
Listings found during a tick are staged and only become visible when the
whole batch has been processed.
"""

from __future__ import annotations

import random
from typing import Any, Mapping, Optional

from config import (
    DEFAULT_CREDIT_SCORE,
    HOURS_PER_DAY,
    LISTING_EXPIRY_HOURS,
    LISTING_ID_FORMAT,
    MAX_ACTIVE_SEARCHES,
    SEARCH_ID_FORMAT,
)
from game.entities.listing import InspectionState, Listing, ListingStatus
from game.entities.search_record import Completion, SearchRecord
from game.errors import (
    CorruptRecord,
    InsufficientFunds,
    InvalidState,
    NotFound,
    SearchLimitReached,
    SpawnFailure,
)
from game.net.wire import WireReader, WireWriter
from game.sim.contracts import SearchStatusSnapshot
from game.sim.determinism import get_rng
from game.sim.log import debug_log, info_log, warn_log
from game.sim.timebase import SimTime, day_of
from game.systems.collaborators import Acquirer, Ledger, RatingProvider
from game.systems.notices import NoticeBoard, NoticeKind
from game.systems.tier_catalog import (
    DEFAULT_QUALITY_ID,
    credit_fee_modifier,
    get_inspection_tier,
    get_quality,
    get_tier,
)

_TAG = "search"


class SearchScheduler:
    """Authoritative owner of search records, listings and the shared id counter."""

    def __init__(
        self,
        ledger: Ledger,
        *,
        rating: Optional[RatingProvider] = None,
        acquirer: Optional[Acquirer] = None,
        notices: Optional[NoticeBoard] = None,
        rng: Optional[random.Random] = None,
        max_active: int = MAX_ACTIVE_SEARCHES,
    ):
        self.ledger = ledger
        self.rating = rating
        self.acquirer = acquirer
        self.notices = notices if notices is not None else NoticeBoard()
        self.rng = rng if rng is not None else get_rng("search_scheduler")
        self.max_active = int(max_active)

        self.searches: dict[str, SearchRecord] = {}  # key: search_id
        self._by_consumer: dict[int, list[SearchRecord]] = {}
        self._listings: dict[int, list[Listing]] = {}
        self._staged: set[str] = set()  # listing ids found during the current tick

        self.next_id = 1
        self.last_processed_day: Optional[int] = None
        self.last_processed_hour: Optional[int] = None
        self.now_hours = 0

    # -----------------------------
    # Ids
    # -----------------------------

    def _next_search_id(self) -> str:
        sid = SEARCH_ID_FORMAT % self.next_id
        self.next_id += 1
        return sid

    def _next_listing_id(self, day: int) -> str:
        lid = LISTING_ID_FORMAT % (int(day), self.next_id)
        self.next_id += 1
        return lid

    # -----------------------------
    # Requests
    # -----------------------------

    def credit_score(self, consumer_id: int) -> float:
        if self.rating is None:
            return DEFAULT_CREDIT_SCORE
        return float(self.rating.get_score(consumer_id))

    def submit(
        self,
        consumer_id: int,
        catalog_key: str,
        item_name: str,
        base_price: float,
        tier_id: str,
        quality_id: str = DEFAULT_QUALITY_ID,
        requested_configs: Optional[Mapping[str, int]] = None,
        now: Optional[SimTime] = None,
    ) -> SearchRecord:
        """
        Charge the search fee and register a new search with its outcome already rolled.

        Raises:
            ConfigurationError: unknown tier or quality id
            SearchLimitReached: consumer already has `max_active` searches running
            InsufficientFunds: the ledger refused the fee (nothing is registered)
        """
        get_tier(tier_id)
        get_quality(quality_id)

        if self.active_count(consumer_id) >= self.max_active:
            raise SearchLimitReached(
                f"consumer {consumer_id} already has {self.max_active} active searches"
            )

        created_at = now.total_hours if now is not None else self.now_hours
        modifier = credit_fee_modifier(self.credit_score(consumer_id))
        record = SearchRecord.create(
            consumer_id,
            catalog_key,
            item_name,
            base_price,
            tier_id,
            quality_id,
            requested_configs,
            modifier,
            self.rng,
            created_at=created_at,
        )

        if not self.ledger.charge(consumer_id, record.cost):
            raise InsufficientFunds(consumer_id, record.cost)

        record.search_id = self._next_search_id()
        self._register(record)
        self.notices.post(
            NoticeKind.SEARCH_STARTED,
            consumer_id,
            f"Search started for {record.item_name}",
            at_hour=created_at,
            ref_id=record.search_id,
            data={"cost": record.cost, "tier": record.tier_id, "ttl": record.ttl},
        )
        debug_log(
            _TAG,
            f"created {record.search_id}: {record.item_name} tier={record.tier_id} "
            f"quality={record.quality_id} cost={record.cost} ttl={record.ttl} tts={record.tts}",
        )
        return record

    def renew(self, record: SearchRecord, now: Optional[SimTime] = None) -> SearchRecord:
        """Start a fresh search with the parameters of a finished one (fee charged again)."""
        return self.submit(
            record.consumer_id,
            record.catalog_key,
            record.item_name,
            record.base_price,
            record.tier_id,
            record.quality_id,
            record.requested_configs,
            now=now,
        )

    def cancel(self, search_id: str) -> SearchRecord:
        record = self.searches.get(search_id)
        if record is None:
            raise NotFound(f"search {search_id} not found")
        if not record.is_active:
            raise InvalidState(f"search {search_id} is {record.status.value}, not active")
        record.cancel()
        self._release(record)
        self.notices.post(
            NoticeKind.SEARCH_CANCELLED,
            record.consumer_id,
            f"Search cancelled: {record.item_name}",
            at_hour=self.now_hours,
            ref_id=record.search_id,
        )
        debug_log(_TAG, f"cancelled {search_id}")
        return record

    # -----------------------------
    # Listings
    # -----------------------------

    def _find_listing(self, consumer_id: int, listing_id: str) -> Listing:
        for listing in self._listings.get(int(consumer_id), []):
            if listing.listing_id == listing_id and listing_id not in self._staged:
                return listing
        raise NotFound(f"listing {listing_id} not found for consumer {consumer_id}")

    def purchase_listing(self, consumer_id: int, listing_id: str) -> Listing:
        """
        Buy a found item. Charges the listing price, materializes the item, and
        frees the search slot.

        Raises:
            NotFound / InvalidState: unknown or no longer available listing
            InsufficientFunds: the ledger refused the price
            SpawnFailure: the acquirer failed; the price was refunded
        """
        listing = self._find_listing(consumer_id, listing_id)
        if not listing.is_available:
            raise InvalidState(f"listing {listing_id} is {listing.status.value}")

        if not self.ledger.charge(consumer_id, listing.price):
            raise InsufficientFunds(consumer_id, listing.price)

        if self.acquirer is not None and not self.acquirer.materialize(listing.catalog_key, consumer_id):
            self.ledger.credit(consumer_id, listing.price)
            warn_log(_TAG, f"materialize failed for {listing.listing_id}; refunded {listing.price}")
            raise SpawnFailure(f"could not deliver {listing.item_name}")

        listing.status = ListingStatus.PURCHASED
        self._drop_listing(listing)
        record = self.searches.get(listing.search_id)
        if record is not None:
            record.mark_completed()
            self._release(record)
        self.notices.post(
            NoticeKind.LISTING_PURCHASED,
            consumer_id,
            f"Your {listing.item_name} has been delivered",
            at_hour=self.now_hours,
            ref_id=listing.listing_id,
            data={"price": listing.price},
        )
        return listing

    def decline_listing(self, consumer_id: int, listing_id: str) -> Listing:
        listing = self._find_listing(consumer_id, listing_id)
        if not listing.is_available:
            raise InvalidState(f"listing {listing_id} is {listing.status.value}")
        listing.status = ListingStatus.DECLINED
        self._drop_listing(listing)
        record = self.searches.get(listing.search_id)
        if record is not None:
            self._release(record)
        self.notices.post(
            NoticeKind.LISTING_DECLINED,
            consumer_id,
            f"Declined {listing.item_name}",
            at_hour=self.now_hours,
            ref_id=listing.listing_id,
        )
        return listing

    def request_inspection(
        self,
        consumer_id: int,
        listing_id: str,
        tier_id: str,
        now: Optional[SimTime] = None,
    ) -> Listing:
        """Pay for an inspection; the listing is held from expiry until it completes."""
        tier = get_inspection_tier(tier_id)
        listing = self._find_listing(consumer_id, listing_id)
        if not listing.is_available:
            raise InvalidState(f"listing {listing_id} is {listing.status.value}")
        if listing.inspection_state != InspectionState.NONE:
            raise InvalidState(f"listing {listing_id} inspection already {listing.inspection_state.value}")

        cost = tier.cost_for(listing.price)
        if not self.ledger.charge(consumer_id, cost):
            raise InsufficientFunds(consumer_id, cost)

        now_h = now.total_hours if now is not None else self.now_hours
        listing.begin_inspection(tier.tier_id, now_h + tier.duration_hours, cost)
        self.notices.post(
            NoticeKind.INSPECTION_STARTED,
            consumer_id,
            f"Inspection started, ready in ~{tier.duration_hours} hours",
            at_hour=now_h,
            ref_id=listing.listing_id,
            data={"tier": tier.tier_id, "cost": cost},
        )
        return listing

    # -----------------------------
    # Time
    # -----------------------------

    def tick(self, now: SimTime) -> list[Listing]:
        """
        Catch up to `now`. Returns the listings that became visible in this tick.

        The first call only anchors the cursors. Time going backwards is ignored.
        """
        now_hours = now.total_hours
        if self.last_processed_hour is None or self.last_processed_day is None:
            self.last_processed_hour = now_hours
            self.last_processed_day = day_of(now_hours)
            self.now_hours = now_hours
            return []
        if now_hours <= self.last_processed_hour:
            return []

        days_before = self.last_processed_day
        for hour in range(self.last_processed_hour + 1, now_hours + 1):
            self.now_hours = hour
            self.process_inspections(hour)
            day = day_of(hour)
            while self.last_processed_day < day:
                self.last_processed_day += 1
                self._process_day(self.last_processed_day)
        self.last_processed_hour = now_hours

        if self.last_processed_day > days_before:
            debug_log(
                _TAG,
                f"processed {self.last_processed_day - days_before} day(s) "
                f"(day {days_before} -> {self.last_processed_day})",
            )
        return self._publish_staged()

    def process_inspections(self, hour: int) -> int:
        """Hourly pass: complete inspections that are due. Returns the count."""
        completed = 0
        for consumer_id in sorted(self._listings):
            for listing in self._listings[consumer_id]:
                if not listing.inspection_due(hour):
                    continue
                listing.inspection_state = InspectionState.COMPLETE
                completed += 1
                self.notices.post(
                    NoticeKind.INSPECTION_COMPLETE,
                    consumer_id,
                    f"Inspection complete for {listing.item_name}",
                    at_hour=hour,
                    ref_id=listing.listing_id,
                    data={"tier": listing.inspection_tier},
                )
        if completed:
            debug_log(_TAG, f"processed {completed} inspection completion(s) at hour {hour}")
        return completed

    def _process_day(self, day: int) -> None:
        consumers = sorted(set(self._by_consumer) | set(self._listings))
        for consumer_id in consumers:
            for listing in list(self._listings.get(consumer_id, [])):
                if listing.age(HOURS_PER_DAY):
                    self._expire_listing(listing)
            for record in list(self._by_consumer.get(consumer_id, [])):
                if not record.is_active:
                    continue
                record.advance(HOURS_PER_DAY)
                result = record.check_completion()
                if result == Completion.SUCCESS:
                    self._commit_success(record, day)
                elif result == Completion.FAILED:
                    self._commit_failure(record)

    def _commit_success(self, record: SearchRecord, day: int) -> Optional[Listing]:
        if not record.is_active:
            return None
        record.mark_success()
        listing = Listing(
            listing_id=self._next_listing_id(day),
            consumer_id=record.consumer_id,
            search_id=record.search_id,
            catalog_key=record.catalog_key,
            item_name=record.item_name,
            condition=record.found_condition,
            price=record.found_price,
            configs=dict(record.found_configs),
            expires_in=LISTING_EXPIRY_HOURS,
            listed_day=day,
        )
        self._listings.setdefault(record.consumer_id, []).append(listing)
        self._staged.add(listing.listing_id)
        self.notices.post(
            NoticeKind.ITEM_FOUND,
            record.consumer_id,
            f"Your agent found a {record.item_name}!",
            at_hour=self.now_hours,
            ref_id=listing.listing_id,
            data={"search_id": record.search_id, "price": listing.price, "condition": listing.condition},
        )
        debug_log(
            _TAG,
            f"{record.search_id} found {record.item_name}: condition={record.found_condition * 100:.1f}% "
            f"price={record.found_price}",
        )
        return listing

    def _commit_failure(self, record: SearchRecord) -> None:
        if not record.is_active:
            return
        record.mark_failed()
        self._release(record)
        self.notices.post(
            NoticeKind.SEARCH_FAILED,
            record.consumer_id,
            f"Search for {record.item_name} came up empty",
            at_hour=self.now_hours,
            ref_id=record.search_id,
            data={"tier": record.tier_id, "quality": record.quality_id},
        )
        debug_log(_TAG, f"{record.search_id} failed: {record.item_name}")

    def _expire_listing(self, listing: Listing) -> None:
        self._drop_listing(listing)
        record = self.searches.get(listing.search_id)
        if record is not None:
            self._release(record)
        self.notices.post(
            NoticeKind.LISTING_EXPIRED,
            listing.consumer_id,
            f"The {listing.item_name} was sold to someone else",
            at_hour=self.now_hours,
            ref_id=listing.listing_id,
        )

    def _publish_staged(self) -> list[Listing]:
        if not self._staged:
            return []
        published = [
            listing
            for consumer_id in sorted(self._listings)
            for listing in self._listings[consumer_id]
            if listing.listing_id in self._staged
        ]
        self._staged.clear()
        return published

    # -----------------------------
    # Indexes
    # -----------------------------

    def _register(self, record: SearchRecord) -> None:
        self.searches[record.search_id] = record
        self._by_consumer.setdefault(record.consumer_id, []).append(record)

    def _release(self, record: SearchRecord) -> None:
        self.searches.pop(record.search_id, None)
        records = self._by_consumer.get(record.consumer_id)
        if records is None:
            return
        records[:] = [r for r in records if r.search_id != record.search_id]
        if not records:
            del self._by_consumer[record.consumer_id]

    def _drop_listing(self, listing: Listing) -> None:
        listings = self._listings.get(listing.consumer_id)
        if listings is None:
            return
        listings[:] = [x for x in listings if x.listing_id != listing.listing_id]
        if not listings:
            del self._listings[listing.consumer_id]

    # -----------------------------
    # Queries
    # -----------------------------

    def get(self, search_id: str) -> Optional[SearchRecord]:
        return self.searches.get(search_id)

    def searches_for(self, consumer_id: int) -> list[SearchRecord]:
        return list(self._by_consumer.get(int(consumer_id), []))

    def listings_for(self, consumer_id: int) -> list[Listing]:
        return [
            x
            for x in self._listings.get(int(consumer_id), [])
            if x.is_available and x.listing_id not in self._staged
        ]

    def active_count(self, consumer_id: int) -> int:
        return sum(1 for r in self._by_consumer.get(int(consumer_id), []) if r.is_active)

    def total_active(self) -> int:
        return sum(1 for r in self.searches.values() if r.is_active)

    def consumers(self) -> list[int]:
        return sorted(set(self._by_consumer) | set(self._listings))

    def status_snapshot(self, search_id: str) -> SearchStatusSnapshot:
        record = self.searches.get(search_id)
        if record is None:
            raise NotFound(f"search {search_id} not found")
        return SearchStatusSnapshot.from_record(record)

    # -----------------------------
    # Persistence
    # -----------------------------

    def to_attrs(self) -> dict[str, Any]:
        consumers = []
        for consumer_id in self.consumers():
            consumers.append(
                {
                    "consumer_id": consumer_id,
                    "searches": [r.to_attrs() for r in self._by_consumer.get(consumer_id, [])],
                    "listings": [x.to_attrs() for x in self._listings.get(consumer_id, [])],
                }
            )
        return {
            "next_id": self.next_id,
            "last_processed_day": self.last_processed_day,
            "last_processed_hour": self.last_processed_hour,
            "consumers": consumers,
        }

    def load_attrs(self, d: Mapping[str, Any]) -> int:
        """
        Replace all state from a saved attribute dict.

        Corrupt entries are skipped with a warning. Returns the number of entries skipped.
        """
        self.searches = {}
        self._by_consumer = {}
        self._listings = {}
        self._staged = set()
        self.next_id = int(d.get("next_id") or 1)
        lpd = d.get("last_processed_day")
        lph = d.get("last_processed_hour")
        self.last_processed_day = None if lpd is None else int(lpd)
        self.last_processed_hour = None if lph is None else int(lph)
        self.now_hours = self.last_processed_hour or 0

        skipped = 0
        for entry in d.get("consumers") or []:
            for sd in entry.get("searches") or []:
                try:
                    record = SearchRecord.from_attrs(sd)
                except CorruptRecord as e:
                    warn_log(_TAG, f"corrupt search in save, skipping ({e})")
                    skipped += 1
                    continue
                self._register(record)
            for ld in entry.get("listings") or []:
                try:
                    listing = Listing.from_attrs(ld)
                except CorruptRecord as e:
                    warn_log(_TAG, f"corrupt listing in save, skipping ({e})")
                    skipped += 1
                    continue
                self._listings.setdefault(listing.consumer_id, []).append(listing)

        info_log(
            _TAG,
            f"loaded {len(self.searches)} searches, "
            f"{sum(len(v) for v in self._listings.values())} listings, next_id={self.next_id}",
        )
        return skipped

    # -----------------------------
    # Replication
    # -----------------------------

    def write_consumer_snapshot(self, w: WireWriter, consumer_id: int) -> None:
        records = self._by_consumer.get(int(consumer_id), [])
        listings = self.listings_for(consumer_id)
        w.write_int(int(consumer_id))
        w.write_int(len(records))
        for record in records:
            record.write_stream(w)
        w.write_int(len(listings))
        for listing in listings:
            listing.write_stream(w)


def read_consumer_snapshot(r: WireReader) -> tuple[int, list[SearchRecord], list[Listing]]:
    """Observer side of `SearchScheduler.write_consumer_snapshot`. Treat the result as read-only."""
    consumer_id = r.read_int()
    records = [SearchRecord.read_stream(r) for _ in range(r.read_int())]
    listings = [Listing.read_stream(r) for _ in range(r.read_int())]
    return consumer_id, records, listings

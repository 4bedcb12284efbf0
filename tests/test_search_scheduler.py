import random

import pytest

from game.entities.listing import InspectionState, ListingStatus
from game.entities.search_record import SearchStatus
from game.errors import (
    ConfigurationError,
    InsufficientFunds,
    InvalidState,
    NotFound,
    SearchLimitReached,
    SpawnFailure,
)
from game.net.wire import WireReader, WireWriter
from game.sim.timebase import SimTime
from game.systems.notices import NoticeKind
from game.systems.outcome import search_cost
from game.systems.search_scheduler import SearchScheduler, read_consumer_snapshot
from game.systems.tier_catalog import SEARCH_TIERS
from tests.fakes import FakeAcquirer, FakeRating


@pytest.fixture
def acquirer():
    return FakeAcquirer()


@pytest.fixture
def scheduler(ledger, acquirer, notices, rng):
    return SearchScheduler(ledger, acquirer=acquirer, notices=notices, rng=rng)


def submit(scheduler, consumer_id=1, tier_id="regional", **kw):
    return scheduler.submit(consumer_id, "tractor_small", "Compact Tractor", 45_000, tier_id, **kw)


def steer(record, *, ttl, tts, price=20_000, condition=0.5):
    """Pin a record's frozen outcome so the test controls when it lands."""
    record.ttl = ttl
    record.tts = tts
    record.succeeds = tts <= ttl
    record.planned_price = price
    record.planned_condition = condition
    return record


def found_listing(scheduler, consumer_id=1, days=2):
    record = steer(submit(scheduler, consumer_id), ttl=48, tts=30)
    scheduler.tick(SimTime(0, 0))
    published = scheduler.tick(SimTime(days, 0))
    assert len(published) == 1
    return record, published[0]


# -----------------------------
# submit
# -----------------------------


def test_submit_charges_fee_and_registers(scheduler, ledger):
    record = submit(scheduler)
    assert record.search_id == "SEARCH_00000001"
    assert ledger.balance(1) == 1_000_000 - record.cost
    assert scheduler.get(record.search_id) is record
    assert scheduler.searches_for(1) == [record]
    assert scheduler.total_active() == 1


def test_submit_applies_credit_band(ledger, rng):
    scheduler = SearchScheduler(ledger, rating=FakeRating(score=780), rng=rng)
    record = submit(scheduler, tier_id="local")
    assert record.credit_modifier == -0.15
    assert record.cost == search_cost(45_000, SEARCH_TIERS["local"], -0.15)


def test_missing_rating_uses_neutral_score(scheduler):
    assert scheduler.credit_score(1) == 650
    assert submit(scheduler).credit_modifier == 0.0


def test_submit_refused_by_ledger_registers_nothing(scheduler, ledger):
    ledger.set_balance(1, 10)
    with pytest.raises(InsufficientFunds) as exc:
        submit(scheduler)
    assert exc.value.consumer_id == 1
    assert scheduler.total_active() == 0
    assert scheduler.searches_for(1) == []
    assert ledger.balance(1) == 10


def test_submit_unknown_tier_charges_nothing(scheduler, ledger):
    with pytest.raises(ConfigurationError):
        submit(scheduler, tier_id="orbital")
    assert ledger.balance(1) == 1_000_000


def test_active_search_limit_is_per_consumer(scheduler):
    for _ in range(5):
        submit(scheduler)
    with pytest.raises(SearchLimitReached):
        submit(scheduler)
    with pytest.raises(InvalidState):
        submit(scheduler)
    submit(scheduler, consumer_id=2)
    assert scheduler.active_count(1) == 5
    assert scheduler.active_count(2) == 1


def test_search_and_listing_ids_share_one_counter(scheduler):
    _, listing = found_listing(scheduler)
    second = submit(scheduler)
    assert listing.listing_id == "LISTING_D2_00000002"
    assert second.search_id == "SEARCH_00000003"


# -----------------------------
# tick
# -----------------------------


def test_first_tick_only_anchors(scheduler):
    record = steer(submit(scheduler), ttl=24, tts=1)
    assert scheduler.tick(SimTime(5, 0)) == []
    assert record.ttl == 24
    assert scheduler.last_processed_day == 5


def test_hours_within_a_day_do_not_advance_searches(scheduler):
    record = steer(submit(scheduler), ttl=48, tts=30)
    scheduler.tick(SimTime(0, 0))
    for hour in range(1, 24):
        scheduler.tick(SimTime(0, hour))
    assert record.ttl == 48
    scheduler.tick(SimTime(1, 0))
    assert record.ttl == 24


def test_time_going_backwards_is_ignored(scheduler):
    record = steer(submit(scheduler), ttl=48, tts=30)
    scheduler.tick(SimTime(3, 0))
    scheduler.tick(SimTime(2, 0))
    assert record.ttl == 48


def test_success_publishes_listing_and_keeps_record(scheduler, notices):
    record, listing = found_listing(scheduler)
    assert record.status == SearchStatus.SUCCESS
    assert record.found_price == 20_000
    assert listing.price == 20_000
    assert listing.search_id == record.search_id
    assert scheduler.listings_for(1) == [listing]
    assert scheduler.searches_for(1) == [record]
    assert NoticeKind.ITEM_FOUND in [n.kind for n in notices.drain()]


def test_failure_frees_the_record(scheduler, notices):
    record = steer(submit(scheduler), ttl=24, tts=24 + 999)
    scheduler.tick(SimTime(0, 0))
    assert scheduler.tick(SimTime(1, 0)) == []
    assert record.status == SearchStatus.FAILED
    assert record.found_price == 0
    assert scheduler.searches_for(1) == []
    assert scheduler.get(record.search_id) is None
    assert NoticeKind.SEARCH_FAILED in [n.kind for n in notices.drain()]


def _run(days_per_tick, scheduler):
    a = steer(submit(scheduler, 1), ttl=96, tts=50)
    b = steer(submit(scheduler, 2), ttl=24, tts=999)
    c = steer(submit(scheduler, 3), ttl=48, tts=10)
    scheduler.tick(SimTime(0, 0))
    day = 0
    while day < 8:
        day += days_per_tick
        scheduler.tick(SimTime(day, 0))
    return a, b, c


def test_multi_day_tick_matches_single_day_ticks(ledger):
    one = SearchScheduler(ledger, rng=random.Random(1))
    many = SearchScheduler(ledger, rng=random.Random(1))
    singles = _run(1, one)
    batched = _run(8, many)
    for x, y in zip(singles, batched):
        assert (x.status, x.ttl, x.tts) == (y.status, y.ttl, y.tts)
    assert one.to_attrs() == many.to_attrs()


def test_listing_found_mid_batch_is_hidden_until_the_tick_ends(scheduler):
    steer(submit(scheduler), ttl=96, tts=20)
    scheduler.tick(SimTime(0, 0))
    published = scheduler.tick(SimTime(2, 0))
    assert len(published) == 1
    # found on day 1, aged once on day 2
    assert published[0].expires_in == 72 - 24
    assert published[0].listed_day == 1


def test_unpurchased_listing_expires_and_frees_the_record(scheduler, notices):
    record, listing = found_listing(scheduler)
    scheduler.tick(SimTime(5, 0))
    assert listing.status == ListingStatus.EXPIRED
    assert scheduler.listings_for(1) == []
    assert scheduler.searches_for(1) == []
    assert NoticeKind.LISTING_EXPIRED in [n.kind for n in notices.drain()]


# -----------------------------
# cancel
# -----------------------------


def test_cancel_unknown_search(scheduler):
    with pytest.raises(NotFound):
        scheduler.cancel("SEARCH_99999999")


def test_cancel_keeps_fee_and_frees_slot(scheduler, ledger):
    record = submit(scheduler)
    balance = ledger.balance(1)
    scheduler.cancel(record.search_id)
    assert record.status == SearchStatus.CANCELLED
    assert ledger.balance(1) == balance
    assert scheduler.active_count(1) == 0


def test_cancel_after_success_is_invalid(scheduler):
    record, _ = found_listing(scheduler)
    with pytest.raises(InvalidState):
        scheduler.cancel(record.search_id)


# -----------------------------
# listings
# -----------------------------


def test_purchase_charges_materializes_and_completes(scheduler, ledger, acquirer):
    record, listing = found_listing(scheduler)
    before = ledger.balance(1)
    scheduler.purchase_listing(1, listing.listing_id)
    assert ledger.balance(1) == before - 20_000
    assert acquirer.calls == [("tractor_small", 1)]
    assert listing.status == ListingStatus.PURCHASED
    assert record.status == SearchStatus.COMPLETED
    assert scheduler.searches_for(1) == []
    with pytest.raises(NotFound):
        scheduler.purchase_listing(1, listing.listing_id)


def test_purchase_spawn_failure_refunds(scheduler, ledger, acquirer):
    _, listing = found_listing(scheduler)
    acquirer.succeed = False
    before = ledger.balance(1)
    with pytest.raises(SpawnFailure):
        scheduler.purchase_listing(1, listing.listing_id)
    assert ledger.balance(1) == before
    assert listing.status == ListingStatus.AVAILABLE
    assert scheduler.listings_for(1) == [listing]


def test_purchase_without_funds(scheduler, ledger):
    _, listing = found_listing(scheduler)
    ledger.set_balance(1, 100)
    with pytest.raises(InsufficientFunds):
        scheduler.purchase_listing(1, listing.listing_id)
    assert listing.is_available


def test_purchase_of_another_consumers_listing(scheduler):
    _, listing = found_listing(scheduler)
    with pytest.raises(NotFound):
        scheduler.purchase_listing(2, listing.listing_id)


def test_decline_frees_record(scheduler):
    record, listing = found_listing(scheduler)
    scheduler.decline_listing(1, listing.listing_id)
    assert listing.status == ListingStatus.DECLINED
    assert scheduler.searches_for(1) == []


def test_inspection_holds_listing_until_complete(scheduler, ledger, notices):
    _, listing = found_listing(scheduler)
    scheduler.tick(SimTime(2, 18))
    before = ledger.balance(1)
    scheduler.request_inspection(1, listing.listing_id, "comprehensive", now=SimTime(2, 18))
    assert ledger.balance(1) == before - 5000  # 4000 + 5% of 20000
    assert listing.inspection_state == InspectionState.PENDING

    # day 3 rolls over while the inspection is pending: no aging
    scheduler.tick(SimTime(3, 5))
    assert listing.inspection_state == InspectionState.PENDING
    assert listing.expires_in == 72

    scheduler.tick(SimTime(3, 6))
    assert listing.inspection_state == InspectionState.COMPLETE
    assert NoticeKind.INSPECTION_COMPLETE in [n.kind for n in notices.drain()]

    scheduler.tick(SimTime(4, 0))
    assert listing.expires_in == 48



def test_second_inspection_is_invalid(scheduler):
    _, listing = found_listing(scheduler)
    scheduler.request_inspection(1, listing.listing_id, "quick")
    with pytest.raises(InvalidState):
        scheduler.request_inspection(1, listing.listing_id, "quick")


def test_renew_resubmits_same_parameters(scheduler, ledger):
    record = steer(submit(scheduler, quality_id="good", requested_configs={"engine": 2}), ttl=24, tts=999)
    scheduler.tick(SimTime(0, 0))
    scheduler.tick(SimTime(1, 0))
    again = scheduler.renew(record)
    assert again.search_id != record.search_id
    assert (again.tier_id, again.quality_id, again.requested_configs) == ("regional", "good", {"engine": 2})


# -----------------------------
# save / load / replication
# -----------------------------


def test_save_load_round_trip(scheduler, ledger, rng):
    active = steer(submit(scheduler), ttl=96, tts=70)
    _, listing = found_listing(scheduler, consumer_id=2)
    attrs = scheduler.to_attrs()

    restored = SearchScheduler(ledger, rng=rng)
    assert restored.load_attrs(attrs) == 0
    assert restored.get(active.search_id) == active
    assert restored.listings_for(2) == [listing]
    assert restored.next_id == scheduler.next_id
    assert restored.last_processed_day == 2
    assert restored.to_attrs() == attrs


def test_load_skips_corrupt_entries(scheduler, ledger, rng):
    good = submit(scheduler)
    attrs = scheduler.to_attrs()
    attrs["consumers"][0]["searches"].append({"consumer_id": 1, "tier_id": "local"})
    attrs["consumers"][0]["listings"].append({"price": 5})

    restored = SearchScheduler(ledger, rng=rng)
    assert restored.load_attrs(attrs) == 2
    assert [r.search_id for r in restored.searches_for(1)] == [good.search_id]


@pytest.mark.parametrize(
    "bad_search",
    [
        {"id": "SEARCH_00000099", "consumer_id": 1, "status": "bogus"},
        {"id": "SEARCH_00000098", "consumer_id": 1, "cost": "lots"},
        {"id": "SEARCH_00000097", "consumer_id": 1, "requested_configs": [{"id": "engine"}]},
        {"id": "SEARCH_00000096", "consumer_id": 1, "planned_configs": [{"id": "color", "index": None}]},
        "SEARCH_00000095",
    ],
)
def test_load_skips_entries_with_bad_fields(scheduler, ledger, rng, bad_search):
    good = submit(scheduler)
    attrs = scheduler.to_attrs()
    attrs["consumers"][0]["searches"].append(bad_search)
    attrs["consumers"][0]["listings"].append({"id": "LISTING_D1_00000050", "consumer_id": 1, "inspection_state": "maybe"})

    restored = SearchScheduler(ledger, rng=rng)
    assert restored.load_attrs(attrs) == 2
    assert [r.search_id for r in restored.searches_for(1)] == [good.search_id]
    assert restored.listings_for(1) == []


def test_consumer_snapshot_round_trip(scheduler):
    record, listing = found_listing(scheduler)
    pending = submit(scheduler)
    w = WireWriter()
    scheduler.write_consumer_snapshot(w, 1)
    consumer_id, records, listings = read_consumer_snapshot(WireReader(w.getvalue()))
    assert consumer_id == 1
    assert records == [record, pending]
    assert listings == [listing]

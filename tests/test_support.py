import json

import pytest

from game.errors import CorruptRecord
from game.net.wire import WireReader, WireWriter
from game.persistence.state_store import MarketStateStore, StorePaths
from game.sim.contracts import SearchStatusSnapshot
from game.sim.timebase import SimTime, format_duration
from game.systems.economy import EconomySystem
from game.systems.notices import NoticeBoard, NoticeKind
from game.entities.search_record import SearchRecord


def test_wire_mixed_fields():
    w = WireWriter()
    w.write_int(-7)
    w.write_float(0.125)
    w.write_bool(True)
    w.write_str("Mähdrescher")
    r = WireReader(w.getvalue())
    assert (r.read_int(), r.read_float(), r.read_bool(), r.read_str()) == (-7, 0.125, True, "Mähdrescher")
    assert r.remaining == 0


def test_simtime_ordering_and_hours():
    assert SimTime(1, 3).total_hours == 27
    assert SimTime.from_hours(27) == SimTime(1, 3)
    assert SimTime(0, 23) < SimTime(1, 0)
    assert SimTime(2, 20).plus_hours(5) == SimTime(3, 1)
    assert format_duration(49) == "2 days, 1 hours"


def test_simtime_normalizes_overflowing_hours():
    late = SimTime(0, 30)
    assert (late.day, late.hour) == (1, 6)
    assert late == SimTime(1, 6)
    assert SimTime(1, 3) < late
    assert SimTime(2, -1) == SimTime(1, 23)


def test_economy_ledger():
    ledger = EconomySystem(starting_funds=100)
    assert ledger.charge(1, 60)
    assert not ledger.charge(1, 60)
    assert ledger.balance(1) == 40
    ledger.credit(1, 60)
    assert ledger.balance(1) == 100
    assert [t["type"] for t in ledger.get_recent_transactions()] == ["charge", "credit"]


def test_notice_board_drains_per_consumer():
    board = NoticeBoard()
    board.post(NoticeKind.ITEM_FOUND, 1, "found")
    board.post(NoticeKind.SEARCH_FAILED, 2, "failed")
    assert [n.consumer_id for n in board.drain(2)] == [2]
    assert len(board) == 1
    assert board.drain()[0].to_dict()["kind"] == "item_found"
    assert len(board) == 0


def test_status_snapshot_hides_outcome():
    record = SearchRecord(
        search_id="SEARCH_00000001", consumer_id=1, catalog_key="baler", item_name="Round Baler",
        base_price=52_000.0, tier_id="national", quality_id="good", cost=5200, ttl=50, tts=30,
        succeeds=True, planned_price=30_000,
    )
    d = SearchStatusSnapshot.from_record(record).to_dict()
    assert d["tier_name"] == "National Search"
    assert d["remaining"] == "2 days, 2 hours"
    assert "tts" not in d and "planned_price" not in d


def test_store_writes_atomically(tmp_path):
    store = MarketStateStore(StorePaths(root=tmp_path / "save"))
    assert store.load() is None
    store.save({"now_hours": 5})
    assert store.load() == {"now_hours": 5}
    assert not (tmp_path / "save" / "state.json.tmp").exists()


def test_store_rejects_garbage(tmp_path):
    (tmp_path / "state.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(CorruptRecord):
        MarketStateStore(StorePaths(root=tmp_path)).load()


def test_store_notice_log(tmp_path):
    store = MarketStateStore.at(tmp_path / "state.json")
    store.append_notices([{"kind": "item_found"}, {"kind": "search_failed"}])
    store.append_notices([{"kind": "discovery"}])
    assert [d["kind"] for d in store.read_notices()] == ["item_found", "search_failed", "discovery"]
    assert json.loads((tmp_path / "notices.jsonl").read_text(encoding="utf-8").splitlines()[0]) == {"kind": "item_found"}

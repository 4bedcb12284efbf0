"""
Used Market Sim - headless procurement simulation.

Usage:
    python main.py [--days N] [--consumers N] [--seed N] [--save PATH] [--resume] [--debug]

Runs scripted consumers against the search scheduler and discovery gate, one
sim hour per step, and prints a summary at the end.
"""
import argparse
import sys

from config import SAVE_PATH, SIM_SEED, SIM_TITLE
from ai.basic_buyer import BasicBuyer, Garage, ProfileFleet, ProfileRating, make_profiles
from game.engine import MarketEngine
from game.errors import CorruptRecord
from game.persistence.state_store import MarketStateStore
from game.sim.log import set_debug


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Used Market Sim - headless procurement simulation")
    parser.add_argument("--days", type=int, default=30, help="sim days to run (default: 30)")
    parser.add_argument("--consumers", type=int, default=8, help="number of scripted consumers (default: 8)")
    parser.add_argument("--seed", type=int, default=SIM_SEED, help="rng seed")
    parser.add_argument("--save", type=str, default=None, help=f"write state here when done (e.g. {SAVE_PATH})")
    parser.add_argument("--resume", action="store_true", help="load --save before running")
    parser.add_argument("--debug", action="store_true", help="print per-system debug lines")
    parser.add_argument("--qa", action="store_true", help="exit non-zero if the run looks broken")
    return parser.parse_args(argv)


def run(days: int, consumers: int, seed: int, *, store=None, resume=False):
    """Run the sim and return (engine, garage, buyer)."""
    profiles = {}
    garage = Garage()
    engine = MarketEngine(
        rating=ProfileRating(profiles),
        acquirer=garage,
        fleet=ProfileFleet(profiles),
        seed=seed,
    )
    # Engine construction sets the sim seed; profiles must be drawn after it.
    profiles.update(make_profiles(consumers))
    if resume and store is not None:
        engine.load(store)
    buyer = BasicBuyer(engine, profiles)

    engine.tick(engine.now)
    start = engine.now.total_hours
    for step in range(1, int(days) * 24 + 1):
        engine.tick(engine.now.plus_hours(1))
        # Consumers act once per day, at the start of the day.
        if (start + step) % 24 == 0:
            buyer.update()
        notices = engine.notices.drain()
        if store is not None and notices:
            store.append_notices(n.to_dict() for n in notices)
    return engine, garage, buyer


def print_summary(engine, garage):
    print()
    print(f"Day {engine.now.day}, hour {engine.now.hour}")
    print(f"  active searches: {engine.scheduler.total_active()}")
    for cid in sorted(engine.gate.states):
        status = engine.gate.status(cid, engine.now)
        delivered = garage.delivered.get(cid, [])
        print(
            f"  consumer {cid}: funds={engine.ledger.balance(cid)} "
            f"delivered={len(delivered)} listings={len(engine.scheduler.listings_for(cid))} "
            f"discovered={status.discovered} purchased={status.purchased}"
        )
    print(f"  total charged: {engine.ledger.total_charged}, refunded: {engine.ledger.total_refunded}")


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    set_debug(args.debug)

    print("=" * 50)
    print(f"  {SIM_TITLE}")
    print("=" * 50)

    store = MarketStateStore.at(args.save) if args.save else None
    try:
        engine, garage, _ = run(args.days, args.consumers, args.seed, store=store, resume=args.resume)
    except CorruptRecord as e:
        print(f"Error: save file is unreadable: {e}")
        return 2

    print_summary(engine, garage)

    if store is not None:
        engine.save(store)
        print(f"Saved to {store.paths.state_json}")

    if args.qa:
        if engine.ledger.total_charged <= 0:
            print("QA FAIL: no fees were charged")
            return 1
        for cid in sorted(engine.gate.states):
            if engine.scheduler.active_count(cid) > engine.scheduler.max_active:
                print(f"QA FAIL: consumer {cid} exceeds the active search limit")
                return 1
        print("QA PASS")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
QA smoke runner (headless).

Wraps main.py into a few standard profiles so QA/regressions can be run as a
single command that returns a useful exit code.

Examples:
  python tools/qa_smoke.py --quick
  python tools/qa_smoke.py --days 60 --consumers 20 --seed 3
"""

from __future__ import annotations

import argparse
import subprocess
import sys
import tempfile
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
RUNNER = PROJECT_ROOT / "main.py"
DETERMINISM_GUARD = PROJECT_ROOT / "tools" / "determinism_guard.py"


def _run_determinism_guard(*, title: str) -> int:
    if not DETERMINISM_GUARD.exists():
        print(f"\n[qa_smoke] === {title} ===")
        print(f"[qa_smoke] WARN: missing {DETERMINISM_GUARD}; skipping determinism guard")
        return 0

    cmd = [sys.executable, str(DETERMINISM_GUARD)]
    print(f"\n[qa_smoke] === {title} ===")
    print("[qa_smoke] cmd:", " ".join(cmd))
    completed = subprocess.run(cmd, cwd=str(PROJECT_ROOT))
    print(f"[qa_smoke] exit_code={completed.returncode}")
    return int(completed.returncode)


def _run_profile(args_list: list[str], *, title: str) -> int:
    cmd = [sys.executable, str(RUNNER), "--qa", *args_list]
    print(f"\n[qa_smoke] === {title} ===")
    print("[qa_smoke] cmd:", " ".join(cmd))
    completed = subprocess.run(cmd, cwd=str(PROJECT_ROOT))
    print(f"[qa_smoke] exit_code={completed.returncode}")
    return int(completed.returncode)


def main() -> int:
    ap = argparse.ArgumentParser(description="Run headless QA smoke profiles")
    ap.add_argument("--days", type=int, default=20, help="sim days per profile")
    ap.add_argument("--consumers", type=int, default=8, help="number of scripted consumers")
    ap.add_argument("--seed", type=int, default=3, help="rng seed")
    ap.add_argument("--quick", action="store_true", help="run a small set of standard smoke profiles")
    ns = ap.parse_args()

    if not RUNNER.exists():
        print(f"[qa_smoke] ERROR: missing {RUNNER}")
        return 2

    base = ["--days", str(ns.days), "--consumers", str(ns.consumers), "--seed", str(ns.seed)]

    if not ns.quick:
        rc = _run_profile(base, title="custom")
        print("\n[qa_smoke] DONE:", "PASS" if rc == 0 else f"FAIL (rc={rc})")
        return rc

    # Determinism is a release gate: fail fast if wall-clock/global RNG crept into sim logic.
    rc = _run_determinism_guard(title="determinism_guard (static)")
    if rc != 0:
        print("\n[qa_smoke] DONE:", f"FAIL (rc={rc})")
        return rc

    with tempfile.TemporaryDirectory(prefix="qa_smoke_") as tmp:
        save = str(Path(tmp) / "state.json")
        profiles: list[tuple[str, list[str]]] = [
            ("base (searches, listings, inspections, discovery)", base),
            ("crowd (many consumers)", ["--days", str(ns.days), "--consumers", str(ns.consumers * 4), "--seed", str(ns.seed)]),
            ("save", [*base, "--save", save]),
            ("resume from save", [*base, "--save", save, "--resume"]),
        ]
        for title, a in profiles:
            rc = _run_profile(a, title=title)
            if rc != 0:
                break

    print("\n[qa_smoke] DONE:", "PASS" if rc == 0 else f"FAIL (rc={rc})")
    return rc


if __name__ == "__main__":
    raise SystemExit(main())

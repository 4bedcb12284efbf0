"""
Determinism guard (static check).

Search outcomes and discovery rolls must replay identically from a seed, so the
procurement code may only use the seeded streams from game.sim.determinism and the
explicit SimTime passed into tick/expire_check.

What we flag:
- Wall-clock time: time.time(), time.monotonic(), time.perf_counter(), datetime.now()/utcnow()/today()
- Global RNG: random.random/randint/choice/... and unseeded random.Random()
- Other entropy: os.urandom(), uuid.uuid1()/uuid4(), secrets.*
- Python's hash() (process-randomized by default)

Not scanned:
- game/sim/** (this contains the deterministic wrappers)
- game/persistence/** (file IO only)
"""

from __future__ import annotations

import argparse
import ast
import json
from pathlib import Path
from typing import Iterable


PROJECT_ROOT = Path(__file__).resolve().parents[1]


DEFAULT_SCAN_DIRS = [
    PROJECT_ROOT / "game" / "entities",
    PROJECT_ROOT / "game" / "systems",
    PROJECT_ROOT / "game" / "engine.py",
    PROJECT_ROOT / "ai",
]

DEFAULT_EXCLUDE_DIRS = [
    PROJECT_ROOT / "game" / "sim",
    PROJECT_ROOT / "game" / "persistence",
]


_RANDOM_ATTRS = {
    "random",
    "randint",
    "uniform",
    "choice",
    "choices",
    "sample",
    "shuffle",
    "seed",
    "randrange",
    "gauss",
}

_TIME_ATTRS_FORBIDDEN = {
    "time",
    "monotonic",
    "perf_counter",
    "time_ns",
}

_DATETIME_ATTRS_FORBIDDEN = {
    "now",
    "utcnow",
    "today",
}

_UUID_ATTRS_FORBIDDEN = {
    "uuid1",
    "uuid4",
}


def _is_under(path: Path, parent: Path) -> bool:
    try:
        path.resolve().relative_to(parent.resolve())
        return True
    except ValueError:
        return False


def _iter_py_files(roots: Iterable[Path], *, exclude_dirs: list[Path]) -> list[Path]:
    out: list[Path] = []
    for root in roots:
        if not root.exists():
            continue
        if root.is_file() and root.suffix.lower() == ".py":
            out.append(root)
            continue
        for p in root.rglob("*.py"):
            if any(_is_under(p, ex) for ex in exclude_dirs):
                continue
            out.append(p)
    return sorted(set(out))


def _attr_chain(node: ast.AST) -> list[str] | None:
    """
    For Attribute chains, return list like ["datetime", "datetime", "now"].
    For Names, return ["name"].
    """
    if isinstance(node, ast.Name):
        return [node.id]
    if isinstance(node, ast.Attribute):
        base = _attr_chain(node.value)
        if base is None:
            return None
        return [*base, node.attr]
    return None


def _display_path(file: Path) -> str:
    try:
        return str(file.resolve().relative_to(PROJECT_ROOT))
    except ValueError:
        return str(file)


def _violation(kind: str, file: Path, node: ast.AST, detail: str) -> dict:
    return {
        "kind": kind,
        "file": _display_path(file),
        "line": int(getattr(node, "lineno", 0) or 0),
        "col": int(getattr(node, "col_offset", 0) or 0),
        "detail": detail,
    }


def _classify(chain: list[str], node: ast.Call) -> tuple[str, str] | None:
    """Return (kind, detail) for a forbidden call, or None."""
    if len(chain) == 2 and chain[0] == "time" and chain[1] in _TIME_ATTRS_FORBIDDEN:
        return "wall_clock_time", f"avoid time.{chain[1]}(); pass a SimTime in instead"

    if chain[-1] in _DATETIME_ATTRS_FORBIDDEN and ("datetime" in chain or "date" in chain):
        return "wall_clock_time", f"avoid {'.'.join(chain)}(); pass a SimTime in instead"

    if len(chain) == 2 and chain[0] == "random" and chain[1] in _RANDOM_ATTRS:
        return "global_rng", f"use game.sim.determinism.get_rng(tag) instead of random.{chain[1]}()"

    if chain == ["random", "Random"] and not node.args and not node.keywords:
        return "global_rng", "random.Random() without a seed; use get_rng(tag)"

    if chain == ["os", "urandom"] or chain[0] == "secrets":
        return "entropy", f"{'.'.join(chain)}() is not reproducible"

    if len(chain) == 2 and chain[0] == "uuid" and chain[1] in _UUID_ATTRS_FORBIDDEN:
        return "entropy", f"uuid.{chain[1]}() is not reproducible; ids come from the scheduler counter"

    if chain == ["hash"]:
        return "unstable_hash", "avoid hash(); use a stable hash (e.g. zlib.crc32) or explicit ids"

    return None


def scan_source(src: str, file_path: Path) -> list[dict]:
    try:
        tree = ast.parse(src, filename=str(file_path))
    except SyntaxError as e:
        return [
            {
                "kind": "parse_error",
                "file": _display_path(file_path),
                "line": int(getattr(e, "lineno", 0) or 0),
                "col": int(getattr(e, "offset", 0) or 0),
                "detail": f"SyntaxError: {e}",
            }
        ]

    findings: list[dict] = []
    for node in ast.walk(tree):
        if not isinstance(node, ast.Call):
            continue
        chain = _attr_chain(node.func)
        if not chain:
            continue
        hit = _classify(chain, node)
        if hit is not None:
            findings.append(_violation(hit[0], file_path, node, hit[1]))
    return findings


def scan_file(file_path: Path) -> list[dict]:
    try:
        src = file_path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        src = file_path.read_text(encoding="utf-8", errors="replace")
    return scan_source(src, file_path)


def scan_paths(roots: Iterable[Path], *, exclude_dirs: list[Path] | None = None) -> list[dict]:
    excludes = list(DEFAULT_EXCLUDE_DIRS) if exclude_dirs is None else list(exclude_dirs)
    findings: list[dict] = []
    for f in _iter_py_files(roots, exclude_dirs=excludes):
        findings.extend(scan_file(f))
    return findings


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Static determinism guard (procurement code)")
    ap.add_argument(
        "--paths",
        nargs="*",
        default=[],
        help="Optional paths to scan (files or dirs). Default scans game/entities, game/systems, game/engine.py, ai.",
    )
    ap.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    ns = ap.parse_args(argv)

    roots = [Path(p) for p in ns.paths] if ns.paths else list(DEFAULT_SCAN_DIRS)
    all_findings = scan_paths(roots)

    if ns.json:
        print(json.dumps({"findings": all_findings}, indent=2))
    else:
        if not all_findings:
            print("[determinism_guard] PASS: no violations found")
        else:
            print(f"[determinism_guard] FAIL: {len(all_findings)} violation(s)")
            for v in all_findings:
                print(f"- {v['file']}:{v['line']}:{v['col']} [{v['kind']}] {v['detail']}")

    return 0 if not all_findings else 1


if __name__ == "__main__":
    raise SystemExit(main())

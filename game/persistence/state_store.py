from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from game.errors import CorruptRecord
from game.sim.log import debug_log

_TAG = "store"


def _atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)


@dataclass
class StorePaths:
    root: Path

    @property
    def state_json(self) -> Path:
        return self.root / "state.json"

    @property
    def notices_jsonl(self) -> Path:
        return self.root / "notices.jsonl"


class MarketStateStore:
    """
    File-backed store.

    - state.json: scheduler, discovery gate and ledger attribute forms
    - notices.jsonl: append-only notice history
    """

    def __init__(self, paths: StorePaths):
        self.paths = paths

    @classmethod
    def at(cls, save_path: str | os.PathLike) -> "MarketStateStore":
        """Store rooted at the directory holding `save_path` (e.g. config.SAVE_PATH)."""
        return cls(StorePaths(root=Path(save_path).parent))

    def exists(self) -> bool:
        return self.paths.state_json.exists()

    def load(self) -> Optional[dict[str, Any]]:
        p = self.paths.state_json
        if not p.exists():
            return None
        try:
            raw = json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise CorruptRecord(f"{p}: {e}") from e
        if not isinstance(raw, dict):
            raise CorruptRecord(f"{p}: expected an object at top level")
        debug_log(_TAG, f"loaded {p}")
        return raw

    def save(self, payload: dict[str, Any]) -> None:
        _atomic_write_text(self.paths.state_json, json.dumps(payload, indent=2, sort_keys=True))
        debug_log(_TAG, f"saved {self.paths.state_json}")

    def append_notices(self, notices: Iterable[dict[str, Any]]) -> int:
        p = self.paths.notices_jsonl
        p.parent.mkdir(parents=True, exist_ok=True)
        n = 0
        with p.open("a", encoding="utf-8") as f:
            for d in notices:
                f.write(json.dumps(d, sort_keys=True) + "\n")
                n += 1
        return n

    def read_notices(self) -> list[dict[str, Any]]:
        p = self.paths.notices_jsonl
        if not p.exists():
            return []
        out = []
        for line in p.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line:
                out.append(json.loads(line))
        return out

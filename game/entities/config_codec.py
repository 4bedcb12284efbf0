"""
Encoding for configuration maps (config id -> option index, or None for "no match").
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from game.net.wire import WireReader, WireWriter

# Encoded form of "seller had a different option".
NO_MATCH = -1


def configs_to_attrs(configs: Mapping[str, Optional[int]]) -> list[dict[str, Any]]:
    return [{"id": k, "index": NO_MATCH if v is None else int(v)} for k, v in sorted(configs.items())]


def configs_from_attrs(raw: Any) -> dict[str, Optional[int]]:
    out: dict[str, Optional[int]] = {}
    for c in raw or []:
        cid = c.get("id")
        if not cid:
            continue
        idx = int(c.get("index", NO_MATCH))
        out[str(cid)] = None if idx == NO_MATCH else idx
    return out


def write_configs(w: WireWriter, configs: Mapping[str, Optional[int]]) -> None:
    w.write_int(len(configs))
    for k, v in sorted(configs.items()):
        w.write_str(k)
        w.write_int(NO_MATCH if v is None else int(v))


def read_configs(r: WireReader) -> dict[str, Optional[int]]:
    out: dict[str, Optional[int]] = {}
    for _ in range(r.read_int()):
        k = r.read_str()
        v = r.read_int()
        out[k] = None if v == NO_MATCH else v
    return out

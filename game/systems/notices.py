"""
Notice board: the systems post what happened, the caller drains and presents it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class NoticeKind(str, Enum):
    SEARCH_STARTED = "search_started"
    ITEM_FOUND = "item_found"
    SEARCH_FAILED = "search_failed"
    SEARCH_CANCELLED = "search_cancelled"
    LISTING_PURCHASED = "listing_purchased"
    LISTING_EXPIRED = "listing_expired"
    LISTING_DECLINED = "listing_declined"
    INSPECTION_STARTED = "inspection_started"
    INSPECTION_COMPLETE = "inspection_complete"
    DISCOVERY = "discovery"
    DISCOVERY_DECLINED = "discovery_declined"
    DISCOVERY_EXPIRED = "discovery_expired"
    DISCOVERY_PURCHASED = "discovery_purchased"


@dataclass(slots=True)
class Notice:
    kind: NoticeKind
    consumer_id: int
    at_hour: int
    message: str
    ref_id: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d


class NoticeBoard:
    def __init__(self):
        self._pending: list[Notice] = []

    def post(
        self,
        kind: NoticeKind,
        consumer_id: int,
        message: str,
        *,
        at_hour: int = 0,
        ref_id: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> Notice:
        n = Notice(
            kind=kind,
            consumer_id=int(consumer_id),
            at_hour=int(at_hour),
            message=message,
            ref_id=ref_id,
            data=data or {},
        )
        self._pending.append(n)
        return n

    def drain(self, consumer_id: Optional[int] = None) -> list[Notice]:
        """Remove and return pending notices (all, or one consumer's)."""
        if consumer_id is None:
            out, self._pending = self._pending, []
            return out
        out = [n for n in self._pending if n.consumer_id == int(consumer_id)]
        self._pending = [n for n in self._pending if n.consumer_id != int(consumer_id)]
        return out

    def peek(self) -> list[Notice]:
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

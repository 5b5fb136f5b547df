"""
Portfolio of generated results with explicit expiry handling.

Expired items are only removed by ``prune(now)``; nothing is swept on import
or as a side effect of reading. The clock is injected so tests control time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol
from uuid import uuid4

import structlog

from ..utils.atomic import atomic_write_json, read_json

logger = structlog.get_logger(__name__)

ClockFn = Callable[[], datetime]

DEFAULT_TTL = timedelta(hours=72)
SCHEMA_VERSION = 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(slots=True, frozen=True)
class PortfolioItem:
    id: str
    saved_at: datetime
    expires_at: Optional[datetime]
    payload: Dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "saved_at": self.saved_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "payload": self.payload,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PortfolioItem":
        saved_at = _parse_timestamp(data.get("saved_at"))
        if saved_at is None:
            raise ValueError(f"Portfolio item {data.get('id')!r} has no saved_at timestamp")
        return cls(
            id=str(data["id"]),
            saved_at=saved_at,
            expires_at=_parse_timestamp(data.get("expires_at")),
            payload=dict(data.get("payload") or {}),
        )


@dataclass(slots=True, frozen=True)
class PruneReport:
    deleted_count: int
    remaining_count: int


class PortfolioBackend(Protocol):
    def load(self) -> List[PortfolioItem]: ...

    def save_all(self, items: List[PortfolioItem]) -> None: ...


class InMemoryPortfolioBackend:
    def __init__(self, items: Optional[List[PortfolioItem]] = None) -> None:
        self._items: List[PortfolioItem] = list(items or [])

    def load(self) -> List[PortfolioItem]:
        return list(self._items)

    def save_all(self, items: List[PortfolioItem]) -> None:
        self._items = list(items)


class JsonFilePortfolioBackend:
    """Stores the portfolio as one JSON document, rewritten atomically."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> List[PortfolioItem]:
        document = read_json(self.path, default={"version": SCHEMA_VERSION, "items": []})
        return [PortfolioItem.from_dict(entry) for entry in document.get("items", [])]

    def save_all(self, items: List[PortfolioItem]) -> None:
        atomic_write_json(self.path, {"version": SCHEMA_VERSION, "items": [item.to_dict() for item in items]})


class PortfolioStore:
    """Saved generation results with a fixed time-to-live."""

    def __init__(
        self,
        backend: Optional[PortfolioBackend] = None,
        *,
        clock: ClockFn = _utcnow,
        ttl: timedelta = DEFAULT_TTL,
    ) -> None:
        self.backend: PortfolioBackend = backend or InMemoryPortfolioBackend()
        self.clock = clock
        self.ttl = ttl
        self.logger = logger.bind(component="PortfolioStore")

    def save(self, payload: Dict[str, Any], *, expires: bool = True) -> PortfolioItem:
        now = self.clock()
        item = PortfolioItem(
            id=f"portfolio_{uuid4().hex[:12]}",
            saved_at=now,
            expires_at=now + self.ttl if expires else None,
            payload=dict(payload),
        )
        items = self.backend.load()
        items.append(item)
        self.backend.save_all(items)
        self.logger.info("Saved portfolio item", item_id=item.id, expires_at=item.expires_at)
        return item

    def list(self, now: Optional[datetime] = None) -> List[PortfolioItem]:
        """Unexpired items, newest first. Does not modify the backend."""
        now = now or self.clock()
        live = [item for item in self.backend.load() if not item.is_expired(now)]
        return sorted(live, key=lambda item: item.saved_at, reverse=True)

    def get(self, item_id: str) -> Optional[PortfolioItem]:
        return next((item for item in self.backend.load() if item.id == item_id), None)

    def delete(self, item_id: str) -> bool:
        items = self.backend.load()
        remaining = [item for item in items if item.id != item_id]
        if len(remaining) == len(items):
            return False
        self.backend.save_all(remaining)
        self.logger.info("Deleted portfolio item", item_id=item_id)
        return True

    def prune(self, now: Optional[datetime] = None) -> PruneReport:
        """Remove items whose expiry is at or before ``now``."""
        now = now or self.clock()
        items = self.backend.load()
        remaining = [item for item in items if not item.is_expired(now)]
        deleted = len(items) - len(remaining)
        if deleted:
            self.backend.save_all(remaining)
            self.logger.info("Pruned expired portfolio items", deleted=deleted, remaining=len(remaining))
        return PruneReport(deleted_count=deleted, remaining_count=len(remaining))

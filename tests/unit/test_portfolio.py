"""Unit tests for the portfolio store and its backends."""

import json
from datetime import timedelta

import pytest

from fitfetch.portfolio import (
    InMemoryPortfolioBackend,
    JsonFilePortfolioBackend,
    PortfolioItem,
    PortfolioStore,
)
from tests.helpers.fakes import FIXED_NOW


@pytest.mark.unit
class TestPortfolioStore:
    def test_save_stamps_timestamps(self, clock):
        store = PortfolioStore(clock=clock)

        item = store.save({"original_url": "https://example.com/a.png"})

        assert item.id.startswith("portfolio_")
        assert item.saved_at == FIXED_NOW
        assert item.expires_at == FIXED_NOW + timedelta(hours=72)
        assert item.payload == {"original_url": "https://example.com/a.png"}

    def test_list_is_newest_first_and_skips_expired(self, clock):
        store = PortfolioStore(clock=clock, ttl=timedelta(hours=1))
        old = store.save({"n": 1})
        clock.advance(minutes=30)
        newer = store.save({"n": 2})
        clock.advance(minutes=40)

        assert [item.id for item in store.list()] == [newer.id]
        assert [item.id for item in store.list(now=FIXED_NOW + timedelta(minutes=30))] == [newer.id, old.id]

    def test_list_does_not_remove_expired_items(self, clock):
        backend = InMemoryPortfolioBackend()
        store = PortfolioStore(backend, clock=clock, ttl=timedelta(hours=1))
        store.save({"n": 1})
        clock.advance(hours=2)

        assert store.list() == []
        assert len(backend.load()) == 1

    def test_items_without_expiry_are_kept(self, clock):
        store = PortfolioStore(clock=clock, ttl=timedelta(hours=1))
        pinned = store.save({"n": 1}, expires=False)
        clock.advance(days=30)

        assert pinned.expires_at is None
        assert store.list() == [pinned]
        assert store.prune().deleted_count == 0

    def test_prune_removes_only_expired(self, clock):
        store = PortfolioStore(clock=clock, ttl=timedelta(hours=72))
        expired = store.save({"n": 1})
        clock.advance(hours=48)
        live = store.save({"n": 2})

        report = store.prune(now=FIXED_NOW + timedelta(hours=72))

        assert report.deleted_count == 1
        assert report.remaining_count == 1
        assert store.get(expired.id) is None
        assert store.get(live.id) == live

    def test_expiry_boundary_is_inclusive(self, clock):
        store = PortfolioStore(clock=clock, ttl=timedelta(hours=1))
        item = store.save({})

        assert store.list(now=item.expires_at - timedelta(seconds=1)) == [item]
        assert store.list(now=item.expires_at) == []

    def test_delete(self, clock):
        store = PortfolioStore(clock=clock)
        item = store.save({})

        assert store.delete(item.id) is True
        assert store.delete(item.id) is False
        assert store.list() == []


@pytest.mark.unit
class TestJsonFilePortfolioBackend:
    def test_round_trip_through_file(self, tmp_path, clock):
        path = tmp_path / "nested" / "portfolio.json"
        store = PortfolioStore(JsonFilePortfolioBackend(path), clock=clock)
        item = store.save({"original_url": "https://example.com/a.png", "text": "looks great"})

        document = json.loads(path.read_text(encoding="utf-8"))
        assert document["version"] == 1
        assert document["items"][0]["id"] == item.id

        reopened = PortfolioStore(JsonFilePortfolioBackend(path), clock=clock)
        assert reopened.list() == [item]

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonFilePortfolioBackend(tmp_path / "absent.json").load() == []

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "portfolio.json"
        path.write_text("{broken", encoding="utf-8")

        with pytest.raises(ValueError):
            JsonFilePortfolioBackend(path).load()

    def test_naive_timestamps_are_read_as_utc(self):
        item = PortfolioItem.from_dict(
            {"id": "p1", "saved_at": "2024-05-01T12:00:00", "expires_at": None, "payload": {}}
        )

        assert item.saved_at == FIXED_NOW
        assert item.expires_at is None

    def test_item_without_saved_at_is_rejected(self):
        with pytest.raises(ValueError):
            PortfolioItem.from_dict({"id": "p1"})

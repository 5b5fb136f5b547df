"""Unit tests for atomic JSON persistence."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from fitfetch.utils.atomic import atomic_write_json, read_json


@pytest.mark.unit
class TestAtomicWriteJson:
    def test_writes_document_without_leftovers(self, tmp_path):
        target = tmp_path / "portfolio.json"
        data = {"version": 1, "items": [{"id": "p1", "payload": {"caption": "été"}}]}

        atomic_write_json(target, data)

        assert json.loads(target.read_text(encoding="utf-8")) == data
        assert [p.name for p in tmp_path.iterdir()] == ["portfolio.json"]

    def test_creates_parent_directories(self, tmp_path):
        target = tmp_path / "a" / "b" / "doc.json"

        atomic_write_json(target, {"ok": True})

        assert target.exists()

    def test_unserializable_data_leaves_target_untouched(self, tmp_path):
        target = tmp_path / "doc.json"
        atomic_write_json(target, {"version": 1})

        with pytest.raises(ValueError):
            atomic_write_json(target, {"bad": object()})

        assert json.loads(target.read_text(encoding="utf-8")) == {"version": 1}
        assert [p.name for p in tmp_path.iterdir()] == ["doc.json"]

    def test_failed_replace_cleans_up_temp_file(self, tmp_path):
        target = tmp_path / "doc.json"

        with patch("fitfetch.utils.atomic.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                atomic_write_json(target, {"version": 1})

        assert list(tmp_path.iterdir()) == []


@pytest.mark.unit
class TestReadJson:
    def test_missing_file_returns_default_copy(self, tmp_path):
        default = {"items": []}

        result = read_json(tmp_path / "absent.json", default=default)

        assert result == default
        assert result is not default

    def test_missing_file_without_default(self, tmp_path):
        assert read_json(tmp_path / "absent.json") == {}

    def test_non_object_document_is_rejected(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(ValueError, match="Expected a JSON object"):
            read_json(path)

    def test_corrupt_document_is_rejected(self, tmp_path):
        path = Path(tmp_path) / "corrupt.json"
        path.write_text('{"items": [', encoding="utf-8")

        with pytest.raises(ValueError, match="Corrupt JSON"):
            read_json(path)

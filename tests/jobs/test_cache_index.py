"""Tests for the in-memory cache index."""

from models.cache import ProcessCache
from services.jobs import CacheIndex


def make_record(record_id: int, key: str, value: str = "v") -> ProcessCache:
    return ProcessCache(id=record_id, process=1, job=1, machine="ci-1", key=key, value=value)


class TestCacheIndex:
    def test_starts_empty(self):
        index = CacheIndex()
        assert len(index) == 0
        assert index.keys() == []
        assert "anything" not in index

    def test_add_groups_by_key_in_insertion_order(self):
        index = CacheIndex()
        index.add(make_record(1, "a", "first"))
        index.add(make_record(2, "b"))
        index.add(make_record(3, "a", "second"))

        assert [r.value for r in index.get("a")] == ["first", "second"]
        assert index.first("a").id == 1
        assert len(index) == 3
        assert "a" in index and "b" in index

    def test_get_by_id(self):
        index = CacheIndex()
        record = make_record(7, "k")
        index.add(record)
        assert index.get_by_id(7) is record
        assert index.get_by_id(8) is None

    def test_get_missing_key(self):
        index = CacheIndex()
        assert index.get("missing") == []
        assert index.first("missing") is None

    def test_get_returns_copy(self):
        index = CacheIndex()
        index.add(make_record(1, "a"))
        index.get("a").append(make_record(2, "a"))
        assert len(index.get("a")) == 1

    def test_rebuild_replaces_contents(self):
        index = CacheIndex()
        index.add(make_record(1, "old"))

        index.rebuild([make_record(5, "x"), make_record(6, "x"), make_record(9, "y")])

        assert "old" not in index
        assert index.get_by_id(1) is None
        assert [r.id for r in index.get("x")] == [5, 6]
        assert len(index) == 3

    def test_records_in_id_order(self):
        index = CacheIndex()
        index.add(make_record(4, "b"))
        index.add(make_record(2, "a"))
        assert [r.id for r in index.records()] == [2, 4]

    def test_clear(self):
        index = CacheIndex()
        index.add(make_record(1, "a"))
        index.clear()
        assert len(index) == 0
        assert index.keys() == []

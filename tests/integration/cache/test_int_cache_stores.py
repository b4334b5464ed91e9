# tests/integration/cache/test_int_cache_stores.py - v4
"""Integration tests for cache backends: JSON + SQLite.

Every test in the contract classes runs once per backend through the
parametrized ``store`` fixture. No external services required.
Coverage targets: json_store.py, sqlite_store.py, cache_factory.py, fingerprint.py
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from promptcache.cache.base_cache_store import NOT_INITIALIZED
from promptcache.cache.cache_factory import create_cache_store, open_cache_store
from promptcache.cache.errors import InvalidImportStrategyError
from promptcache.cache.fingerprint import hash_prompt
from promptcache.cache.models import CacheEntry, CacheSnapshot, ListOptions


def _aged(make_entry, prompt: str, days: float, **kwargs) -> CacheEntry:
    created = datetime.now(timezone.utc) - timedelta(days=days)
    return make_entry(prompt, created=created, **kwargs)


class TestStoreEntries:
    def test_set_then_get(self, store, sample_entry):
        result = store.set(sample_entry.hash, sample_entry)
        assert result.success
        assert result.is_new
        got = store.get(sample_entry.hash)
        assert got is not None
        assert got.hash == sample_entry.hash
        assert got.prompt == sample_entry.prompt
        assert got.response == sample_entry.response
        assert got.model == "gpt-4o"

    def test_get_missing(self, store):
        assert store.get("000000000000") is None

    def test_overwrite_is_not_new(self, store, sample_entry):
        store.set(sample_entry.hash, sample_entry)
        updated = sample_entry.model_copy(update={"response": "v2", "hits": 5})
        result = store.set(sample_entry.hash, updated)
        assert result.success
        assert not result.is_new
        got = store.get(sample_entry.hash)
        assert got.response == "v2"
        assert got.hits == 5
        assert store.get_stats().total_entries == 1

    def test_delete(self, store, sample_entry):
        store.set(sample_entry.hash, sample_entry)
        assert store.delete(sample_entry.hash)
        assert store.get(sample_entry.hash) is None
        assert store.get_stats().total_entries == 0

    def test_delete_missing(self, store):
        assert not store.delete("000000000000")

    def test_is_initialized(self, store):
        assert store.is_initialized()

    def test_context_manager(self, tmp_cache_dir, store):
        with open_cache_store(tmp_cache_dir) as again:
            assert again.is_initialized()


class TestStoreListing:
    @pytest.fixture
    def populated(self, store, make_entry):
        entries = [
            _aged(make_entry, "oldest", 3, model="gpt-4", hits=1),
            _aged(make_entry, "middle", 2, model="gpt-4o", hits=7),
            _aged(make_entry, "newest", 1, model="gpt-4", hits=3),
        ]
        for e in entries:
            store.set(e.hash, e)
        return store

    def test_newest_first(self, populated):
        assert [e.prompt for e in populated.list_entries()] == ["newest", "middle", "oldest"]

    def test_sort_by_hits(self, populated):
        listed = populated.list_entries(ListOptions(sort="hits"))
        assert [e.hits for e in listed] == [7, 3, 1]

    def test_filter_model(self, populated):
        listed = populated.list_entries(ListOptions(model="gpt-4"))
        assert {e.prompt for e in listed} == {"oldest", "newest"}

    def test_limit(self, populated):
        assert len(populated.list_entries(ListOptions(limit=2))) == 2

    def test_unknown_model_empty(self, populated):
        assert populated.list_entries(ListOptions(model="llama")) == []

    def test_hash_attached(self, populated):
        for e in populated.list_entries():
            assert e.hash == hash_prompt(e.prompt, e.model)

    def test_equal_hits_newest_first(self, store, make_entry):
        for e in [
            _aged(make_entry, "older tie", 3, hits=2),
            _aged(make_entry, "newer tie", 1, hits=2),
            _aged(make_entry, "top", 2, hits=5),
        ]:
            store.set(e.hash, e)
        listed = store.list_entries(ListOptions(sort="hits"))
        assert [e.prompt for e in listed] == ["top", "newer tie", "older tie"]


class TestStoreCorruption:
    @pytest.fixture
    def damaged(self, store, tmp_cache_dir):
        store.close()
        (tmp_cache_dir / store.marker_name).write_bytes(b"this is not a cache file" * 100)
        return store

    def test_reads_as_uninitialized(self, damaged):
        assert not damaged.is_initialized()
        assert damaged.get("x") is None
        assert damaged.list_entries() == []
        assert damaged.get_stats() is None
        assert damaged.export_data() is None

    def test_set_reports_not_initialized(self, damaged, sample_entry):
        result = damaged.set(sample_entry.hash, sample_entry)
        assert not result.success
        assert result.error == NOT_INITIALIZED

    def test_delete_returns_false(self, damaged):
        assert damaged.delete("x") is False

    @pytest.mark.parametrize("days", [None, 7])
    def test_clear_reports_not_initialized(self, damaged, days):
        result = damaged.clear(older_than_days=days)
        assert not result.success
        assert result.message == NOT_INITIALIZED

    def test_import_reports_not_initialized(self, damaged, sample_entry):
        snapshot = CacheSnapshot(entries={sample_entry.hash: sample_entry})
        result = damaged.import_data(snapshot, "merge")
        assert not result.success
        assert result.imported == 0
        assert result.message == NOT_INITIALIZED

    def test_update_stats_is_noop(self, damaged, tmp_cache_dir):
        damaged.update_stats(total_hits=3)
        assert damaged.get_stats() is None
        assert (tmp_cache_dir / damaged.marker_name).read_bytes().startswith(b"this is not")


class TestStoreStats:
    def test_initial(self, store):
        stats = store.get_stats()
        assert stats.total_entries == 0
        assert stats.total_hits == 0
        assert stats.total_saved == 0
        assert stats.cache_size > 0

    def test_update_merges(self, store):
        store.update_stats(total_hits=4)
        store.update_stats(total_saved=120)
        stats = store.get_stats()
        assert stats.total_hits == 4
        assert stats.total_saved == 120

    def test_update_rejects_unknown(self, store):
        with pytest.raises(ValueError):
            store.update_stats(bogus=1)


class TestStoreClear:
    def test_clear_all(self, store, sample_entry, old_entry):
        store.set(sample_entry.hash, sample_entry)
        store.set(old_entry.hash, old_entry)
        store.update_stats(total_hits=3, total_saved=30)

        result = store.clear()
        assert result.success
        assert result.removed == 2
        stats = store.get_stats()
        assert stats.total_entries == 0
        assert stats.total_hits == 0
        assert stats.total_saved == 0

    def test_clear_older_than(self, store, sample_entry, old_entry):
        store.set(sample_entry.hash, sample_entry)
        store.set(old_entry.hash, old_entry)
        store.update_stats(total_hits=3)

        result = store.clear(older_than_days=7)
        assert result.removed == 1
        assert store.get(old_entry.hash) is None
        assert store.get(sample_entry.hash) is not None
        stats = store.get_stats()
        assert stats.total_entries == 1
        assert stats.total_hits == 3

    def test_clear_older_than_nothing_stale(self, store, sample_entry):
        store.set(sample_entry.hash, sample_entry)
        assert store.clear(older_than_days=30).removed == 0

    def test_clear_empty(self, store):
        assert store.clear().removed == 0


class TestStoreInterchange:
    def test_export_layout(self, store, sample_entry):
        store.set(sample_entry.hash, sample_entry)
        snap = store.export_data()
        assert set(snap.entries) == {sample_entry.hash}
        assert snap.stats.total_entries == 1
        assert snap.meta.backend == store.backend
        doc = snap.to_document()
        assert json.loads(json.dumps(doc))["stats"]["totalEntries"] == 1

    def test_import_into_empty(self, store, sample_entry):
        snap = CacheSnapshot(entries={sample_entry.hash: sample_entry})
        result = store.import_data(snap)
        assert result.imported == 1
        assert result.skipped == 0
        assert store.get_stats().total_entries == 1

    def test_import_accepts_document_dict(self, store, sample_entry):
        doc = CacheSnapshot(entries={sample_entry.hash: sample_entry}).to_document()
        assert store.import_data(doc, "replace").imported == 1
        assert store.get(sample_entry.hash).prompt == sample_entry.prompt

    @pytest.mark.parametrize("strategy", ["merge", "skip-existing"])
    def test_import_keeps_local(self, store, sample_entry, strategy, make_entry):
        store.set(sample_entry.hash, sample_entry)
        incoming = sample_entry.model_copy(update={"response": "remote"})
        other = make_entry("another prompt")
        snap = CacheSnapshot(entries={sample_entry.hash: incoming, other.hash: other})

        result = store.import_data(snap, strategy)
        assert result.imported == 1
        assert result.skipped == 1
        assert store.get(sample_entry.hash).response == sample_entry.response
        assert store.get_stats().total_entries == 2

    def test_import_replace_overwrites(self, store, sample_entry):
        store.set(sample_entry.hash, sample_entry)
        incoming = sample_entry.model_copy(update={"response": "remote"})
        result = store.import_data(
            CacheSnapshot(entries={sample_entry.hash: incoming}), "replace"
        )
        assert result.imported == 1
        assert store.get(sample_entry.hash).response == "remote"

    def test_import_invalid_strategy(self, store):
        with pytest.raises(InvalidImportStrategyError):
            store.import_data(CacheSnapshot(), "upsert")


class TestCrossBackend:
    def test_json_to_sqlite_round_trip(self, tmp_path, make_entry):
        src = create_cache_store(tmp_path / "src", "json")
        dst = create_cache_store(tmp_path / "dst", "sqlite")
        src.init()
        dst.init()
        try:
            for i in range(3):
                e = _aged(make_entry, f"prompt {i}", i, hits=i, tags=["t"] if i else None)
                src.set(e.hash, e)

            result = dst.import_data(src.export_data().to_document(), "replace")
            assert result.imported == 3

            before = {e.hash: e for e in src.list_entries()}
            after = {e.hash: e for e in dst.list_entries()}
            assert before.keys() == after.keys()
            for key, e in before.items():
                assert after[key].prompt == e.prompt
                assert after[key].hits == e.hits
                assert after[key].tags == e.tags
                assert after[key].created == e.created
        finally:
            src.close()
            dst.close()

    def test_sqlite_to_json_round_trip(self, tmp_path, make_entry):
        src = create_cache_store(tmp_path / "src", "sqlite")
        dst = create_cache_store(tmp_path / "dst", "json")
        src.init()
        dst.init()
        try:
            e = make_entry("hello", "world", model="claude-3-haiku", tokens=2)
            src.set(e.hash, e)
            dst.import_data(src.export_data())
            got = dst.get(e.hash)
            assert got.model == "claude-3-haiku"
            assert got.tokens == 2
        finally:
            src.close()
            dst.close()

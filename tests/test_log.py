"""
tests/test_log.py
"""
from __future__ import annotations

import datetime as _dt
import json

import pytest

from swearjar.jar import (
    MemoryStore,
    NotFoundError,
    StoreError,
    StoreLog,
    ValidationError,
    append_entry,
    clear_entries,
    entries_key,
    list_entries,
    remove_entry,
)

NOW = _dt.datetime(2024, 3, 9, 23, 30, tzinfo=_dt.timezone.utc)


# ───────────────────────── helpers ────────────────────────────────────
def _log(store: MemoryStore | None = None, who: str = "ash") -> StoreLog:
    return StoreLog(store if store is not None else MemoryStore(), who)


def _entry(eid: str, word: str = "heck") -> dict:
    return {"id": eid, "word": word, "timestamp": 1, "date": "1970-01-01"}


# ───────────────────────── tests ──────────────────────────────────────
def test_list_of_unknown_identity_is_empty():
    assert list_entries(_log()) == []


def test_append_normalises_and_stamps():
    log = _log()
    entry, entries = append_entry(log, "  FUDGE ", now=NOW)

    assert entry["word"] == "fudge"
    assert entry["timestamp"] == int(NOW.timestamp() * 1000)
    assert entry["date"] == "2024-03-09"
    assert entries == [entry]


def test_append_persists_whole_log_under_namespaced_key():
    store = MemoryStore()
    log = _log(store, "ash")
    append_entry(log, "one", now=NOW)
    append_entry(log, "two", now=NOW)

    stored = json.loads(store.get(entries_key("ash")))
    assert entries_key("ash") == "swearjar:ash:entries"
    assert [e["word"] for e in stored] == ["two", "one"]


def test_date_follows_timestamp_timezone():
    tokyo = NOW.astimezone(_dt.timezone(_dt.timedelta(hours=9)))
    entry, _ = append_entry(_log(), "kuso", now=tokyo)
    assert entry["date"] == "2024-03-10"


def test_ids_unique_within_same_instant():
    log = _log()
    for _ in range(50):
        append_entry(log, "same", now=NOW)
    ids = [e["id"] for e in list_entries(log)]
    assert len(set(ids)) == 50


@pytest.mark.parametrize("raw", ["", "   ", None, 42])
def test_append_rejects_blank(raw):
    log = _log()
    with pytest.raises(ValidationError):
        append_entry(log, raw, now=NOW)
    assert log.store.get(log.key) is None


def test_remove_first_match_only():
    store = MemoryStore()
    log = _log(store)
    log.save([_entry("a"), _entry("dup", "x"), _entry("dup", "y")])

    remaining = remove_entry(log, "dup")
    assert [e["word"] for e in remaining] == ["heck", "y"]
    assert list_entries(log) == remaining


def test_remove_missing_does_not_write():
    store = MemoryStore()
    log = _log(store)
    log.save([_entry("a")])
    before = store.get(log.key)

    with pytest.raises(NotFoundError):
        remove_entry(log, "zzz")
    assert store.get(log.key) == before


def test_remove_without_log_is_not_found():
    with pytest.raises(NotFoundError):
        remove_entry(_log(), "a")


@pytest.mark.parametrize("eid", ["", "  ", None])
def test_remove_requires_id(eid):
    with pytest.raises(ValidationError):
        remove_entry(_log(), eid)


def test_clear_twice():
    store = MemoryStore()
    log = _log(store)
    append_entry(log, "gosh", now=NOW)

    clear_entries(log)
    clear_entries(log)
    assert store.get(log.key) is None
    assert list_entries(log) == []


def test_corrupt_blob_is_a_store_error():
    store = MemoryStore({entries_key("ash"): "{not json"})
    with pytest.raises(StoreError):
        list_entries(_log(store, "ash"))

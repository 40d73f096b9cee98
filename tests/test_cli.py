"""
tests/test_cli.py
"""
from __future__ import annotations

import json

import pytest

from swearjar.jar import StoreLog, app, decode_state, get_store, list_entries


# ───────────────────────── helpers ────────────────────────────────────
def _run(*args: str):
    return app.test_cli_runner().invoke(args=list(args))


def _entry(eid: str, word: str, ts: int) -> dict:
    return {"id": eid, "word": word, "timestamp": ts, "date": "2024-01-01"}


@pytest.fixture
def seeded(client, username):
    """A user with two stored entries, newest first."""
    StoreLog(get_store(), username).save(
        [_entry("n2", "heck", 2000), _entry("n1", "darn", 1000)]
    )
    return username


# ───────────────────────── tests ──────────────────────────────────────
def test_init_db():
    result = _run("init-db")
    assert result.exit_code == 0
    assert "Database ready" in result.output


def test_entries_lists_newest_first(seeded):
    result = _run("entries", seeded)
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert "heck" in lines[0] and "darn" in lines[1]


def test_entries_for_stranger(client):
    assert "No entries." in _run("entries", "nobody-at-all").output


def test_stats(seeded):
    result = _run("stats", seeded)
    assert result.exit_code == 0
    assert "total 2" in result.output


def test_export_then_import_into_another_user(seeded, tmp_path, username):
    out = tmp_path / "dump.json"
    assert _run("export", seeded, "--output", str(out)).exit_code == 0

    other = f"{username}-copy"
    result = _run("import", other, str(out))
    assert result.exit_code == 0, result.output
    assert list_entries(StoreLog(get_store(), other)) == json.loads(out.read_text())


def test_import_merge_dedupes_by_id(seeded, tmp_path):
    src = tmp_path / "more.json"
    src.write_text(json.dumps({"entries": [_entry("n3", "drat", 3000), _entry("n1", "darn", 1000)]}))

    result = _run("import", seeded, str(src), "--merge")
    assert result.exit_code == 0, result.output
    ids = [e["id"] for e in list_entries(StoreLog(get_store(), seeded))]
    assert ids == ["n3", "n2", "n1"]


@pytest.mark.parametrize("payload", ["{oops", '[{"id": 1}]', '{"entries": "nope"}'])
def test_import_rejects_malformed(seeded, tmp_path, payload):
    src = tmp_path / "bad.json"
    src.write_text(payload)
    before = list_entries(StoreLog(get_store(), seeded))

    result = _run("import", seeded, str(src))
    assert result.exit_code != 0
    assert list_entries(StoreLog(get_store(), seeded)) == before


def test_share_prints_local_link(seeded):
    result = _run("share", seeded, "--base-url", "https://jar.example/")
    assert result.exit_code == 0
    link = result.output.strip()
    assert link.startswith("https://jar.example/local?s=")
    assert [e["id"] for e in decode_state(link.split("s=", 1)[1])] == ["n2", "n1"]


def test_clear_needs_confirmation(seeded):
    assert _run("clear", seeded).exit_code != 0
    assert len(list_entries(StoreLog(get_store(), seeded))) == 2

    assert _run("clear", seeded, "--yes").exit_code == 0
    assert list_entries(StoreLog(get_store(), seeded)) == []

# tests/io/test_state_store.py
from __future__ import annotations

from pairpref.io.state_store import InMemoryStateStore, JsonFileStateStore


def test_in_memory_store_copies():
    store = InMemoryStateStore()
    assert store.load() is None

    state = {"mode": "LOCKER", "models": {}}
    store.save(state)
    state["mode"] = "HUSTLE"

    assert store.load()["mode"] == "LOCKER"
    store.reset()
    assert store.load() is None


def test_json_store_roundtrip(tmp_path):
    store = JsonFileStateStore(tmp_path / "nested" / "state.json")
    assert store.load() is None

    store.save({"mode": "HUSTLE", "log": [1, 2]})

    assert store.load() == {"mode": "HUSTLE", "log": [1, 2]}
    assert not (tmp_path / "nested" / "state.json.tmp").exists()

    store.reset()
    assert store.load() is None


def test_json_store_corrupt_file_starts_fresh(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json")

    assert JsonFileStateStore(path).load() is None


def test_json_store_non_object_payload_starts_fresh(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("[1, 2, 3]")

    assert JsonFileStateStore(path).load() is None


def test_json_store_undecodable_bytes_start_fresh(tmp_path):
    path = tmp_path / "state.json"
    path.write_bytes(b"\xff\xfe\x00garbage")

    assert JsonFileStateStore(path).load() is None
